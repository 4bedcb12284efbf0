"""
Procurement entities package.
"""
from .search_record import SearchRecord, SearchStatus, Completion
from .listing import Listing, ListingStatus, InspectionState
