"""
Save-file persistence for the market state.
"""
from .state_store import MarketStateStore, StorePaths
