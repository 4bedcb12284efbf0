"""
Scripted consumer behaviour for the headless runner.
"""
from .basic_buyer import BasicBuyer, ConsumerProfile, Garage, ProfileFleet, ProfileRating, make_profiles
