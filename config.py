"""
Configuration settings for the Used Market Sim.
"""
import os
from dotenv import load_dotenv

load_dotenv()

PROTOTYPE_VERSION = "0.3.0"
SIM_TITLE = f"Used Market Sim (Prototype v{PROTOTYPE_VERSION})"

# Determinism
SIM_SEED = int(os.getenv("SIM_SEED", "1"))

# Debug output (prefixed prints, see game/sim/log.py)
DEBUG_SIM = os.getenv("DEBUG_SIM", "0").strip().lower() in ("1", "true", "yes", "on")

# Time
HOURS_PER_DAY = 24

# Search settings
MAX_ACTIVE_SEARCHES = int(os.getenv("MAX_ACTIVE_SEARCHES", "5"))
FAILURE_TTS_PADDING = 999  # hours past ttl; never reached before expiry
SUCCESS_WINDOW_START = 0.5  # success lands in the back half of the window
SEARCH_ID_FORMAT = "SEARCH_%08d"
LISTING_ID_FORMAT = "LISTING_D%d_%08d"

# Listing settings
LISTING_EXPIRY_HOURS = int(os.getenv("LISTING_EXPIRY_HOURS", "72"))

# Credit
DEFAULT_CREDIT_SCORE = 650

# Economy settings (headless runner)
STARTING_FUNDS = int(os.getenv("STARTING_FUNDS", "250000"))

# Persistence
SAVE_PATH = os.getenv("SAVE_PATH", ".used_market/state.json")
