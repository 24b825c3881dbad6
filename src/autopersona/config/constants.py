"""Paths and default values used across the project."""

from pathlib import Path

# Base directory for all autopersona data
AUTOPERSONA_HOME = Path.home() / ".autopersona"

# Sub-directories
CONFIG_DIR = AUTOPERSONA_HOME
CONFIG_FILE = CONFIG_DIR / "config.json"
ENV_FILE = AUTOPERSONA_HOME / ".env"
DB_DIR = AUTOPERSONA_HOME / "data"
MEDIA_DIR = AUTOPERSONA_HOME / "media"

# Database defaults
DEFAULT_DB_FILE = DB_DIR / "autopersona.db"

# Server defaults
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8000

# Collaborator calls (image generation, face swap, LLM) can take a while
DEFAULT_STEP_TIMEOUT_SECONDS = 115.0

# Queue
DEFAULT_DRAIN_LIMIT = 5
DEFAULT_LEASE_SECONDS = 900

# Time slot used when a schedule has none configured
FALLBACK_TIME_SLOT = "09:00"

DEFAULT_TIME_SLOTS: list[str] = ["09:00", "12:00", "15:00", "18:00", "21:00"]

# Percentages, must add up to 100
DEFAULT_GENDER_DISTRIBUTION: dict[str, int] = {"male": 40, "female": 50, "non_binary": 10}

DEFAULT_PROFILE_TYPES: list[str] = [
    "influencer",
    "gamer",
    "yoga_instructor",
    "tech",
    "billionaire",
    "philosopher",
    "fitness",
    "artist",
    "musician",
    "chef",
]

CONTENT_TYPES: list[str] = [
    "lifestyle",
    "fashion",
    "travel",
    "food",
    "fitness",
    "beauty",
    "tech",
    "art",
    "nature",
    "urban",
    "custom",
]

# Social platforms the publisher knows how to target
PLATFORMS: list[str] = ["instagram", "tiktok", "twitter", "facebook", "threads", "linkedin"]
