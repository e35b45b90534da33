"""
Runtime configuration.

All settings come from environment variables (a local .env file is loaded
first when present).
"""

import os

import dotenv

dotenv.load_dotenv()

# ============================================================================
# GCP
# ============================================================================

PROJECT_ID = os.getenv("PROJECT_ID")
CAMPAIGN_DATA_BUCKET = os.getenv("CAMPAIGN_DATA_BUCKET", "campaign-data")
BUSINESSES_COLLECTION = os.getenv("BUSINESSES_COLLECTION", "businesses")
JOBS_COLLECTION = os.getenv("JOBS_COLLECTION", "jobs")
ENABLE_CLOUD_LOGGING = os.getenv("ENABLE_CLOUD_LOGGING", "false").lower() == "true"
CLOUD_LOG_NAME = os.getenv("CLOUD_LOG_NAME", "website-scrape")

# ============================================================================
# TASK RESOURCES
# ============================================================================

TASK_MEMORY_MIB = int(os.getenv("TASK_MEMORY_MIB", "4096"))
TASK_CPU_UNITS = int(os.getenv("TASK_CPU_UNITS", "1024"))

# ============================================================================
# CRAWL SETTINGS
# ============================================================================

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
VIEWPORT = {"width": 1920, "height": 1080}

HTTP_TIMEOUT = 10  # seconds
RENDER_TIMEOUT = 15_000  # milliseconds, DOM-ready render
RENDER_IDLE_TIMEOUT = 30_000  # milliseconds, network-idle render

PACING_DELAY = 0.05  # seconds between fetches within one business
DEFAULT_MAX_PAGES = 10
MIN_TEXT_FOR_LINKS = 500
MIN_TEXT_FOR_STATIC = 500

# Early exit (opt-in per job)
EARLY_EXIT_MIN_PAGES = 3

# ============================================================================
# EXTRACTION LIMITS
# ============================================================================

MAX_EMAILS = 10
MAX_PHONES = 5
MAX_TEAM_MEMBERS = 20
MAX_NEW_HIRES = 10
MAX_ACQUISITION_SIGNALS = 10
MAX_HISTORY_SNIPPETS = 5
MAX_SNIPPET_LENGTH = 300
