from dotenv import load_dotenv
import os

load_dotenv()

# Base & state directories
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
STATE_DIR = os.getenv("AUTOPLAYLISTS_STATE_DIR", os.path.join(BASE_DIR, "state"))

# Storage files
SETTINGS_FILE = os.path.join(STATE_DIR, "settings.json")
PLAYLISTS_FILE = os.path.join(STATE_DIR, "playlists.json")
SETTINGS_SCHEMA_VERSION = 1

# The single account this service operates for
PRIMARY_ACCOUNT_ID = os.getenv("AUTOPLAYLISTS_PRIMARY_ACCOUNT_ID")

# Sync cadence (milliseconds). Anything below MIN_SYNC_MS disables periodic syncs.
MIN_SYNC_MS = 60 * 1000
DEFAULT_SYNC_MS = int(os.getenv("AUTOPLAYLISTS_DEFAULT_SYNC_MS", str(30 * 60 * 1000)))

# Backend sync engine. Requests stay in memory when unset.
SYNC_ENGINE_URL = os.getenv("AUTOPLAYLISTS_SYNC_ENGINE_URL")
SYNC_ENGINE_TIMEOUT = float(os.getenv("AUTOPLAYLISTS_SYNC_ENGINE_TIMEOUT", "10"))

LOG_LEVEL = os.getenv("AUTOPLAYLISTS_LOG_LEVEL", "INFO")

# Enables the debugQuery action
DEBUG = os.getenv("AUTOPLAYLISTS_DEBUG", "").lower() in ("1", "true", "yes")

# UI surfaces
WELCOME_DELAY_SECONDS = 5
WELCOME_PAGE = "html/welcome.html"
PLAYLISTS_PAGE = "html/playlists.html"
MULTI_USER_PAGE = "html/multi-user.html"
USAGE_HELP_URL = "https://autoplaylists.simon.codes/#usage"

ZERO_PLAYLISTS_NOTIFICATION_ID = "zeroPlaylists"
ZERO_PLAYLISTS_TITLE = "Create your first autoplaylist!"
ZERO_PLAYLISTS_MESSAGE = (
    "To get started, click the extension's page action (to the right of the url bar)."
)
ZERO_PLAYLISTS_BUTTON = "Click here if you don't see the page action."
