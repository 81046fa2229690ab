"""
constants.py
- Project-wide constants shared across logic and runner modules.
- Includes the annotation key, retry timing and watch tuning values.
"""

# --- Annotation ---
INSTANCE_ID_ANNOTATION_KEY = "container.googleapis.com/instance_id"

# --- Provider URI ---
GCE_SCHEME = "gce"

# --- Retry Timing Defaults ---
DEFAULT_BASE_RETRY_DELAY = 0.2    # seconds
DEFAULT_MAX_RETRY_DELAY = 1000.0  # seconds

# --- Workers ---
DEFAULT_WORKERS = 5

# --- Watch Tuning ---
DEFAULT_WATCH_TIMEOUT = 300       # seconds per watch stream
WATCH_MAX_BACKOFF = 30            # seconds
CACHE_SYNC_POLL_INTERVAL = 0.1    # seconds between has_synced checks

# --- Inventory Lookup ---
LOOKUP_ATTEMPTS = 3

QUEUE_NAME = "node-annotater"
