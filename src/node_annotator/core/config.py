"""
config.py
- Defines global configuration values derived from environment variables.
- Used by the runner, API and logic modules for shared behavior control.
"""

import os

from node_annotator.core.constants import (
    DEFAULT_BASE_RETRY_DELAY,
    DEFAULT_MAX_RETRY_DELAY,
    DEFAULT_WATCH_TIMEOUT,
    DEFAULT_WORKERS,
    INSTANCE_ID_ANNOTATION_KEY,
)

# --- Runtime Behavior Flags ---
DEBUG = os.getenv("DEBUG", "false").lower() == "true"
DRY_RUN = os.getenv("DRY_RUN", "false").lower() == "true"

# --- Logging ---
LOG_LEVEL = "DEBUG" if DEBUG else "INFO"  # Loguru string levels
LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
SENTRY_DSN = os.getenv("SENTRY_DSN")

# --- Reconciliation ---
WORKERS = int(os.getenv("WORKERS", DEFAULT_WORKERS))
ANNOTATION_KEY = os.getenv("ANNOTATION_KEY", INSTANCE_ID_ANNOTATION_KEY)
BASE_RETRY_DELAY = float(os.getenv("BASE_RETRY_DELAY", DEFAULT_BASE_RETRY_DELAY))
MAX_RETRY_DELAY = float(os.getenv("MAX_RETRY_DELAY", DEFAULT_MAX_RETRY_DELAY))
WATCH_TIMEOUT = int(os.getenv("WATCH_TIMEOUT", DEFAULT_WATCH_TIMEOUT))

# --- Clients ---
KUBECONFIG = os.getenv("KUBECONFIG")

# --- API ---
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "6060"))

# --- Config Paths ---
CONFIG_FILE = os.getenv("CONFIG_FILE", "/etc/node-annotator/config.yml")
