"""
config_loader.py
- Loads and previews the YAML configuration file used by the annotater runner.
- Keys in the file override the environment defaults from config.py.
"""

import os

import yaml
from loguru import logger

from node_annotator.core import config

OVERRIDABLE_KEYS = ("workers", "base_retry_delay", "max_retry_delay", "annotation_key")


def load_yaml(path):
    """Safely load a YAML file and return a parsed dict. Returns {} on failure."""
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.debug(f"[config] No config file at {path}, using environment defaults")
        return {}
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"[load_yaml] Failed to load {path}: {e}")
        return {}
    if not isinstance(data, dict):
        logger.error(f"[load_yaml] Expected a mapping in {path}, got {type(data).__name__}")
        return {}
    return data


def preview_yaml(path, name=None):
    """
    Log a human-readable preview of the YAML file contents for debugging.
    Typically used during startup to verify config presence and structure.
    """
    if not os.path.exists(path):
        logger.debug(f"[config] No config file at {path}, nothing to preview")
        return

    try:
        with open(path, "r") as f:
            contents = f.read()
        logger.info(f"\n📄 Loaded {name or path}:\n" + "\n".join(f"│ {line}" for line in contents.strip().splitlines()))
    except OSError as e:
        logger.error(f"[config] Could not preview {path}: {e}")


def load_settings(path=None):
    """
    Build the effective runner settings: environment defaults overlaid with
    any recognised keys from the YAML config file.

    Returns:
        dict: workers, base_retry_delay, max_retry_delay, annotation_key
    """
    settings = {
        "workers": config.WORKERS,
        "base_retry_delay": config.BASE_RETRY_DELAY,
        "max_retry_delay": config.MAX_RETRY_DELAY,
        "annotation_key": config.ANNOTATION_KEY,
    }
    overrides = load_yaml(path or config.CONFIG_FILE)
    for key in OVERRIDABLE_KEYS:
        if key in overrides:
            settings[key] = overrides[key]

    unknown = set(overrides) - set(OVERRIDABLE_KEYS)
    if unknown:
        logger.warning(f"[config] Ignoring unknown config keys: {sorted(unknown)}")

    settings["workers"] = int(settings["workers"])
    settings["base_retry_delay"] = float(settings["base_retry_delay"])
    settings["max_retry_delay"] = float(settings["max_retry_delay"])
    if settings["workers"] < 1:
        raise ValueError(f"workers must be >= 1, got: {settings['workers']}")
    if settings["max_retry_delay"] < settings["base_retry_delay"]:
        raise ValueError("max_retry_delay must be >= base_retry_delay")
    return settings
