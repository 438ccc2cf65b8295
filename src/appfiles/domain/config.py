from __future__ import annotations

"""
Packaging Configuration Domain Management.

Defines the default packaging configuration consumed by the materialization
pipeline and handles its persistence as JSON.
"""

import json
import logging
import os
from typing import Any, Dict

from appfiles.domain.constants import CONCURRENCY

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Constants & Defaults
# -----------------------------------------------------------------------------
CURRENT_CONFIG_VERSION = "1.0.0"
DEFAULT_DESTINATION_SUBDIR = "app"
DEFAULT_UNPACKED_SUBDIR = "app.asar.unpacked"


# -----------------------------------------------------------------------------
# Configuration Models (Dict-based)
# -----------------------------------------------------------------------------
def get_default_config() -> Dict[str, Any]:
    """
    Generate the default packaging configuration.
    This dictionary drives the behavior of the materialization pipeline.

    Returns:
        Dict[str, Any]: Default configuration values.
    """
    base = os.getcwd()
    return {
        # IO Paths
        "app_dir": base,
        "destination": os.path.join(base, "dist", DEFAULT_DESTINATION_SUBDIR),
        "unpacked_dest": os.path.join(base, "dist", DEFAULT_UNPACKED_SUBDIR),

        # Filtering
        "files": [],

        # Unpacking
        "always_unpack_dirs": [],

        # Execution
        "concurrency": CONCURRENCY,

        # Diagnostics
        "verbose": False,
        "log_file": "",
    }


# -----------------------------------------------------------------------------
# Persistence Logic
# -----------------------------------------------------------------------------
def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load a packaging configuration from disk, merged over the defaults.

    Args:
        config_path: Path to the JSON configuration file.

    Returns:
        Dict[str, Any]: The merged configuration, or defaults on failure.
    """
    defaults = get_default_config()

    if not os.path.exists(config_path):
        logger.debug(f"Config file not found at {config_path}. Returning defaults.")
        return defaults

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to load config: {e}. Using defaults.")
        return defaults

    if not isinstance(data, dict):
        logger.warning("Corrupted config file. Resetting to defaults.")
        return defaults

    data.pop("version", None)
    defaults.update(data)
    return defaults


def save_config(config: Dict[str, Any], config_path: str) -> None:
    """
    Persist a packaging configuration to disk.

    Args:
        config: The configuration dictionary to save.
        config_path: Target JSON file path.
    """
    payload = dict(config)
    payload["version"] = CURRENT_CONFIG_VERSION
    try:
        os.makedirs(os.path.dirname(os.path.abspath(config_path)), exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=4)
        logger.debug(f"Configuration saved to {config_path}")
    except OSError as e:
        logger.error(f"Failed to save configuration: {e}")
