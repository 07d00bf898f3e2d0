"""
Configuration module for the Apple PIM MCP server.

Handles default settings, the optional JSON config file, environment
variable overrides and logging setup. All paths are resolved to absolute
paths because MCP servers are started from arbitrary working directories.
"""

import copy
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("~/.config/apple-pim/config.json")

DEFAULT_CONFIG: Dict[str, Any] = {
    "server_name": "apple-pim",
    "version": "0.1.0",
    "timeouts": {
        # Seconds. A single osascript dispatch.
        "command": 10.0,
        # Seconds. The "return name" permission probe.
        "probe": 5.0,
        # Seconds. Budget for bulk initialization before safe mode.
        "eager": 5.0,
        # Seconds. A single on-demand module load in safe mode.
        "module_load": 30.0,
    },
    "limits": {
        "max_items": 50,
        "max_content": 200,
        "max_contacts": 1000,
        "max_messages": 100,
        "max_events": 20,
        "max_emails": 20,
        "max_lists": 20,
    },
    "contacts": {
        "min_phone_suffix": 10,
    },
    "paths": {
        "messages_db": "~/Library/Messages/chat.db",
        "log_dir": "~/Library/Logs/apple-pim",
    },
    "defaults": {
        "notes_folder": "Claude",
        "reminders_list": "Reminders",
        "calendar": "Calendar",
    },
}

# Environment overrides: variable -> (section, key, type)
ENV_OVERRIDES = {
    "APPLE_PIM_TIMEOUT": ("timeouts", "command", float),
    "APPLE_PIM_PROBE_TIMEOUT": ("timeouts", "probe", float),
    "APPLE_PIM_EAGER_TIMEOUT": ("timeouts", "eager", float),
    "APPLE_PIM_MODULE_TIMEOUT": ("timeouts", "module_load", float),
    "APPLE_PIM_MAX_ITEMS": ("limits", "max_items", int),
    "APPLE_PIM_MAX_CONTACTS": ("limits", "max_contacts", int),
    "APPLE_PIM_MIN_PHONE_SUFFIX": ("contacts", "min_phone_suffix", int),
    "APPLE_PIM_MESSAGES_DB": ("paths", "messages_db", str),
    "APPLE_PIM_LOG_DIR": ("paths", "log_dir", str),
}


def _merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge overrides into base (base is modified)."""
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


def load_config(
    config_path: Optional[str] = None,
    environ: Optional[Dict[str, str]] = None
) -> Dict[str, Any]:
    """
    Load configuration: defaults, then JSON file, then environment.

    Args:
        config_path: Explicit config file path. Falls back to APPLE_PIM_CONFIG,
            then ~/.config/apple-pim/config.json. A missing file is not an error.
        environ: Environment mapping (default: os.environ)

    Returns:
        Merged configuration dict

    Raises:
        ValueError: If the config file is not valid JSON or an env override
            cannot be converted to its expected type
    """
    environ = os.environ if environ is None else environ
    config = copy.deepcopy(DEFAULT_CONFIG)

    path_str = config_path or environ.get("APPLE_PIM_CONFIG")
    path = Path(path_str).expanduser() if path_str else DEFAULT_CONFIG_PATH.expanduser()

    if path.exists():
        try:
            with open(path) as f:
                _merge(config, json.load(f))
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid config file {path}: {e}") from e
        logger.info(f"Loaded config from {path}")
    elif path_str:
        logger.warning(f"Config file not found: {path} - using defaults")

    for var, (section, key, cast) in ENV_OVERRIDES.items():
        raw = environ.get(var)
        if raw is None or raw == "":
            continue
        try:
            config[section][key] = cast(raw)
        except ValueError as e:
            raise ValueError(f"Invalid {var}={raw!r}: {e}") from e

    return config


def resolve_path(path_str: str) -> Path:
    """Expand ~ and return an absolute path."""
    return Path(path_str).expanduser().resolve()


def setup_logging(config: Dict[str, Any], level: int = logging.INFO) -> Path:
    """
    Configure root logging with a file handler and a stderr stream handler.

    stdout is reserved for the MCP stdio transport, so console output goes
    to stderr.

    Returns:
        Path of the log file
    """
    log_dir = resolve_path(config["paths"]["log_dir"])
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "mcp_server.log"

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler(sys.stderr)
        ]
    )
    return log_file
