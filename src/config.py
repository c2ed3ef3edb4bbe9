"""
config.py - Configuration loader for the de-identification audit.

Loads settings from config.yaml with sensible defaults so that no
path or policy threshold is hard-coded inside a module.
"""

import os
import yaml
from typing import Any, Optional

# Resolve the config file relative to the repo root, not the CWD,
# so imports work regardless of where the script is launched from.
_REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
_CONFIG_PATH = os.path.join(_REPO_ROOT, "config.yaml")
_ENV_VAR = "DEID_AUDIT_CONFIG"

_DEFAULTS: dict[str, Any] = {
    "paths": {
        "input_folder": "data/processed",
    },
    "audit": {
        "max_files": None,
        # Records outside the supported SOP classes are listed but not judged.
        "skip_unsupported": True,
        # audit_phi.py exits non-zero when a warning is at least this severe.
        "fail_level": 1,
    },
}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge *override* into *base*, returning a new dict."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _check(config: dict[str, Any]) -> dict[str, Any]:
    fail_level = config["audit"]["fail_level"]
    if fail_level not in (1, 2, 3, 4):
        raise ValueError(f"audit.fail_level must be 1-4, got {fail_level!r}")
    max_files = config["audit"]["max_files"]
    if max_files is not None and (not isinstance(max_files, int) or max_files < 0):
        raise ValueError(f"audit.max_files must be a non-negative integer or null, got {max_files!r}")
    return config


def load_config(config_path: Optional[str] = None) -> dict[str, Any]:
    """
    Load the YAML configuration file and merge it with built-in defaults.

    Parameters
    ----------
    config_path : str, optional
        Path to a YAML file.  Defaults to $DEID_AUDIT_CONFIG, then to the
        repo-root config.yaml.

    Returns
    -------
    dict
        Merged configuration dictionary.

    Raises
    ------
    ValueError
        If an audit setting is out of range.
    """
    config_path = config_path or os.environ.get(_ENV_VAR) or _CONFIG_PATH
    if os.path.exists(config_path):
        with open(config_path, "r") as f:
            user_config = yaml.safe_load(f) or {}
    else:
        user_config = {}

    return _check(_deep_merge(_DEFAULTS, user_config))


# Module-level singleton so callers can just do `from src.config import CONFIG`
CONFIG = load_config()
