"""
incidentlog/config.py
Project config. Persists to incidentlog_config.json in the project root.
Every key has a default, so the tools run with no config file at all.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from incidentlog.store.sqlite_store import DEFAULT_DB_PATH
from incidentlog.validation import DETAILS_MAX_CHARS

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "incidentlog_config.json"

DEFAULT_OUTPUT_PATH = Path("dashboard") / "index.html"
DEFAULT_TITLE       = "Recovery Incident Log"

DEFAULT_CONFIG = {
    "db_path": str(DEFAULT_DB_PATH.as_posix()),
    "output_path": str(DEFAULT_OUTPUT_PATH.as_posix()),
    "dashboard_title": DEFAULT_TITLE,
    "details_max_chars": DETAILS_MAX_CHARS,
    "api_host": "127.0.0.1",
    "api_port": 8766,
}


INT_KEYS = ("details_max_chars", "api_port")


def _config_path(project_root: Optional[Path] = None) -> Path:
    root = project_root or Path.cwd()
    return root / CONFIG_FILENAME


def _check_ints(config: Dict[str, Any]) -> Dict[str, Any]:
    for key in INT_KEYS:
        value = config.get(key)
        try:
            if isinstance(value, bool):
                raise ValueError("booleans are not numbers")
            config[key] = int(value)
        except (TypeError, ValueError) as e:
            logger.warning(
                f"Config value {key}={value!r} is not an integer ({e}); "
                f"using {DEFAULT_CONFIG[key]}"
            )
            config[key] = DEFAULT_CONFIG[key]
    return config


def load_config(project_root: Optional[Path] = None) -> Dict[str, Any]:
    """Load config from incidentlog_config.json. Returns defaults if missing."""
    path = _config_path(project_root)
    if path.exists():
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                raise ValueError("top-level value must be an object")
            return _check_ints({**DEFAULT_CONFIG, **data})
        except (json.JSONDecodeError, ValueError, OSError) as e:
            logger.warning(f"Config load failed: {e}")
    return dict(DEFAULT_CONFIG)


def save_config(config: Dict[str, Any], project_root: Optional[Path] = None) -> Path:
    """Persist config to incidentlog_config.json."""
    path = _config_path(project_root)
    path.write_text(json.dumps(config, indent=2), encoding="utf-8")
    return path


def resolve_path(
    config: Dict[str, Any],
    key: str,
    project_root: Optional[Path] = None,
    override: Optional[Path] = None,
) -> Path:
    """
    Path for key: the override (a CLI flag) if given, else the config value.
    Relative paths are taken from the project root either way.
    """
    value = override or config.get(key) or DEFAULT_CONFIG[key]
    path = Path(value)
    if not path.is_absolute():
        path = (project_root or Path.cwd()) / path
    return path
