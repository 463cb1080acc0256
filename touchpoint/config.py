"""
touchpoint/config.py
JSON config with defaults. Persists to touchpoint_config.json.
Process settings only. Cadences are user data and live in the store.
"""

from __future__ import annotations

import json
import logging
from datetime import tzinfo
from pathlib import Path
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "touchpoint_config.json"

DEFAULT_CONFIG = {
    "db_path": "touchpoint.db",
    "timezone": None,                 # IANA name; None = system local
    "poll_interval_seconds": 60,
    "default_cadence_days": 7,
    "api_host": "127.0.0.1",
    "api_port": 8766,
}


def _config_path(project_root: Optional[Path] = None) -> Path:
    root = project_root or Path.cwd()
    return root / CONFIG_FILENAME


def load_config(project_root: Optional[Path] = None) -> Dict[str, Any]:
    """Load config from touchpoint_config.json. Returns defaults if missing."""
    path = _config_path(project_root)
    if path.exists():
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                raise ValueError("top-level value must be an object")
            return {**DEFAULT_CONFIG, **data}
        except (json.JSONDecodeError, ValueError, OSError) as e:
            logger.warning(f"Config load failed: {e}")
    return dict(DEFAULT_CONFIG)


def save_config(config: Dict[str, Any], project_root: Optional[Path] = None) -> Path:
    """Persist config to touchpoint_config.json."""
    path = _config_path(project_root)
    path.write_text(json.dumps(config, indent=2), encoding="utf-8")
    return path


def resolve_timezone(name: Optional[str]) -> Optional[tzinfo]:
    """IANA name → tzinfo. None or an unknown name means system local time."""
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        logger.warning(f"Unknown timezone {name!r} ({e}), using system local time")
        return None


def ensure_config(project_root: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load config and normalize values that the rest of the package
    relies on. Bad values fall back to defaults with a warning.
    Returns merged config.
    """
    config = load_config(project_root)

    try:
        poll = float(config.get("poll_interval_seconds"))
        if poll <= 0:
            raise ValueError("must be positive")
    except (TypeError, ValueError) as e:
        logger.warning(f"Invalid poll_interval_seconds ({e}), using default")
        poll = float(DEFAULT_CONFIG["poll_interval_seconds"])
    config["poll_interval_seconds"] = poll

    db_path = Path(config.get("db_path") or DEFAULT_CONFIG["db_path"])
    if not db_path.is_absolute() and project_root is not None:
        db_path = project_root / db_path
    config["db_path"] = str(db_path)
    return config
