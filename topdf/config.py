"""Engine settings loaded from config/settings.json.

Missing or unreadable configuration never stops a conversion: problems are
logged as warnings and the defaults below are used instead.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
DEFAULT_CONFIG_PATH = os.path.join(PROJECT_ROOT, "config", "settings.json")

PAGE_SIZES = ("A4", "letter", "legal")


@dataclass
class Settings:
    page_size: str = "A4"
    margin: float = 50.0
    font_size: float = 11.0
    code_font_size: float = 9.0
    line_spacing: float = 1.2
    font_dirs: List[str] = field(default_factory=list)
    preferred_fonts: Dict[str, List[str]] = field(default_factory=dict)
    builtin_cjk_fallback: bool = True
    max_workers: Optional[int] = None
    invariant: bool = True

    def worker_count(self) -> int:
        if self.max_workers and self.max_workers > 0:
            return int(self.max_workers)
        return os.cpu_count() or 1


def _resolve_path(base: str, relative: str) -> str:
    return os.path.abspath(os.path.join(base, os.path.expanduser(relative)))


def _env_font_dirs() -> List[str]:
    raw = os.environ.get("FONT_PATH", "")
    return [p for p in raw.split(os.pathsep) if p.strip()]


def _coerce(name: str, value: Any, default: Any) -> Any:
    """Check a single config value against the type of its default."""
    if name == "page_size":
        if isinstance(value, str) and value.lower() in {p.lower() for p in PAGE_SIZES}:
            return next(p for p in PAGE_SIZES if p.lower() == value.lower())
        raise ValueError(f"page_size must be one of {', '.join(PAGE_SIZES)}")
    if name in ("margin", "font_size", "code_font_size", "line_spacing"):
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
            raise ValueError(f"{name} must be a positive number")
        return float(value)
    if name in ("builtin_cjk_fallback", "invariant"):
        if not isinstance(value, bool):
            raise ValueError(f"{name} must be true or false")
        return value
    if name == "max_workers":
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise ValueError("max_workers must be a positive integer or null")
        return value
    if name == "font_dirs":
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ValueError("font_dirs must be a list of paths")
        return [_resolve_path(PROJECT_ROOT, v) for v in value]
    if name == "preferred_fonts":
        if not isinstance(value, dict):
            raise ValueError("preferred_fonts must map a script name to a list of families")
        out: Dict[str, List[str]] = {}
        for key, names in value.items():
            if not isinstance(names, list) or not all(isinstance(n, str) for n in names):
                raise ValueError(f"preferred_fonts.{key} must be a list of names")
            out[str(key).lower()] = list(names)
        return out
    return default


def load_settings(path: Optional[str] = None) -> Settings:
    """Load settings from JSON, falling back to defaults.

    Doxygen:
    - @param path: Explicit config path; otherwise $TOPDF_CONFIG or config/settings.json.
    - @return: Populated Settings. Invalid values are logged and replaced by defaults.
    """
    settings = Settings()
    cfg_path = path or os.environ.get("TOPDF_CONFIG") or DEFAULT_CONFIG_PATH

    raw: Dict[str, Any] = {}
    if os.path.exists(cfg_path):
        try:
            with open(cfg_path, "r", encoding="utf-8") as cfg_file:
                raw = json.load(cfg_file) or {}
            if not isinstance(raw, dict):
                raise ValueError("top-level value must be an object")
        except (OSError, ValueError) as exc:
            logger.warning("Could not load settings from %s: %s", cfg_path, exc)
            raw = {}
    elif path:
        logger.warning("Settings file not found at %s; using defaults", cfg_path)

    known = {f.name: f for f in fields(Settings)}
    for key, value in raw.items():
        if key not in known:
            logger.warning("Ignoring unknown setting %r", key)
            continue
        default = getattr(settings, key)
        try:
            setattr(settings, key, _coerce(key, value, default))
        except ValueError as exc:
            logger.warning("Invalid setting %r: %s; using default %r", key, exc, default)

    settings.font_dirs = list(settings.font_dirs) + _env_font_dirs()
    return settings


_SETTINGS: Optional[Settings] = None
_SETTINGS_LOCK = threading.Lock()


def get_settings() -> Settings:
    """Return the process-wide settings, loading them on first use."""
    global _SETTINGS
    if _SETTINGS is None:
        with _SETTINGS_LOCK:
            if _SETTINGS is None:
                _SETTINGS = load_settings()
    return _SETTINGS
