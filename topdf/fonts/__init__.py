"""Font discovery, script detection and per-script face resolution."""

from .scripts import Script, contains_cjk, detect_scripts, is_cjk, split_by_script
from .resolver import (
    FontFace,
    FontProfile,
    FontResolver,
    FontSet,
    get_font_resolver,
    reset_font_resolver,
)

__all__ = [
    "Script",
    "contains_cjk",
    "detect_scripts",
    "is_cjk",
    "split_by_script",
    "FontFace",
    "FontProfile",
    "FontResolver",
    "FontSet",
    "get_font_resolver",
    "reset_font_resolver",
]
