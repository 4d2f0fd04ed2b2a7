"""Process-wide font discovery and per-script face resolution.

The first call scans the system font directories once (guarded by a lock);
afterwards lookups only read the cached result. Usable faces are TrueType
outline fonts that reportlab can subset and embed.
"""

from __future__ import annotations

import logging
import os
import re
import sys
import threading
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from fontTools.ttLib import TTCollection, TTFont as ToolsFont
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.cidfonts import UnicodeCIDFont
from reportlab.pdfbase.ttfonts import TTFont

from topdf.config import Settings, get_settings
from topdf.docs.model import Document
from topdf.errors import FontResolutionError

from .scripts import Script, contains_cjk

logger = logging.getLogger(__name__)

FONT_EXTS = (".ttf", ".ttc", ".otf")
LATIN_SAMPLE = "AaMmZz09"
CJK_SAMPLE = "中文字体日本"

BUILTIN_LATIN = "Helvetica"
BUILTIN_CJK = "STSong-Light"
_BUILTIN_VARIANTS = {
    (False, False): "Helvetica",
    (True, False): "Helvetica-Bold",
    (False, True): "Helvetica-Oblique",
    (True, True): "Helvetica-BoldOblique",
}
_STYLE_WORDS = re.compile(r"bold|italic|oblique|light|thin|black|heavy|medium|mono|condensed|narrow", re.IGNORECASE)


@dataclass(frozen=True)
class FontFace:
    """A scanned font file (or one face of a collection) with its coverage."""

    path: str
    index: int
    family: str
    scripts: FrozenSet[Script]

    @property
    def stem(self) -> str:
        return os.path.splitext(os.path.basename(self.path))[0]


@dataclass(frozen=True)
class FontProfile:
    face_id: str
    family: str
    scripts: FrozenSet[Script]
    path: Optional[str] = None
    embedded: bool = False

    def covers(self, script: Script) -> bool:
        return script in self.scripts

    def variant(self, bold: bool = False, italic: bool = False) -> str:
        """Face name to draw with; only built-in Latin faces have real variants."""
        if self.face_id == BUILTIN_LATIN:
            return _BUILTIN_VARIANTS[(bool(bold), bool(italic))]
        return self.face_id


@dataclass
class FontSet:
    """One profile per script required by a document."""

    profiles: Dict[Script, FontProfile]
    errors: List[FontResolutionError] = field(default_factory=list)

    def for_script(self, script: Script) -> FontProfile:
        return self.profiles.get(script) or self.profiles[Script.LATIN]


def default_font_dirs(platform: str = sys.platform) -> List[str]:
    home = os.path.expanduser("~")
    if platform.startswith("win"):
        windir = os.environ.get("WINDIR") or os.environ.get("SystemRoot") or "C:\\Windows"
        dirs = [os.path.join(windir, "Fonts")]
        local = os.environ.get("LOCALAPPDATA")
        if local:
            dirs.append(os.path.join(local, "Microsoft", "Windows", "Fonts"))
        return dirs
    if platform == "darwin":
        return ["/System/Library/Fonts", "/Library/Fonts", os.path.join(home, "Library", "Fonts")]
    return [
        "/usr/share/fonts",
        "/usr/local/share/fonts",
        os.path.join(home, ".fonts"),
        os.path.join(home, ".local", "share", "fonts"),
    ]


def default_preferred(platform: str = sys.platform) -> Dict[Script, List[str]]:
    """Preferred families per script, CJK-capable families first for CJK."""
    cjk_linux = [
        "NotoSansCJK", "NotoSansSC", "NotoSansTC", "NotoSansJP", "NotoSansKR", "SourceHanSans",
        "DroidSansFallbackFull", "DroidSansFallback", "wqy-microhei", "wqy-zenhei", "uming", "ukai",
    ]
    cjk_windows = ["msyh", "simhei", "simsun", "msjh", "meiryo", "msgothic", "malgun"]
    cjk_mac = ["PingFang", "Hiragino Sans GB", "STHeiti", "Songti", "Arial Unicode"]
    latin = ["DejaVuSans", "LiberationSans", "Arial", "segoeui", "Helvetica", "Roboto", "NotoSans"]
    if platform.startswith("win"):
        cjk = cjk_windows + cjk_linux + cjk_mac
    elif platform == "darwin":
        cjk = cjk_mac + cjk_linux + cjk_windows
    else:
        cjk = cjk_linux + cjk_windows + cjk_mac
    return {Script.CJK: cjk, Script.LATIN: latin}


def _face_coverage(font: ToolsFont) -> FrozenSet[Script]:
    cmap = font.getBestCmap() or {}
    scripts = set()
    if all(ord(c) in cmap for c in LATIN_SAMPLE):
        scripts.add(Script.LATIN)
    if all(ord(c) in cmap for c in CJK_SAMPLE):
        scripts.add(Script.CJK)
    return frozenset(scripts)


def inspect_font_file(path: str) -> List[FontFace]:
    """Read the faces of one font file and their script coverage.

    Doxygen:
    - @param path: Path to a .ttf/.otf/.ttc file.
    - @return: Usable faces (TrueType outlines, covering at least one script).
    """
    if path.lower().endswith(".ttc"):
        collection = TTCollection(path, lazy=True)
        fonts = list(enumerate(collection.fonts))
        closer = collection
    else:
        font = ToolsFont(path, lazy=True)
        fonts = [(0, font)]
        closer = font
    faces: List[FontFace] = []
    try:
        for index, font in fonts:
            # reportlab only embeds TrueType outlines, not CFF
            if "glyf" not in font:
                continue
            scripts = _face_coverage(font)
            if not scripts:
                continue
            family = ""
            if "name" in font:
                family = font["name"].getDebugName(1) or ""
            faces.append(FontFace(path=path, index=index, family=family or os.path.basename(path), scripts=scripts))
    finally:
        closer.close()
    return faces


def _iter_font_files(dirs: Iterable[str]) -> List[str]:
    seen = set()
    found: List[str] = []
    for base in dirs:
        if not base or not os.path.isdir(base):
            continue
        for root, _subdirs, files in os.walk(base):
            for name in files:
                if not name.lower().endswith(FONT_EXTS):
                    continue
                full = os.path.realpath(os.path.join(root, name))
                if full in seen:
                    continue
                seen.add(full)
                found.append(full)
    return sorted(found)


def _face_id(face: FontFace) -> str:
    stem = re.sub(r"[^A-Za-z0-9_-]+", "", face.stem) or "font"
    return f"{stem}-{face.index}" if face.index else stem


class FontResolver:
    """Resolve a script to a concrete face with fallback.

    Resolution order: (1) preferred families, (2) any scanned face covering the
    script, (3) a built-in face. When nothing covers the script the LATIN
    profile is substituted and a FontResolutionError is reported.
    """

    def __init__(
        self,
        search_dirs: Optional[Sequence[str]] = None,
        preferred: Optional[Dict[Script, List[str]]] = None,
        builtin_cjk_fallback: bool = True,
    ) -> None:
        self.search_dirs: List[str] = list(default_font_dirs() if search_dirs is None else search_dirs)
        self.preferred: Dict[Script, List[str]] = default_preferred()
        for script, names in (preferred or {}).items():
            self.preferred[script] = list(names) + [n for n in self.preferred.get(script, []) if n not in names]
        self.builtin_cjk_fallback = builtin_cjk_fallback
        self._lock = threading.RLock()
        self._faces: Optional[Tuple[FontFace, ...]] = None
        self._resolved: Dict[Script, Tuple[FontProfile, Optional[FontResolutionError]]] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> "FontResolver":
        preferred: Dict[Script, List[str]] = {}
        for key, names in settings.preferred_fonts.items():
            try:
                preferred[Script(key)] = names
            except ValueError:
                logger.warning("Unknown script %r in preferred_fonts", key)
        return cls(
            search_dirs=default_font_dirs() + list(settings.font_dirs),
            preferred=preferred,
            builtin_cjk_fallback=settings.builtin_cjk_fallback,
        )

    @property
    def faces(self) -> Tuple[FontFace, ...]:
        return self.scan()

    def scan(self) -> Tuple[FontFace, ...]:
        """Scan the search directories once and cache the usable faces."""
        faces = self._faces
        if faces is not None:
            return faces
        with self._lock:
            if self._faces is None:
                self._faces = tuple(self._scan_dirs())
                logger.info("Font scan found %d usable faces in %d directories", len(self._faces), len(self.search_dirs))
            return self._faces

    def _scan_dirs(self) -> List[FontFace]:
        faces: List[FontFace] = []
        for path in _iter_font_files(self.search_dirs):
            try:
                faces.extend(inspect_font_file(path))
            except Exception as exc:
                # arbitrary files in font directories may be truncated or not fonts at all
                logger.debug("Skipping font %s: %s", path, exc)
        return faces

    def resolve(self, script: Script) -> Tuple[FontProfile, Optional[FontResolutionError]]:
        """Return the profile for ``script`` and a non-fatal error if a substitute was used."""
        cached = self._resolved.get(script)
        if cached is not None:
            return cached
        with self._lock:
            cached = self._resolved.get(script)
            if cached is None:
                cached = self._resolve_locked(script)
                self._resolved[script] = cached
                logger.debug("Resolved %s to %s", script.value, cached[0].family)
            return cached

    def resolve_for(self, document: Document, name: Optional[str] = None) -> FontSet:
        """Resolve a profile for every script the document's text needs.

        LATIN is always resolved; CJK only when a CJK codepoint is present.
        """
        scripts = [Script.LATIN]
        if contains_cjk(document.iter_text()):
            scripts.append(Script.CJK)
        font_set = FontSet(profiles={})
        for script in scripts:
            profile, error = self.resolve(script)
            font_set.profiles[script] = profile
            if error is not None:
                font_set.errors.append(error)
                logger.warning("%s: %s", name or "document", error)
        return font_set

    def _matches(self, wanted: str, script: Script) -> List[FontFace]:
        key = wanted.lower().replace(" ", "")
        hits = []
        for face in self.scan():
            if script not in face.scripts:
                continue
            stem = face.stem.lower().replace(" ", "")
            family = face.family.lower().replace(" ", "")
            if stem.startswith(key) or family.startswith(key):
                hits.append(face)
        # plain regular faces before bold/mono/etc. variants
        hits.sort(key=lambda f: (bool(_STYLE_WORDS.search(f.stem)), f.stem.lower() != key, len(f.stem), f.path, f.index))
        return hits

    def _register(self, face: FontFace) -> Optional[FontProfile]:
        face_id = _face_id(face)
        if face_id not in pdfmetrics.getRegisteredFontNames():
            try:
                pdfmetrics.registerFont(TTFont(face_id, face.path, subfontIndex=face.index))
            except Exception as exc:
                # e.g. embedding not permitted, unsupported cmap
                logger.debug("reportlab rejected %s: %s", face.path, exc)
                return None
        return FontProfile(face_id=face_id, family=face.family, scripts=face.scripts, path=face.path, embedded=True)

    def _builtin(self, script: Script) -> Optional[FontProfile]:
        if script == Script.LATIN:
            return FontProfile(face_id=BUILTIN_LATIN, family=BUILTIN_LATIN, scripts=frozenset({Script.LATIN}))
        if script == Script.CJK and self.builtin_cjk_fallback:
            if BUILTIN_CJK not in pdfmetrics.getRegisteredFontNames():
                pdfmetrics.registerFont(UnicodeCIDFont(BUILTIN_CJK))
            return FontProfile(face_id=BUILTIN_CJK, family=BUILTIN_CJK, scripts=frozenset({Script.CJK}))
        return None

    def _resolve_locked(self, script: Script) -> Tuple[FontProfile, Optional[FontResolutionError]]:
        for wanted in self.preferred.get(script, []):
            for face in self._matches(wanted, script):
                profile = self._register(face)
                if profile is not None:
                    return profile, None
        for face in self.scan():
            if script in face.scripts:
                profile = self._register(face)
                if profile is not None:
                    return profile, None
        builtin = self._builtin(script)
        if builtin is not None:
            return builtin, None
        substitute, _ = self.resolve(Script.LATIN)
        return substitute, FontResolutionError(script.value, substitute.family)


_RESOLVER: Optional[FontResolver] = None
_RESOLVER_LOCK = threading.Lock()


def get_font_resolver() -> FontResolver:
    """Process-wide resolver built from the current settings."""
    global _RESOLVER
    if _RESOLVER is None:
        with _RESOLVER_LOCK:
            if _RESOLVER is None:
                _RESOLVER = FontResolver.from_settings(get_settings())
    return _RESOLVER


def reset_font_resolver() -> None:
    global _RESOLVER
    with _RESOLVER_LOCK:
        _RESOLVER = None
