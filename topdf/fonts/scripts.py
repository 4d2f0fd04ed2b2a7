from __future__ import annotations

from enum import Enum
from typing import Iterable, List, Set, Tuple


class Script(Enum):
    LATIN = "latin"
    CJK = "cjk"


_CJK_RANGES: Tuple[Tuple[int, int], ...] = (
    (0x2E80, 0x2FDF),    # radicals
    (0x3000, 0x303F),    # symbols and punctuation
    (0x3040, 0x30FF),    # hiragana, katakana
    (0x3100, 0x312F),    # bopomofo
    (0x3130, 0x318F),    # hangul compatibility jamo
    (0x31F0, 0x31FF),
    (0x3200, 0x33FF),    # enclosed letters, compatibility
    (0x3400, 0x4DBF),    # extension A
    (0x4E00, 0x9FFF),    # unified ideographs
    (0xA960, 0xA97F),
    (0xAC00, 0xD7AF),    # hangul syllables
    (0xF900, 0xFAFF),    # compatibility ideographs
    (0xFE30, 0xFE4F),
    (0xFF00, 0xFFEF),    # half/full-width forms
    (0x20000, 0x2FA1F),  # extension B and beyond
)


def is_cjk(ch: str) -> bool:
    code = ord(ch)
    if code < 0x2E80:
        return False
    for lo, hi in _CJK_RANGES:
        if lo <= code <= hi:
            return True
    return False


def script_of(ch: str) -> Script:
    return Script.CJK if is_cjk(ch) else Script.LATIN


def detect_scripts(text: str) -> Set[Script]:
    """Scripts present in ``text``; whitespace counts for none."""
    found: Set[Script] = set()
    for ch in text:
        if ch.isspace():
            continue
        found.add(script_of(ch))
        if len(found) == len(Script):
            break
    return found


def contains_cjk(texts: Iterable[str]) -> bool:
    return any(is_cjk(ch) for text in texts for ch in text)


def split_by_script(text: str) -> List[Tuple[Script, str]]:
    """Split ``text`` into maximal same-script runs.

    Whitespace joins the run in progress, or the first run when leading.
    """
    runs: List[Tuple[Script, str]] = []
    current = None
    buf: List[str] = []
    for ch in text:
        if ch.isspace():
            buf.append(ch)
            continue
        script = script_of(ch)
        if current is None:
            current = script
        elif script != current:
            runs.append((current, "".join(buf)))
            buf = []
            current = script
        buf.append(ch)
    if buf:
        runs.append((current or Script.LATIN, "".join(buf)))
    return runs
