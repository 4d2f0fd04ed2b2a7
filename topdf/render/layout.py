"""Greedy line breaking over measured text spans."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from reportlab.pdfbase import pdfmetrics

from topdf.fonts.scripts import is_cjk

_WORDS = re.compile(r"\S+\s*|\s+")


@dataclass
class Span:
    text: str
    font: str
    size: float
    width: float


Line = List[Span]


def measure(text: str, font: str, size: float) -> float:
    return pdfmetrics.stringWidth(text, font, size)


def _span(text: str, font: str, size: float) -> Span:
    return Span(text=text, font=font, size=size, width=measure(text, font, size))


def make_atoms(pieces: Iterable[Tuple[str, str, float]]) -> List[Optional[Span]]:
    """Split (text, font, size) pieces into breakable atoms.

    Non-CJK text breaks after whitespace; every CJK character is its own atom.
    ``None`` marks a hard line break.
    """
    atoms: List[Optional[Span]] = []
    for text, font, size in pieces:
        for i, part in enumerate(text.split("\n")):
            if i:
                atoms.append(None)
            if not part:
                continue
            for token in _WORDS.findall(part):
                if any(is_cjk(ch) for ch in token):
                    buf = ""
                    for ch in token:
                        if is_cjk(ch):
                            if buf:
                                atoms.append(_span(buf, font, size))
                                buf = ""
                            buf = ch
                        else:
                            buf += ch
                    if buf:
                        atoms.append(_span(buf, font, size))
                else:
                    atoms.append(_span(token, font, size))
    return atoms


def _split_long(atom: Span, max_width: float) -> List[Span]:
    pieces: List[Span] = []
    buf = ""
    for ch in atom.text:
        candidate = buf + ch
        if buf and measure(candidate, atom.font, atom.size) > max_width:
            pieces.append(_span(buf, atom.font, atom.size))
            buf = ch
        else:
            buf = candidate
    if buf:
        pieces.append(_span(buf, atom.font, atom.size))
    return pieces


def _merge(line: Line) -> Line:
    merged: Line = []
    for span in line:
        if merged and merged[-1].font == span.font and merged[-1].size == span.size:
            prev = merged[-1]
            merged[-1] = Span(prev.text + span.text, prev.font, prev.size, prev.width + span.width)
        else:
            merged.append(span)
    return merged


def wrap_atoms(atoms: List[Optional[Span]], max_width: float) -> List[Line]:
    """Break atoms into lines no wider than ``max_width`` (trailing spaces excluded).

    Doxygen:
    - @param atoms: Output of make_atoms; None forces a break.
    - @param max_width: Available width in points.
    - @return: At least one line; empty input gives a single empty line.
    """
    lines: List[Line] = []
    cur: Line = []
    cur_w = 0.0
    for atom in atoms:
        if atom is None:
            lines.append(cur)
            cur, cur_w = [], 0.0
            continue
        visible = atom.text.rstrip()
        visible_w = measure(visible, atom.font, atom.size) if visible != atom.text else atom.width
        if cur and cur_w + visible_w > max_width:
            lines.append(cur)
            cur, cur_w = [], 0.0
            if not visible:
                continue
        if visible_w > max_width:
            pieces = _split_long(atom, max_width)
            for piece in pieces[:-1]:
                lines.append(cur + [piece])
                cur, cur_w = [], 0.0
            atom = pieces[-1]
        cur.append(atom)
        cur_w += atom.width
    lines.append(cur)
    return [_merge(line) for line in lines]


def line_width(line: Line) -> float:
    return sum(s.width for s in line)
