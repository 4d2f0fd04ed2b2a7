"""Input format detection by extension, with a content sniff for ambiguous cases."""

from __future__ import annotations

import os
import re
from enum import Enum
from typing import Dict, Optional

from topdf.errors import UnsupportedFormat

SNIFF_BYTES = 4096


class FormatKind(Enum):
    DOCX = "docx"
    PLAIN_TEXT = "text"
    JSON = "json"
    XML = "xml"
    CSV = "csv"
    MARKDOWN = "markdown"
    HTML = "html"
    PNG = "png"
    JPG = "jpeg"
    BMP = "bmp"
    RUST = "rust"
    PYTHON = "python"
    JAVASCRIPT = "javascript"
    C = "c"
    CPP = "cpp"
    YAML = "yaml"
    TOML = "toml"
    EXCEL = "excel"

    @property
    def is_image(self) -> bool:
        return self in (FormatKind.PNG, FormatKind.JPG, FormatKind.BMP)

    @property
    def is_code(self) -> bool:
        return self in _CODE_KINDS

    @property
    def language(self) -> Optional[str]:
        """Language hint for code-like kinds, None otherwise."""
        if self.is_code or self in (FormatKind.JSON, FormatKind.XML, FormatKind.YAML, FormatKind.TOML):
            return self.value
        return None

    @property
    def label(self) -> str:
        return _LABELS.get(self, self.value.upper())


_CODE_KINDS = frozenset(
    {FormatKind.RUST, FormatKind.PYTHON, FormatKind.JAVASCRIPT, FormatKind.C, FormatKind.CPP}
)

_LABELS: Dict[FormatKind, str] = {
    FormatKind.DOCX: "DOCX",
    FormatKind.PLAIN_TEXT: "Text",
    FormatKind.MARKDOWN: "Markdown",
    FormatKind.HTML: "HTML",
    FormatKind.RUST: "Rust",
    FormatKind.PYTHON: "Python",
    FormatKind.JAVASCRIPT: "JavaScript",
    FormatKind.CPP: "C++",
    FormatKind.EXCEL: "Excel",
}

EXTENSIONS: Dict[str, FormatKind] = {
    ".docx": FormatKind.DOCX,
    ".txt": FormatKind.PLAIN_TEXT,
    ".text": FormatKind.PLAIN_TEXT,
    ".log": FormatKind.PLAIN_TEXT,
    ".json": FormatKind.JSON,
    ".xml": FormatKind.XML,
    ".csv": FormatKind.CSV,
    ".md": FormatKind.MARKDOWN,
    ".markdown": FormatKind.MARKDOWN,
    ".html": FormatKind.HTML,
    ".htm": FormatKind.HTML,
    ".png": FormatKind.PNG,
    ".jpg": FormatKind.JPG,
    ".jpeg": FormatKind.JPG,
    ".bmp": FormatKind.BMP,
    ".rs": FormatKind.RUST,
    ".py": FormatKind.PYTHON,
    ".pyw": FormatKind.PYTHON,
    ".js": FormatKind.JAVASCRIPT,
    ".mjs": FormatKind.JAVASCRIPT,
    ".cjs": FormatKind.JAVASCRIPT,
    ".c": FormatKind.C,
    ".h": FormatKind.C,
    ".cpp": FormatKind.CPP,
    ".cc": FormatKind.CPP,
    ".cxx": FormatKind.CPP,
    ".hpp": FormatKind.CPP,
    ".hh": FormatKind.CPP,
    ".hxx": FormatKind.CPP,
    ".yaml": FormatKind.YAML,
    ".yml": FormatKind.YAML,
    ".toml": FormatKind.TOML,
    ".xlsx": FormatKind.EXCEL,
    ".xlsm": FormatKind.EXCEL,
}

_CPP_MARKERS = re.compile(
    rb"^\s*(class|namespace|template\s*<|using\s+namespace)\b|std::|#include\s*<(iostream|string|vector|memory|map)>",
    re.MULTILINE,
)


def sniff_image(head: bytes) -> Optional[FormatKind]:
    if head.startswith(b"\x89PNG\r\n\x1a\n"):
        return FormatKind.PNG
    if head.startswith(b"\xff\xd8\xff"):
        return FormatKind.JPG
    if head.startswith(b"BM"):
        return FormatKind.BMP
    return None


def _read_head(path: str) -> bytes:
    try:
        with open(path, "rb") as f:
            return f.read(SNIFF_BYTES)
    except OSError:
        # unreadable files are reported by the reader, not the detector
        return b""


def detect_format(path: str, head: Optional[bytes] = None) -> FormatKind:
    """Classify ``path`` into a FormatKind.

    Doxygen:
    - @param path: Source file path; only its extension is used unless ambiguous.
    - @param head: Optional first bytes of the file for sniffing; read lazily when needed.
    - @return: The detected FormatKind.
    - @throws UnsupportedFormat: If the extension is unknown.
    """
    ext = os.path.splitext(path)[1].lower()
    kind = EXTENSIONS.get(ext)
    if kind is None:
        raise UnsupportedFormat(path, f"unsupported file type '{ext or '(none)'}'")

    if ext == ".h":
        if head is None:
            head = _read_head(path)
        return FormatKind.CPP if _CPP_MARKERS.search(head) else FormatKind.C

    if kind.is_image:
        if head is None:
            head = _read_head(path)
        sniffed = sniff_image(head)
        if sniffed is not None:
            return sniffed
    return kind
