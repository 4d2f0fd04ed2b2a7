"""FormatKind → reader dispatch.

Every reader has the same capability: ``reader(data: bytes) -> Document``.
"""

from __future__ import annotations

from typing import Callable, Dict

from topdf.errors import ParseError

from .detect import FormatKind
from .docx_io import read_docx
from .image_io import read_image
from .markup import read_html, read_markdown
from .model import Document
from .structured import read_json, read_toml, read_xml, read_yaml
from .tabular import read_csv, read_excel
from .txt import make_code_reader, read_txt

Reader = Callable[[bytes], Document]

ADAPTERS: Dict[FormatKind, Reader] = {
    FormatKind.DOCX: read_docx,
    FormatKind.PLAIN_TEXT: read_txt,
    FormatKind.JSON: read_json,
    FormatKind.XML: read_xml,
    FormatKind.CSV: read_csv,
    FormatKind.MARKDOWN: read_markdown,
    FormatKind.HTML: read_html,
    FormatKind.PNG: read_image,
    FormatKind.JPG: read_image,
    FormatKind.BMP: read_image,
    FormatKind.YAML: read_yaml,
    FormatKind.TOML: read_toml,
    FormatKind.EXCEL: read_excel,
}
ADAPTERS.update({kind: make_code_reader(kind.language, kind.label) for kind in FormatKind if kind.is_code})


def parse_bytes(kind: FormatKind, data: bytes) -> Document:
    """Parse ``data`` with the reader registered for ``kind``."""
    reader = ADAPTERS[kind]
    try:
        return reader(data)
    except RecursionError as exc:
        raise ParseError(kind.label, "input nested too deeply") from exc
