from __future__ import annotations

import io
import re
import zipfile
from typing import List, Optional

from docx import Document as DocxDocument
from docx.opc.exceptions import PackageNotFoundError
from docx.table import Table as DocxTable
from docx.text.paragraph import Paragraph as DocxParagraph

from topdf.errors import ParseError

from .model import Document, Paragraph, Table, TextRun

_HEADING_STYLE = re.compile(r"^heading\s*(\d)$", re.IGNORECASE)


def _heading_level(style_name: str) -> int:
    name = (style_name or "").strip()
    if name.lower() == "title":
        return 1
    m = _HEADING_STYLE.match(name)
    if m:
        return max(1, min(6, int(m.group(1))))
    return 0


def _style_name(para: DocxParagraph) -> str:
    try:
        return para.style.name if para.style is not None else ""
    except (KeyError, AttributeError):
        return ""


def _convert_paragraph(para: DocxParagraph) -> Optional[Paragraph]:
    runs: List[TextRun] = []
    for run in para.runs:
        if run.text:
            runs.append(TextRun(text=run.text, bold=bool(run.bold), italic=bool(run.italic)))
    if not any(r.text.strip() for r in runs):
        # hyperlinks and fields keep their text outside of para.runs
        text = para.text
        if not text.strip():
            return None
        runs = [TextRun(text=text)]

    style = _style_name(para)
    level = _heading_level(style)
    indent = 0
    if level == 0 and style.lower().startswith("list"):
        runs.insert(0, TextRun(text="• "))
        indent = 1
    return Paragraph(runs=runs, level=level, indent=indent)


def _convert_table(table: DocxTable) -> Table:
    rows: List[List[str]] = []
    for row in table.rows:
        cells: List[str] = []
        seen = set()
        for cell in row.cells:
            # horizontally merged cells are returned once per grid column
            key = id(cell._tc)
            if key in seen:
                continue
            seen.add(key)
            cells.append(cell.text.strip())
        rows.append(cells)
    return Table(rows=rows)


def read_docx(data: bytes) -> Document:
    """Extract the text flow (paragraphs and simple tables) of a DOCX file.

    Images, embedded objects, headers and footers are dropped.
    """
    try:
        docx = DocxDocument(io.BytesIO(data))
    except (PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError) as exc:
        raise ParseError("DOCX", f"not a valid Word document ({exc})") from exc
    except Exception as exc:
        # corrupt XML parts surface as lxml errors
        raise ParseError("DOCX", f"{type(exc).__name__}: {exc}") from exc

    doc = Document()
    try:
        doc.title = (docx.core_properties.title or "").strip() or None
    except (AttributeError, ValueError):
        doc.title = None

    try:
        for item in docx.iter_inner_content():
            if isinstance(item, DocxParagraph):
                para = _convert_paragraph(item)
                if para is not None:
                    doc.add(para)
            elif isinstance(item, DocxTable):
                table = _convert_table(item)
                if table.rows:
                    doc.add(table)
    except (KeyError, ValueError, AttributeError) as exc:
        raise ParseError("DOCX", f"unreadable document body ({exc})") from exc
    return doc
