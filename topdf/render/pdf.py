"""Paginate a Document onto reportlab canvas pages.

Blocks are laid out top to bottom. When the next line, table row or image
does not fit in the remaining space a new page is started.
"""

from __future__ import annotations

import io
import logging
import math
from typing import List, Optional, Sequence, Tuple

from reportlab.lib.pagesizes import A4, legal, letter
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from topdf.config import Settings, get_settings
from topdf.docs.model import CodeBlock, Document, ImageItem, Paragraph, Table, TextRun
from topdf.errors import ConversionError, RenderError
from topdf.fonts.resolver import FontProfile, FontSet
from topdf.fonts.scripts import Script, split_by_script

from .layout import Line, make_atoms, measure, wrap_atoms

logger = logging.getLogger(__name__)

PAGE_SIZES = {"A4": A4, "letter": letter, "legal": legal}
HEADING_SIZES = {1: 20.0, 2: 17.0, 3: 15.0, 4: 13.0, 5: 12.0, 6: 11.0}
INDENT_STEP = 18.0
CELL_PADDING = 4.0
CODE_PADDING = 4.0
_MONO_VARIANTS = {
    (False, False): "Courier",
    (True, False): "Courier-Bold",
    (False, True): "Courier-Oblique",
    (True, True): "Courier-BoldOblique",
}


def _winansi(text: str) -> bool:
    try:
        text.encode("cp1252")
    except UnicodeEncodeError:
        return False
    return True


class _PageWriter:
    """Canvas plus the vertical cursor for one render."""

    def __init__(self, settings: Settings, fonts: FontSet) -> None:
        self.settings = settings
        self.fonts = fonts
        self.page_w, self.page_h = PAGE_SIZES.get(settings.page_size, A4)
        self.margin = settings.margin
        self.usable_w = self.page_w - 2 * self.margin
        self.usable_h = self.page_h - 2 * self.margin
        self.top = self.page_h - self.margin
        self.bottom = self.margin
        self.buffer = io.BytesIO()
        self.canvas = canvas.Canvas(
            self.buffer,
            pagesize=(self.page_w, self.page_h),
            invariant=1 if settings.invariant else 0,
            pageCompression=1,
        )
        self.y = self.top
        self.page_count = 0
        self.dirty = False

    # page handling

    @property
    def fresh(self) -> bool:
        return self.y >= self.top - 1e-6

    def new_page(self) -> None:
        self.canvas.showPage()
        self.page_count += 1
        self.y = self.top
        self.dirty = False

    def ensure(self, height: float) -> None:
        if self.y - height < self.bottom - 1e-6 and not self.fresh:
            self.new_page()

    def gap(self, height: float) -> None:
        if not self.fresh:
            self.y = max(self.bottom, self.y - height)

    # fonts

    def _latin_face(self, text: str, bold: bool, italic: bool, mono: bool) -> str:
        profile = self.fonts.for_script(Script.LATIN)
        if mono and _winansi(text):
            return _MONO_VARIANTS[(bold, italic)]
        return profile.variant(bold, italic)

    def pieces(self, runs: Sequence[TextRun], size: float, bold: bool = False, mono: bool = False) -> List[Tuple[str, str, float]]:
        out: List[Tuple[str, str, float]] = []
        for run in runs:
            b = bold or run.bold
            for script, chunk in split_by_script(run.text):
                if script == Script.LATIN:
                    face = self._latin_face(chunk, b, run.italic, mono or run.monospace)
                else:
                    face = self.fonts.for_script(script).variant(b, run.italic)
                out.append((chunk, face, size))
        return out

    # drawing

    def draw_line(self, line: Line, x: float, baseline: float) -> None:
        for span in line:
            if span.text.strip():
                self.canvas.setFont(span.font, span.size)
                self.canvas.drawString(x, baseline, span.text)
            x += span.width
        self.dirty = True

    def paragraph(self, para: Paragraph) -> None:
        level = para.level if para.level in HEADING_SIZES else 0
        size = HEADING_SIZES[level] if level else self.settings.font_size
        leading = size * self.settings.line_spacing
        indent = min(para.indent * INDENT_STEP, self.usable_w / 2)
        if level:
            self.gap(size * 0.4)
        lines = wrap_atoms(make_atoms(self.pieces(para.runs, size, bold=bool(level))), self.usable_w - indent)
        for line in lines:
            self.ensure(leading)
            self.draw_line(line, self.margin + indent, self.y - size)
            self.y -= leading
        self.gap(size * 0.5)

    def code(self, block: CodeBlock) -> None:
        size = self.settings.code_font_size
        leading = size * self.settings.line_spacing
        width = self.usable_w - 2 * CODE_PADDING
        self.gap(CODE_PADDING)
        for source_line in block.text.split("\n"):
            runs = [TextRun(source_line, monospace=True)]
            for line in wrap_atoms(make_atoms(self.pieces(runs, size, mono=True)), width):
                self.ensure(leading)
                self.canvas.setFillGray(0.94)
                self.canvas.rect(self.margin, self.y - leading, self.usable_w, leading, stroke=0, fill=1)
                self.canvas.setFillGray(0)
                self.draw_line(line, self.margin + CODE_PADDING, self.y - size)
                self.y -= leading
        self.gap(size)

    def column_widths(self, rows: List[List[str]], ncols: int, size: float, bold_first: bool) -> List[float]:
        """Width per column proportional to its widest cell, scaled to fit the page."""
        latin = self.fonts.for_script(Script.LATIN)
        natural = [0.0] * ncols
        for r, row in enumerate(rows):
            bold = bold_first and r == 0
            for c in range(ncols):
                text = row[c] if c < len(row) else ""
                widest = 0.0
                for part in text.split("\n"):
                    w = 0.0
                    for script, chunk in split_by_script(part):
                        profile: FontProfile = self.fonts.for_script(script) if script != Script.LATIN else latin
                        w += measure(chunk, profile.variant(bold, False), size)
                    widest = max(widest, w)
                natural[c] = max(natural[c], widest + 2 * CELL_PADDING)
        minimum = min(self.usable_w / ncols, 2 * size + 2 * CELL_PADDING)
        natural = [max(w, minimum) for w in natural]
        total = sum(natural)
        if total <= self.usable_w:
            return natural
        scale = self.usable_w / total
        return [w * scale for w in natural]

    def table(self, block: Table) -> None:
        ncols = block.column_count
        if ncols == 0:
            return
        size = max(6.0, self.settings.font_size - 1)
        leading = size * self.settings.line_spacing
        widths = self.column_widths(block.rows, ncols, size, block.header)

        for r, row in enumerate(block.rows):
            is_header = block.header and r == 0
            cells: List[List[Line]] = []
            for c in range(ncols):
                text = row[c] if c < len(row) else ""
                pieces = self.pieces([TextRun(text)], size, bold=is_header)
                cells.append(wrap_atoms(make_atoms(pieces), max(1.0, widths[c] - 2 * CELL_PADDING)))
            row_lines = max(len(lines) for lines in cells)
            offset = 0
            while offset < row_lines:
                remaining = row_lines - offset
                fits = int(math.floor((self.y - self.bottom - 2 * CELL_PADDING) / leading))
                whole_row_fits_page = remaining * leading + 2 * CELL_PADDING <= self.usable_h
                if fits < remaining and not self.fresh and (fits < 1 or whole_row_fits_page):
                    self.new_page()
                    continue
                take = max(1, min(remaining, fits))
                height = take * leading + 2 * CELL_PADDING
                x = self.margin
                for c in range(ncols):
                    if is_header:
                        self.canvas.setFillGray(0.88)
                        self.canvas.rect(x, self.y - height, widths[c], height, stroke=0, fill=1)
                        self.canvas.setFillGray(0)
                    self.canvas.setLineWidth(0.5)
                    self.canvas.rect(x, self.y - height, widths[c], height, stroke=1, fill=0)
                    baseline = self.y - CELL_PADDING - size
                    for line in cells[c][offset:offset + take]:
                        self.draw_line(line, x + CELL_PADDING, baseline)
                        baseline -= leading
                    x += widths[c]
                self.y -= height
                offset += take
        self.gap(self.settings.font_size * 0.8)

    def image(self, item: ImageItem) -> None:
        scale = self.usable_w / float(item.width)
        width, height = self.usable_w, item.height * scale
        if height > self.usable_h:
            scale = self.usable_h / float(item.height)
            width, height = item.width * scale, self.usable_h
        self.ensure(height)
        x = self.margin + (self.usable_w - width) / 2
        reader = ImageReader(io.BytesIO(item.data))
        self.canvas.drawImage(reader, x, self.y - height, width=width, height=height, mask="auto")
        self.dirty = True
        self.y -= height
        self.gap(self.settings.font_size)

    def finish(self, title: Optional[str]) -> bytes:
        self.canvas.setTitle(title or "Converted Document")
        self.canvas.setCreator("topdf")
        if self.dirty or self.page_count == 0:
            self.new_page()
        self.canvas.save()
        return self.buffer.getvalue()


class PdfRenderer:
    """Render Documents to PDF bytes with a resolved FontSet."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or get_settings()

    def render(self, document: Document, fonts: FontSet) -> bytes:
        """Lay out every block and return the finished PDF.

        Doxygen:
        - @param document: Intermediate document to render.
        - @param fonts: Profiles for the scripts present in the document.
        - @return: Complete PDF byte stream.
        - @throws RenderError: On unexpected failures inside reportlab.
        """
        writer = _PageWriter(self.settings, fonts)
        try:
            for block in document.blocks:
                if isinstance(block, Paragraph):
                    writer.paragraph(block)
                elif isinstance(block, CodeBlock):
                    writer.code(block)
                elif isinstance(block, Table):
                    writer.table(block)
                elif isinstance(block, ImageItem):
                    writer.image(block)
                else:
                    raise RenderError(f"unknown block type {type(block).__name__}")
            data = writer.finish(document.title)
        except ConversionError:
            raise
        except Exception as exc:
            raise RenderError(f"PDF rendering failed: {exc}") from exc
        logger.debug("Rendered %d blocks onto %d pages", len(document.blocks), writer.page_count)
        return data
