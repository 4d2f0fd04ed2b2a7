from __future__ import annotations

import logging
import os
import tempfile
from typing import Optional, Tuple

from topdf.config import Settings, get_settings
from topdf.errors import FileIOError
from topdf.fonts.resolver import FontResolver, get_font_resolver
from topdf.render.pdf import PdfRenderer

from .adapters import parse_bytes
from .detect import FormatKind, detect_format
from .model import Document

logger = logging.getLogger(__name__)


def default_output_path(source: str, output_dir: Optional[str] = None) -> str:
    """``<output_dir>/<stem>.pdf``, or beside the source when no directory is given."""
    base_dir = output_dir if output_dir else os.path.dirname(os.path.abspath(source))
    stem = os.path.splitext(os.path.basename(source))[0] or os.path.basename(source)
    return os.path.join(base_dir, f"{stem}.pdf")


def read_source(path: str) -> bytes:
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as exc:
        raise FileIOError(path, exc.strerror or str(exc)) from exc


def load_document(path: str) -> Tuple[FormatKind, Document]:
    """Detect the format of ``path`` and parse it into a Document.

    Doxygen:
    - @param path: Source file.
    - @return: (kind, document) pair.
    - @throws UnsupportedFormat, FileIOError, ParseError
    """
    kind = detect_format(path, head=b"")
    data = read_source(path)
    if kind is FormatKind.C or kind.is_image:
        # re-run the sniff now that the content is in memory
        kind = detect_format(path, head=data[:4096])
    doc = parse_bytes(kind, data)
    if doc.title is None:
        doc.title = os.path.splitext(os.path.basename(path))[0]
    return kind, doc


def write_atomic(path: str, data: bytes) -> None:
    """Write ``data`` to ``path`` via a temporary file so no partial output is left."""
    directory = os.path.dirname(os.path.abspath(path))
    try:
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".topdf-", suffix=".tmp", dir=directory)
    except OSError as exc:
        raise FileIOError(path, exc.strerror or str(exc)) from exc
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        # mkstemp creates the file owner-only
        os.chmod(tmp_path, 0o644)
        os.replace(tmp_path, path)
    except OSError as exc:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise FileIOError(path, exc.strerror or str(exc)) from exc


def render_document(
    doc: Document,
    resolver: Optional[FontResolver] = None,
    settings: Optional[Settings] = None,
    name: Optional[str] = None,
) -> bytes:
    """Resolve fonts for ``doc`` and render it to PDF bytes."""
    resolver = resolver or get_font_resolver()
    fonts = resolver.resolve_for(doc, name=name)
    return PdfRenderer(settings or get_settings()).render(doc, fonts)


def convert_file(
    source: str,
    output_path: Optional[str] = None,
    resolver: Optional[FontResolver] = None,
    settings: Optional[Settings] = None,
) -> str:
    """Convert one file to PDF: detect → parse → resolve fonts → render → write.

    Doxygen:
    - @param source: Input file path.
    - @param output_path: Destination; defaults to ``<stem>.pdf`` beside the source.
    - @param resolver: FontResolver to use; the process-wide one by default.
    - @param settings: Render settings; the process-wide ones by default.
    - @return: The written output path.
    - @throws ConversionError: Any per-file failure (unsupported, parse, render, I/O).
    """
    output_path = output_path or default_output_path(source)

    logger.info("Converting %s", source)
    kind, doc = load_document(source)
    logger.debug("%s detected as %s with %d blocks", source, kind.label, len(doc.blocks))

    pdf_bytes = render_document(doc, resolver, settings, name=os.path.basename(source))
    write_atomic(output_path, pdf_bytes)
    logger.info("Wrote %s (%d bytes)", output_path, len(pdf_bytes))
    return output_path
