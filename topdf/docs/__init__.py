"""Document layer: format detection, readers and the intermediate model.

Exposes:
- Data model: Document, Paragraph, TextRun, Table, CodeBlock, ImageItem
- Detection: FormatKind, detect_format
- Readers: one per FormatKind, dispatched by parse_bytes
- Pipeline (topdf.docs.pipeline): convert_file for a single source file
"""

from .model import Block, CodeBlock, Document, ImageItem, Paragraph, Table, TextRun
from .detect import FormatKind, detect_format
from .adapters import ADAPTERS, parse_bytes

__all__ = [
    "Block",
    "CodeBlock",
    "Document",
    "ImageItem",
    "Paragraph",
    "Table",
    "TextRun",
    "FormatKind",
    "detect_format",
    "ADAPTERS",
    "parse_bytes",
]
