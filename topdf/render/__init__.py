"""PDF rendering: line layout and paginated canvas output."""

from .pdf import PdfRenderer

__all__ = [
    "PdfRenderer",
]
