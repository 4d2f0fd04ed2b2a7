"""topdf: convert documents, data files, source code and images to PDF.

Packages:
- topdf.docs: format detection, per-format readers and the intermediate Document
- topdf.fonts: script detection and font resolution with CJK fallback
- topdf.render: line layout and paginated PDF output via reportlab
- topdf.pipeline: concurrent batch conversion with a status stream
"""

from topdf.docs.pipeline import convert_file
from topdf.errors import (
    ConversionError,
    FileIOError,
    FontResolutionError,
    ParseError,
    RenderError,
    UnsupportedFormat,
)
from topdf.pipeline.batch import (
    BatchScheduler,
    BatchSession,
    JobStatus,
    StatusEvent,
    cancel,
    submit,
    subscribe,
)

__version__ = "0.1.0"

__all__ = [
    "convert_file",
    "submit",
    "subscribe",
    "cancel",
    "BatchScheduler",
    "BatchSession",
    "JobStatus",
    "StatusEvent",
    "ConversionError",
    "FileIOError",
    "FontResolutionError",
    "ParseError",
    "RenderError",
    "UnsupportedFormat",
]
