"""Error taxonomy for the conversion engine.

Every error raised while converting one file derives from ``ConversionError``
so the batch scheduler can record it as that job's failure without touching
sibling jobs.
"""

from __future__ import annotations

from typing import Optional


class ConversionError(Exception):
    """Base class for all per-job conversion failures."""


class UnsupportedFormat(ConversionError):
    def __init__(self, path: str, reason: str = "unsupported file type") -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"{reason}: {path}")


class ParseError(ConversionError):
    """Malformed input for a known format.

    Doxygen:
    - @param fmt: Human readable format name (e.g. "JSON").
    - @param message: Description of the underlying problem.
    - @param offset: Byte offset of the problem in the input, when known.
    """

    def __init__(self, fmt: str, message: str, offset: Optional[int] = None) -> None:
        self.fmt = fmt
        self.message = message
        self.offset = offset
        text = f"{fmt} parse error: {message}"
        if offset is not None:
            text += f" (at byte {offset})"
        super().__init__(text)


class FontResolutionError(ConversionError):
    """No available face covers a script; ``substitute`` is used instead.

    Non-fatal: the resolver returns it alongside the substituted profile so it
    can be logged while rendering proceeds.
    """

    def __init__(self, script: str, substitute: str) -> None:
        self.script = script
        self.substitute = substitute
        super().__init__(f"no font covers script {script}; substituting {substitute}")


class RenderError(ConversionError):
    """Unrecoverable layout or PDF serialisation failure."""


class FileIOError(ConversionError):
    def __init__(self, path: str, message: str) -> None:
        self.path = path
        self.message = message
        super().__init__(f"I/O error for {path}: {message}")


__all__ = [
    "ConversionError",
    "UnsupportedFormat",
    "ParseError",
    "FontResolutionError",
    "RenderError",
    "FileIOError",
]
