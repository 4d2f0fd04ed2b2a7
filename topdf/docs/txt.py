from __future__ import annotations

import codecs
from typing import List

from topdf.errors import ParseError

from .model import CodeBlock, Document, Paragraph

TAB_WIDTH = 4


def decode_text(data: bytes, fmt: str) -> str:
    """Decode source bytes as UTF-8 (or UTF-16 with a BOM) and normalise newlines.

    Doxygen:
    - @param data: Raw file content.
    - @param fmt: Format name used in the ParseError message.
    - @return: Decoded text with ``\\n`` line endings and no BOM.
    - @throws ParseError: With the byte offset of the first invalid sequence.
    """
    try:
        if data.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
            text = data.decode("utf-16")
        else:
            text = data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ParseError(fmt, f"invalid text encoding ({exc.reason})", offset=exc.start) from exc
    return text.replace("\r\n", "\n").replace("\r", "\n")


def split_paragraphs(text: str) -> List[str]:
    parts: List[str] = []
    buf: List[str] = []
    for line in (text or "").splitlines():
        if line.strip() == "":
            if buf:
                parts.append("\n".join(buf).strip("\n"))
                buf = []
        else:
            buf.append(line.rstrip())
    if buf:
        parts.append("\n".join(buf).strip("\n"))
    return parts


def read_txt(data: bytes) -> Document:
    content = decode_text(data, "Text")
    doc = Document()
    for para in split_paragraphs(content):
        doc.add(Paragraph.of(para))
    return doc


def make_code_reader(language: str, fmt: str):
    """Build a reader that puts the whole source file into one CodeBlock."""

    def read_code(data: bytes) -> Document:
        content = decode_text(data, fmt).expandtabs(TAB_WIDTH)
        return Document(blocks=[CodeBlock(text=content.rstrip("\n"), language=language)])

    read_code.__name__ = f"read_{language}"
    return read_code
