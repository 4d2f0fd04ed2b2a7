"""Readers for structured text formats (JSON, XML, YAML, TOML).

The input is validated with the format's parser and then kept as an
indentation-preserving CodeBlock. JSON is re-indented; the other formats keep
their source layout.
"""

from __future__ import annotations

import codecs
import json
import re
import tomllib
import xml.etree.ElementTree as ET
from typing import Optional

import yaml

from topdf.errors import ParseError

from .model import CodeBlock, Document
from .txt import TAB_WIDTH, decode_text


def char_to_byte_offset(text: str, index: int) -> int:
    """Convert a character index in ``text`` into a UTF-8 byte offset."""
    index = max(0, min(index, len(text)))
    return len(text[:index].encode("utf-8"))


def line_col_to_byte_offset(text: str, line: int, column: int) -> int:
    """Convert a 1-based line and 0-based column into a UTF-8 byte offset."""
    lines = text.split("\n")
    line = max(1, min(line, len(lines)))
    index = sum(len(l) + 1 for l in lines[: line - 1]) + max(0, column)
    return char_to_byte_offset(text, index)


def _code_document(text: str, language: str) -> Document:
    return Document(blocks=[CodeBlock(text=text.expandtabs(TAB_WIDTH).rstrip("\n"), language=language)])


def read_json(data: bytes) -> Document:
    text = decode_text(data, "JSON")
    try:
        value = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ParseError("JSON", exc.msg, offset=char_to_byte_offset(text, exc.pos)) from exc
    except ValueError as exc:
        # e.g. integers past the interpreter's digit limit
        raise ParseError("JSON", str(exc)) from exc
    pretty = json.dumps(value, indent=2, ensure_ascii=False)
    return _code_document(pretty, "json")


_XML_ENCODING = re.compile(rb"""^<\?xml[^>]*?\bencoding\s*=\s*["']([A-Za-z][A-Za-z0-9._-]*)["']""")


def _decode_xml(data: bytes) -> str:
    """Decode XML source with the encoding named in its declaration, if any."""
    match = _XML_ENCODING.match(data)
    if match is None or data.startswith((codecs.BOM_UTF8, codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
        return decode_text(data, "XML")
    try:
        codec = codecs.lookup(match.group(1).decode("ascii")).name
    except LookupError:
        return decode_text(data, "XML")
    if codec in ("utf-8", "utf-16"):
        return decode_text(data, "XML")
    try:
        text = data.decode(codec)
    except UnicodeDecodeError as exc:
        raise ParseError("XML", f"invalid {codec} text ({exc.reason})", offset=exc.start) from exc
    return text.replace("\r\n", "\n").replace("\r", "\n")


def read_xml(data: bytes) -> Document:
    # ElementTree handles the XML declaration's encoding itself
    try:
        ET.fromstring(data)
    except ET.ParseError as exc:
        offset: Optional[int] = None
        position = getattr(exc, "position", None)
        try:
            text = data.decode("utf-8-sig")
        except UnicodeDecodeError:
            text = None
        if position and text is not None:
            offset = line_col_to_byte_offset(text.replace("\r\n", "\n"), position[0], position[1])
        raise ParseError("XML", str(exc), offset=offset) from exc
    return _code_document(_decode_xml(data), "xml")


def read_yaml(data: bytes) -> Document:
    text = decode_text(data, "YAML")
    try:
        # syntax only; constructing values would reject scalars such as bad dates
        for _ in yaml.compose_all(text, Loader=yaml.SafeLoader):
            pass
    except yaml.YAMLError as exc:
        offset = None
        mark = getattr(exc, "problem_mark", None)
        if mark is not None:
            offset = char_to_byte_offset(text, mark.index)
        raise ParseError("YAML", str(exc).replace("\n", " "), offset=offset) from exc
    return _code_document(text, "yaml")


def read_toml(data: bytes) -> Document:
    text = decode_text(data, "TOML")
    try:
        tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        pos = getattr(exc, "pos", None)
        offset = char_to_byte_offset(text, pos) if isinstance(pos, int) else None
        raise ParseError("TOML", str(exc), offset=offset) from exc
    except ValueError as exc:
        raise ParseError("TOML", str(exc)) from exc
    return _code_document(text, "toml")
