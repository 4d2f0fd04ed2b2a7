"""Markdown and HTML readers.

Markup is reduced to its visible text; headings, lists, quotes, code and
tables are approximated with the block types of the document model.
"""

from __future__ import annotations

import re
from typing import List, Optional

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString
from markdown_it import MarkdownIt
from markdown_it.token import Token

from topdf.errors import ParseError

from .model import CodeBlock, Document, Paragraph, Table, TextRun
from .txt import TAB_WIDTH, decode_text

BULLET = "• "

_md = MarkdownIt("commonmark").enable("table").enable("strikethrough")


def _inline_runs(token: Token) -> List[TextRun]:
    runs: List[TextRun] = []
    bold = italic = 0
    for child in token.children or []:
        kind = child.type
        if kind == "text":
            runs.append(TextRun(child.content, bold=bold > 0, italic=italic > 0))
        elif kind == "strong_open":
            bold += 1
        elif kind == "strong_close":
            bold -= 1
        elif kind == "em_open":
            italic += 1
        elif kind == "em_close":
            italic -= 1
        elif kind == "code_inline":
            runs.append(TextRun(child.content, monospace=True))
        elif kind == "softbreak":
            runs.append(TextRun(" "))
        elif kind == "hardbreak":
            runs.append(TextRun("\n"))
        elif kind == "image":
            alt = child.content or ""
            if alt:
                runs.append(TextRun(f"[{alt}]", italic=True))
    return runs


def _inline_text(token: Token) -> str:
    return "".join(r.text for r in _inline_runs(token)).strip()


def _collect_table(tokens: List[Token], start: int) -> tuple[Table, int]:
    """Read table tokens from ``start`` (table_open) to the matching table_close."""
    rows: List[List[str]] = []
    header = False
    i = start + 1
    while i < len(tokens) and tokens[i].type != "table_close":
        tok = tokens[i]
        if tok.type == "tr_open":
            rows.append([])
        elif tok.type in ("th_open", "td_open"):
            if tok.type == "th_open":
                header = True
            nxt = tokens[i + 1] if i + 1 < len(tokens) else None
            cell = _inline_text(nxt) if nxt is not None and nxt.type == "inline" else ""
            if rows:
                rows[-1].append(cell)
        i += 1
    return Table(rows=rows, header=header), i


def read_markdown(data: bytes) -> Document:
    text = decode_text(data, "Markdown")
    tokens = _md.parse(text)

    doc = Document()
    lists: List[List[int]] = []  # [ordered, counter] per open list
    quote_depth = 0
    prefix: Optional[str] = None

    i = 0
    while i < len(tokens):
        tok = tokens[i]
        kind = tok.type
        if kind == "heading_open":
            level = int(tok.tag[1:])
            runs = [TextRun(r.text, bold=True, italic=r.italic, monospace=r.monospace) for r in _inline_runs(tokens[i + 1])]
            para = Paragraph(runs=runs, level=level, indent=quote_depth)
            if level == 1 and doc.title is None:
                doc.title = para.text.strip() or None
            doc.add(para)
            i += 3
            continue
        if kind == "paragraph_open":
            runs = _inline_runs(tokens[i + 1])
            if prefix:
                runs.insert(0, TextRun(prefix))
                prefix = None
            if any(r.text.strip() for r in runs):
                doc.add(Paragraph(runs=runs, indent=len(lists) + quote_depth))
            i += 3
            continue
        if kind == "bullet_list_open":
            lists.append([0, 0])
        elif kind == "ordered_list_open":
            start = tok.attrGet("start")
            lists.append([1, int(start) - 1 if start is not None else 0])
        elif kind in ("bullet_list_close", "ordered_list_close"):
            if lists:
                lists.pop()
        elif kind == "list_item_open":
            if lists:
                entry = lists[-1]
                if entry[0]:
                    entry[1] += 1
                    prefix = f"{entry[1]}. "
                else:
                    prefix = BULLET
        elif kind == "blockquote_open":
            quote_depth += 1
        elif kind == "blockquote_close":
            quote_depth = max(0, quote_depth - 1)
        elif kind in ("fence", "code_block"):
            info = (tok.info or "").strip()
            language = info.split()[0] if info else None
            doc.add(CodeBlock(text=tok.content.expandtabs(TAB_WIDTH).rstrip("\n"), language=language))
        elif kind == "table_open":
            table, i = _collect_table(tokens, i)
            if table.rows:
                doc.add(table)
        elif kind == "html_block":
            visible = BeautifulSoup(tok.content, "html.parser").get_text(" ", strip=True)
            if visible:
                doc.add(Paragraph.of(visible, indent=len(lists) + quote_depth))
        i += 1
    return doc


_SKIP_TAGS = {"script", "style", "head", "noscript", "template", "svg", "iframe", "object", "canvas"}
_BLOCK_TAGS = {
    "p", "div", "section", "article", "header", "footer", "main", "nav", "aside",
    "blockquote", "figure", "figcaption", "address", "form", "fieldset", "dl", "dt",
    "dd", "body", "html", "center", "hr", "details", "summary",
}
_HEADINGS = {"h1": 1, "h2": 2, "h3": 3, "h4": 4, "h5": 5, "h6": 6}
_BOLD_TAGS = {"b", "strong"}
_ITALIC_TAGS = {"i", "em", "cite", "var"}
_MONO_TAGS = {"code", "kbd", "samp", "tt"}
_WS = re.compile(r"\s+")


class _HtmlWalker:
    """Accumulate inline runs and flush them into blocks at block boundaries."""

    def __init__(self) -> None:
        self.doc = Document()
        self.runs: List[TextRun] = []
        self.lists: List[List[int]] = []
        self.quote_depth = 0

    def flush(self, level: int = 0) -> None:
        runs = [r for r in self.runs if r.text]
        self.runs = []
        if not runs:
            return
        runs[0].text = runs[0].text.lstrip(" ")
        runs[-1].text = runs[-1].text.rstrip(" ")
        for r in runs:
            r.text = r.text.replace(" \n", "\n").replace("\n ", "\n")
        if not any(r.text.strip() for r in runs):
            return
        if level:
            for r in runs:
                r.bold = True
        indent = len(self.lists) + self.quote_depth
        self.doc.add(Paragraph(runs=runs, level=level, indent=indent))

    def text(self, value: str, bold: bool, italic: bool, mono: bool) -> None:
        value = _WS.sub(" ", value)
        if not value:
            return
        if value == " " and (not self.runs or self.runs[-1].text.endswith((" ", "\n"))):
            return
        self.runs.append(TextRun(value, bold=bold, italic=italic, monospace=mono))

    def walk(self, node, bold: bool = False, italic: bool = False, mono: bool = False) -> None:
        if isinstance(node, PreformattedString):
            return
        if isinstance(node, NavigableString):
            self.text(str(node), bold, italic, mono)
            return
        if not isinstance(node, Tag):
            return
        name = (node.name or "").lower()
        if name in _SKIP_TAGS:
            return
        if name in _HEADINGS:
            self.flush()
            self._children(node, True, italic, mono)
            self.flush(level=_HEADINGS[name])
            return
        if name == "br":
            self.runs.append(TextRun("\n"))
            return
        if name == "img":
            alt = (node.get("alt") or "").strip()
            if alt:
                self.runs.append(TextRun(f"[{alt}]", italic=True))
            return
        if name == "pre":
            self.flush()
            self._code(node)
            return
        if name == "table":
            self.flush()
            self._table(node)
            return
        if name in ("ul", "ol"):
            self.flush()
            start = node.get("start") if name == "ol" else None
            try:
                counter = int(start) - 1 if start is not None else 0
            except ValueError:
                counter = 0
            self.lists.append([1 if name == "ol" else 0, counter])
            self._children(node, bold, italic, mono)
            self.flush()
            self.lists.pop()
            return
        if name == "li":
            self.flush()
            prefix = BULLET
            if self.lists and self.lists[-1][0]:
                self.lists[-1][1] += 1
                prefix = f"{self.lists[-1][1]}. "
            self.runs.append(TextRun(prefix))
            self._children(node, bold, italic, mono)
            self.flush()
            return
        if name == "blockquote":
            self.flush()
            self.quote_depth += 1
            self._children(node, bold, italic, mono)
            self.flush()
            self.quote_depth -= 1
            return
        if name in _BLOCK_TAGS:
            self.flush()
            self._children(node, bold, italic, mono)
            self.flush()
            return
        self._children(
            node,
            bold or name in _BOLD_TAGS,
            italic or name in _ITALIC_TAGS,
            mono or name in _MONO_TAGS,
        )

    def _children(self, node: Tag, bold: bool, italic: bool, mono: bool) -> None:
        for child in node.children:
            self.walk(child, bold, italic, mono)

    def _code(self, node: Tag) -> None:
        language = None
        for el in [node] + node.find_all("code", limit=1):
            for cls in el.get("class") or []:
                if cls.startswith("language-"):
                    language = cls[len("language-"):]
        text = node.get_text().expandtabs(TAB_WIDTH).strip("\n")
        if text.strip():
            self.doc.add(CodeBlock(text=text, language=language))

    def _table(self, node: Tag) -> None:
        rows: List[List[str]] = []
        header = False
        for tr in node.find_all("tr"):
            cells = tr.find_all(["td", "th"], recursive=False)
            if not cells:
                continue
            if not rows and all(c.name == "th" for c in cells):
                header = True
            rows.append([_WS.sub(" ", c.get_text(" ", strip=True)) for c in cells])
        if rows:
            self.doc.add(Table(rows=rows, header=header))


def read_html(data: bytes) -> Document:
    soup = BeautifulSoup(data, "html.parser")
    walker = _HtmlWalker()
    title = soup.title.get_text(strip=True) if soup.title else ""
    try:
        walker.walk(soup)
    except RecursionError as exc:
        raise ParseError("HTML", "markup nested too deeply") from exc
    walker.flush()
    walker.doc.title = title or None
    return walker.doc
