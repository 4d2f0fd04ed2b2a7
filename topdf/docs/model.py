from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Union


@dataclass
class TextRun:
    text: str
    bold: bool = False
    italic: bool = False
    monospace: bool = False


@dataclass
class Paragraph:
    runs: List[TextRun] = field(default_factory=list)
    # 0 = body text, 1..6 = heading level
    level: int = 0
    indent: int = 0

    @classmethod
    def of(cls, text: str, level: int = 0, indent: int = 0, bold: bool = False) -> "Paragraph":
        return cls(runs=[TextRun(text=text, bold=bold)], level=level, indent=indent)

    @property
    def text(self) -> str:
        return "".join(r.text for r in self.runs)


@dataclass
class Table:
    rows: List[List[str]] = field(default_factory=list)
    header: bool = False

    @property
    def column_count(self) -> int:
        return max((len(r) for r in self.rows), default=0)


@dataclass
class CodeBlock:
    text: str
    language: Optional[str] = None


@dataclass
class ImageItem:
    """Embeddable image bytes (PNG or JPEG) with intrinsic pixel size."""

    data: bytes
    width: int
    height: int
    fmt: str = "png"


Block = Union[Paragraph, Table, CodeBlock, ImageItem]


@dataclass
class Document:
    blocks: List[Block] = field(default_factory=list)
    title: Optional[str] = None

    def add(self, block: Block) -> None:
        self.blocks.append(block)

    @property
    def is_empty(self) -> bool:
        return not self.blocks

    def iter_text(self) -> Iterator[str]:
        """Yield every piece of text in rendering order."""
        if self.title:
            yield self.title
        for block in self.blocks:
            if isinstance(block, Paragraph):
                for run in block.runs:
                    yield run.text
            elif isinstance(block, Table):
                for row in block.rows:
                    yield from row
            elif isinstance(block, CodeBlock):
                yield block.text
