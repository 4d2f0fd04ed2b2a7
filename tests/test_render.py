import re

import pytest

from topdf.config import Settings
from topdf.docs.model import CodeBlock, Document, ImageItem, Paragraph, Table, TextRun
from topdf.errors import RenderError
from topdf.render import PdfRenderer
from topdf.render.layout import line_width, make_atoms, wrap_atoms

from conftest import png_bytes


def page_count(pdf: bytes) -> int:
    return len(re.findall(rb"/Type /Page(?!s)", pdf))


def render(doc, resolver, settings=None):
    fonts = resolver.resolve_for(doc)
    return PdfRenderer(settings or Settings()).render(doc, fonts)


def test_empty_document_renders_single_blank_page(resolver):
    pdf = render(Document(), resolver)
    assert pdf.startswith(b"%PDF-")
    assert page_count(pdf) == 1


def test_rendering_is_deterministic(resolver):
    doc = Document(
        title="same",
        blocks=[
            Paragraph.of("Heading", level=1),
            Paragraph(runs=[TextRun("mixed "), TextRun("bold", bold=True), TextRun(" 中文")]),
            CodeBlock("x = 1\nprint(x)", language="python"),
            Table(rows=[["a", "b"], ["1", "2"]], header=True),
        ],
    )
    assert render(doc, resolver) == render(doc, resolver)


def test_long_paragraph_paginates_instead_of_truncating(resolver):
    text = " ".join(f"word{i}" for i in range(3000))
    pdf = render(Document(blocks=[Paragraph.of(text)]), resolver)
    assert page_count(pdf) > 1


def test_long_table_splits_across_pages(resolver):
    rows = [["id", "value"]] + [[str(i), f"row {i}"] for i in range(300)]
    pdf = render(Document(blocks=[Table(rows=rows, header=True)]), resolver)
    assert page_count(pdf) > 1


def test_long_code_block_paginates(resolver):
    code = "\n".join(f"line_{i} = {i}" for i in range(400))
    pdf = render(Document(blocks=[CodeBlock(code)]), resolver)
    assert page_count(pdf) > 1


def test_images_fit_on_one_page(resolver):
    wide = ImageItem(png_bytes(4000, 100), 4000, 100)
    tall = ImageItem(png_bytes(20, 5000), 20, 5000)
    pdf = render(Document(blocks=[wide]), resolver)
    assert page_count(pdf) == 1
    assert b"/Subtype /Image" in pdf
    pdf = render(Document(blocks=[tall]), resolver)
    assert page_count(pdf) == 1


def test_cjk_text_renders_with_fallback_font(latin_only_resolver):
    doc = Document(blocks=[Paragraph.of("日本語のテキスト")])
    pdf = render(doc, latin_only_resolver)
    assert page_count(pdf) == 1


def test_page_size_setting_changes_media_box(resolver):
    pdf = render(Document(blocks=[Paragraph.of("x")]), resolver, Settings(page_size="letter"))
    assert b"612 792" in pdf


def test_unknown_block_type_raises_render_error(resolver):
    doc = Document(blocks=["not a block"])
    with pytest.raises(RenderError):
        render(doc, resolver)


def test_wrap_respects_width_and_hard_breaks():
    atoms = make_atoms([("alpha beta gamma delta\nepsilon", "Helvetica", 10)])
    lines = wrap_atoms(atoms, 60)
    assert len(lines) > 2
    assert all(line_width(line) <= 60 + 10 for line in lines)
    assert lines[-1][0].text == "epsilon"


def test_cjk_breaks_between_characters():
    atoms = make_atoms([("中文字体", "Helvetica", 10)])
    assert [a.text for a in atoms] == ["中", "文", "字", "体"]


def test_wrap_empty_gives_single_line():
    assert wrap_atoms([], 100) == [[]]
