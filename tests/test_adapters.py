import pytest

from topdf.docs import CodeBlock, ImageItem, Paragraph, Table, parse_bytes
from topdf.docs.detect import FormatKind
from topdf.docs.pipeline import load_document
from topdf.docs.tabular import format_cell
from topdf.errors import ParseError


def test_every_wellformed_sample_produces_blocks(sample_files):
    for name, path in sample_files.items():
        kind, doc = load_document(path)
        assert not doc.is_empty, name
        assert doc.title, name


def test_plain_text_splits_paragraphs():
    doc = parse_bytes(FormatKind.PLAIN_TEXT, b"one\ntwo\r\n\r\nthree")
    assert [b.text for b in doc.blocks] == ["one\ntwo", "three"]


def test_invalid_utf8_reports_offset():
    with pytest.raises(ParseError) as err:
        parse_bytes(FormatKind.PLAIN_TEXT, b"abc\xff")
    assert err.value.offset == 3


def test_utf16_with_bom_is_decoded():
    data = "héllo".encode("utf-16")
    doc = parse_bytes(FormatKind.PLAIN_TEXT, data)
    assert doc.blocks[0].text == "héllo"


def test_code_expands_tabs():
    doc = parse_bytes(FormatKind.RUST, b"fn f() {\n\tx\n}\n")
    block = doc.blocks[0]
    assert isinstance(block, CodeBlock)
    assert block.language == "rust"
    assert "    x" in block.text


def test_json_is_pretty_printed():
    doc = parse_bytes(FormatKind.JSON, b'{"a":[1,2],"b":"\xe4\xb8\xad"}')
    text = doc.blocks[0].text
    assert '"a": [' in text
    assert "中" in text


@pytest.mark.parametrize(
    "kind, data",
    [
        (FormatKind.JSON, b'{"a": }'),
        (FormatKind.XML, b"<root><open></root>"),
        (FormatKind.YAML, b"key: [unclosed\n"),
        (FormatKind.TOML, b"[table\nkey = 1\n"),
        (FormatKind.CSV, b'a,b\n"unterminated,1\n'),
        (FormatKind.DOCX, b"not a zip file"),
        (FormatKind.EXCEL, b"not a workbook"),
        (FormatKind.PNG, b"\x89PNG\r\n\x1a\ntruncated"),
    ],
)
def test_malformed_input_raises_parse_error(kind, data):
    with pytest.raises(ParseError):
        parse_bytes(kind, data)


def test_json_error_offset_is_bytes():
    with pytest.raises(ParseError) as err:
        parse_bytes(FormatKind.JSON, '{"名": }'.encode("utf-8"))
    # the bad token sits after a 3-byte character
    assert err.value.offset == 8


def test_csv_rows_and_header():
    doc = parse_bytes(FormatKind.CSV, b"name,qty\nwidget,3\nshort\n")
    table = doc.blocks[0]
    assert isinstance(table, Table)
    assert table.header
    assert table.rows == [["name", "qty"], ["widget", "3"], ["short", ""]]


def test_empty_csv_is_empty_table():
    doc = parse_bytes(FormatKind.CSV, b"")
    assert doc.blocks == [Table(rows=[])]


def test_excel_sheets_become_headed_tables(sample_files):
    _, doc = load_document(sample_files["sheet.xlsx"])
    headings = [b.text for b in doc.blocks if isinstance(b, Paragraph)]
    tables = [b for b in doc.blocks if isinstance(b, Table)]
    assert headings == ["Sales", "Notes"]
    assert tables[0].rows[1] == ["Apple", "3", "1.25"]
    assert tables[1].rows == [["checked", "TRUE"]]


def test_format_cell_values():
    import datetime as dt

    assert format_cell(float("nan")) == ""
    assert format_cell(2.0) == "2"
    assert format_cell(True) == "TRUE"
    assert format_cell(dt.datetime(2024, 5, 1)) == "2024-05-01"
    assert format_cell(dt.datetime(2024, 5, 1, 13, 30)) == "2024-05-01 13:30:00"


def test_docx_structure(sample_files):
    _, doc = load_document(sample_files["doc.docx"])
    assert doc.title == "Quarterly notes"
    heading = doc.blocks[0]
    assert heading.level == 1 and heading.text == "Summary"
    body = doc.blocks[1]
    assert any(r.bold and r.text == "strongly" for r in body.runs)
    bullet = doc.blocks[2]
    assert bullet.text.startswith("• ") and bullet.indent == 1
    assert doc.blocks[3].rows == [["Region", "Total"], ["EU", "42"]]


def test_markdown_blocks():
    data = b"# Head\n\nText with **bold**.\n\n1. one\n2. two\n\n| a | b |\n|---|---|\n| 1 | 2 |\n\n```rust\nfn x() {}\n```\n"
    doc = parse_bytes(FormatKind.MARKDOWN, data)
    assert doc.title == "Head"
    texts = [b.text for b in doc.blocks if isinstance(b, Paragraph)]
    assert "1. one" in texts and "2. two" in texts
    table = next(b for b in doc.blocks if isinstance(b, Table))
    assert table.header and table.rows == [["a", "b"], ["1", "2"]]
    code = next(b for b in doc.blocks if isinstance(b, CodeBlock))
    assert code.language == "rust"


def test_html_skips_scripts_and_reads_title():
    data = b"<html><head><title>T</title><script>var x=1;</script></head><body><h2>Sub</h2><ul><li>a</li><li>b</li></ul><pre class='language-py'>x = 1</pre></body></html>"
    doc = parse_bytes(FormatKind.HTML, data)
    assert doc.title == "T"
    text = " ".join(doc.iter_text())
    assert "var x" not in text
    assert doc.blocks[0].level == 2
    assert [b.text for b in doc.blocks[1:3]] == ["• a", "• b"]
    assert isinstance(doc.blocks[3], CodeBlock) and doc.blocks[3].language == "py"


def test_bmp_is_converted_to_png(sample_files):
    kind, doc = load_document(sample_files["icon.bmp"])
    item = doc.blocks[0]
    assert kind is FormatKind.BMP
    assert isinstance(item, ImageItem)
    assert item.fmt == "png" and item.data.startswith(b"\x89PNG")
    assert (item.width, item.height) == (16, 16)


def test_excel_date_column_with_blank_cell():
    import datetime as dt
    import io

    from openpyxl import Workbook

    wb = Workbook()
    ws = wb.active
    ws.append([dt.datetime(2024, 1, 2), "a"])
    ws.append([None, "b"])
    buf = io.BytesIO()
    wb.save(buf)
    doc = parse_bytes(FormatKind.EXCEL, buf.getvalue())
    assert doc.blocks[0].rows == [["2024-01-02", "a"], ["", "b"]]


def test_format_cell_nat_is_empty():
    import pandas as pd

    assert format_cell(pd.NaT) == ""


def test_xml_with_declared_latin1_encoding():
    data = '<?xml version="1.0" encoding="ISO-8859-1"?><r>café</r>'.encode("latin-1")
    doc = parse_bytes(FormatKind.XML, data)
    assert "café" in doc.blocks[0].text


def test_yaml_keeps_scalars_that_fail_type_resolution():
    doc = parse_bytes(FormatKind.YAML, b"released: 2024-13-01\n")
    assert doc.blocks[0].text == "released: 2024-13-01"


@pytest.mark.parametrize(
    "kind, data",
    [
        (FormatKind.JSON, b"[" + b"1" * 5000 + b"]"),
        (FormatKind.TOML, b"n = " + b"1" * 5000 + b"\n"),
    ],
)
def test_oversized_integers_raise_parse_error(kind, data):
    with pytest.raises(ParseError):
        parse_bytes(kind, data)


def test_code_readers_follow_kind_language():
    for kind in FormatKind:
        if kind.is_code:
            block = parse_bytes(kind, b"x\n").blocks[0]
            assert isinstance(block, CodeBlock)
            assert block.language == kind.language
