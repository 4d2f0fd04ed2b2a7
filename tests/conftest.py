import io
import json

import pytest
from PIL import Image

from topdf.config import Settings
from topdf.fonts.resolver import FontResolver


@pytest.fixture
def settings():
    return Settings(invariant=True)


@pytest.fixture
def latin_only_resolver():
    # no font directories and no built-in CJK face: CJK must fall back to Latin
    return FontResolver(search_dirs=[], builtin_cjk_fallback=False)


@pytest.fixture
def resolver():
    return FontResolver(search_dirs=[], builtin_cjk_fallback=True)


def png_bytes(width=40, height=20, color=(200, 30, 30)):
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


def docx_bytes():
    from docx import Document

    d = Document()
    d.core_properties.title = "Quarterly notes"
    d.add_heading("Summary", level=1)
    p = d.add_paragraph("Revenue grew ")
    p.add_run("strongly").bold = True
    d.add_paragraph("first point", style="List Bullet")
    table = d.add_table(rows=2, cols=2)
    table.cell(0, 0).text = "Region"
    table.cell(0, 1).text = "Total"
    table.cell(1, 0).text = "EU"
    table.cell(1, 1).text = "42"
    buf = io.BytesIO()
    d.save(buf)
    return buf.getvalue()


def xlsx_bytes():
    from openpyxl import Workbook

    wb = Workbook()
    ws = wb.active
    ws.title = "Sales"
    ws.append(["Item", "Qty", "Price"])
    ws.append(["Apple", 3, 1.25])
    ws.append(["Pear", 10, 0.5])
    other = wb.create_sheet("Notes")
    other.append(["checked", True])
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


SAMPLES = {
    "notes.txt": b"First paragraph\nstill first.\n\nSecond paragraph.\n",
    "data.json": json.dumps({"name": "topdf", "tags": ["a", "b"]}).encode("utf-8"),
    "feed.xml": b"<?xml version='1.0'?><root><item id='1'>x</item></root>",
    "report.csv": b"name,qty\nwidget,3\ngadget,5\n",
    "readme.md": b"# Title\n\nSome *emphasis* and `code`.\n\n- one\n- two\n\n```python\nprint('hi')\n```\n",
    "page.html": b"<html><head><title>Page</title></head><body><h1>Hi</h1><p>Body <b>text</b></p></body></html>",
    "main.rs": b"fn main() {\n\tprintln!(\"hi\");\n}\n",
    "tool.py": b"def f():\n    return 1\n",
    "app.js": b"console.log('hi');\n",
    "lib.c": b"int add(int a, int b) { return a + b; }\n",
    "lib.cpp": b"#include <vector>\nstd::vector<int> v;\n",
    "conf.yaml": b"key: value\nlist:\n  - 1\n  - 2\n",
    "conf.toml": b"[server]\nport = 8080\n",
}


@pytest.fixture
def sample_files(tmp_path):
    """Write one well-formed sample per supported kind and return their paths."""
    paths = {}
    for name, data in SAMPLES.items():
        path = tmp_path / name
        path.write_bytes(data)
        paths[name] = str(path)
    binary = {
        "doc.docx": docx_bytes(),
        "sheet.xlsx": xlsx_bytes(),
        "pic.png": png_bytes(),
    }
    for name, data in binary.items():
        path = tmp_path / name
        path.write_bytes(data)
        paths[name] = str(path)
    jpg = tmp_path / "photo.jpg"
    Image.new("RGB", (30, 30), (0, 128, 255)).save(jpg, format="JPEG")
    paths["photo.jpg"] = str(jpg)
    bmp = tmp_path / "icon.bmp"
    Image.new("RGB", (16, 16), (0, 0, 0)).save(bmp, format="BMP")
    paths["icon.bmp"] = str(bmp)
    return paths
