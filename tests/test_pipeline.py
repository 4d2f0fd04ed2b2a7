import os

import pytest

from topdf.docs.pipeline import convert_file, default_output_path, write_atomic
from topdf.errors import FileIOError, ParseError, UnsupportedFormat


def test_default_output_path(tmp_path):
    src = str(tmp_path / "notes.md")
    assert default_output_path(src) == str(tmp_path / "notes.pdf")
    assert default_output_path(src, "/out") == os.path.join("/out", "notes.pdf")


def test_convert_file_writes_pdf_beside_source(sample_files, resolver, settings):
    out = convert_file(sample_files["report.csv"], resolver=resolver, settings=settings)
    assert out.endswith("report.pdf")
    with open(out, "rb") as f:
        assert f.read(5) == b"%PDF-"


def test_convert_every_sample(sample_files, resolver, settings, tmp_path):
    out_dir = tmp_path / "out"
    for name, path in sample_files.items():
        out = convert_file(path, str(out_dir / (name + ".pdf")), resolver=resolver, settings=settings)
        assert os.path.getsize(out) > 0, name


def test_broken_docx_fails_without_output(tmp_path, resolver, settings):
    broken = tmp_path / "broken.docx"
    broken.write_bytes(b"PK\x03\x04 definitely not a document")
    with pytest.raises(ParseError) as err:
        convert_file(str(broken), resolver=resolver, settings=settings)
    assert "DOCX" in str(err.value)
    assert not (tmp_path / "broken.pdf").exists()


def test_unsupported_and_missing_files(tmp_path, resolver, settings):
    with pytest.raises(UnsupportedFormat):
        convert_file(str(tmp_path / "archive.zip"), resolver=resolver, settings=settings)
    with pytest.raises(FileIOError):
        convert_file(str(tmp_path / "missing.txt"), resolver=resolver, settings=settings)


def test_write_atomic_replaces_and_leaves_no_temp_files(tmp_path):
    target = tmp_path / "sub" / "doc.pdf"
    write_atomic(str(target), b"first")
    write_atomic(str(target), b"second")
    assert target.read_bytes() == b"second"
    assert os.listdir(tmp_path / "sub") == ["doc.pdf"]


def test_write_atomic_reports_io_error(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x")
    with pytest.raises(FileIOError):
        write_atomic(str(blocker / "nested.pdf"), b"data")
