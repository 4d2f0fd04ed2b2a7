import pytest

import main


def test_cli_converts_and_reports_failures(tmp_path, capsys):
    good = tmp_path / "a.txt"
    good.write_text("hello")
    bad = tmp_path / "b.json"
    bad.write_text("{")
    out_dir = tmp_path / "out"

    code = main._cli([str(good), str(bad), "-o", str(out_dir), "-j", "2"])
    printed = capsys.readouterr().out
    assert code == 1
    assert (out_dir / "a.pdf").exists()
    assert "JSON parse error" in printed
    assert "Converted 1 of 2 files (1 failed)" in printed


def test_cli_success_exit_code(tmp_path, capsys):
    src = tmp_path / "n.md"
    src.write_text("# hi\n")
    assert main._cli([str(src), "--progress"]) == 0
    assert "[1/1]" in capsys.readouterr().out


def test_cli_usage_errors_exit_2():
    with pytest.raises(SystemExit) as err:
        main._cli([])
    assert err.value.code == 2
    with pytest.raises(SystemExit) as err:
        main._cli(["x.txt", "-j", "0"])
    assert err.value.code == 2
