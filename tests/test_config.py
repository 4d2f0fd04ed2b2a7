import json
import logging
import os

from topdf.config import Settings, load_settings


def _write_config(tmp_path, data):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


def test_values_are_loaded(tmp_path, monkeypatch):
    monkeypatch.delenv("FONT_PATH", raising=False)
    path = _write_config(tmp_path, {"page_size": "letter", "margin": 36, "max_workers": 3, "invariant": False})
    s = load_settings(path)
    assert s.page_size == "letter"
    assert s.margin == 36.0
    assert s.worker_count() == 3
    assert s.invariant is False


def test_invalid_and_unknown_keys_fall_back(tmp_path, caplog, monkeypatch):
    monkeypatch.delenv("FONT_PATH", raising=False)
    path = _write_config(tmp_path, {"page_size": "A7", "font_size": -1, "colour": "red"})
    with caplog.at_level(logging.WARNING, logger="topdf.config"):
        s = load_settings(path)
    assert s.page_size == Settings().page_size
    assert s.font_size == Settings().font_size
    assert "colour" in caplog.text
    assert "page_size" in caplog.text


def test_broken_json_uses_defaults(tmp_path, caplog):
    path = tmp_path / "settings.json"
    path.write_text("{not json", encoding="utf-8")
    with caplog.at_level(logging.WARNING, logger="topdf.config"):
        s = load_settings(str(path))
    assert s.margin == Settings().margin
    assert "Could not load settings" in caplog.text


def test_missing_explicit_file_warns(tmp_path, caplog):
    with caplog.at_level(logging.WARNING, logger="topdf.config"):
        s = load_settings(str(tmp_path / "nope.json"))
    assert s.page_size == "A4"
    assert "not found" in caplog.text


def test_font_path_env_is_appended(tmp_path, monkeypatch):
    extra = str(tmp_path / "fonts")
    monkeypatch.setenv("FONT_PATH", extra)
    path = _write_config(tmp_path, {"font_dirs": []})
    assert load_settings(path).font_dirs == [extra]


def test_relative_font_dirs_are_absolute(tmp_path, monkeypatch):
    monkeypatch.delenv("FONT_PATH", raising=False)
    path = _write_config(tmp_path, {"font_dirs": ["config/fonts"]})
    dirs = load_settings(path).font_dirs
    assert len(dirs) == 1 and os.path.isabs(dirs[0])


def test_worker_count_defaults_to_cpus():
    assert Settings(max_workers=None).worker_count() >= 1
