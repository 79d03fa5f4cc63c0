"""Tests for the command-line entry point."""
import io
import json
import sys

import pytest

import main

CHROME_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)


def test_main_prints_json_for_arguments(monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", ["main.py", CHROME_UA, "curl/7.64.1"])
    main.main()
    result = json.loads(capsys.readouterr().out)

    assert [r["browser"]["key"] for r in result] == ["chrome", "curl"]
    chrome = result[0]
    assert chrome["user_agent"] == CHROME_UA
    assert chrome["browser"]["manufacturer"] == "Google Inc."
    assert chrome["browser"]["rendering_engine"] == "Blink"
    assert chrome["browser"]["group"] == "Chrome"
    assert chrome["browser"]["version"] == {"full": "91.0", "major": "91", "minor": "0"}
    assert chrome["operating_system"]["key"] == "windows_10"
    assert chrome["operating_system"]["group"] == "Windows"
    assert chrome["operating_system"]["device_type"] == "Computer"


def test_main_reads_stdin(monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", ["main.py", "--pretty"])
    monkeypatch.setattr(sys, "stdin", io.StringIO("Lynx/2.8.9rel.1\n\n  \n"))
    main.main()
    result = json.loads(capsys.readouterr().out)

    assert len(result) == 1
    assert result[0]["browser"]["key"] == "lynx"
    assert result[0]["browser"]["version"] is None
    assert result[0]["operating_system"]["key"] == "unknown"


def test_main_exits_on_bad_rules(monkeypatch, tmp_path):
    monkeypatch.setattr(sys, "argv", ["main.py", "--rules", str(tmp_path / "missing.yml"), CHROME_UA])
    with pytest.raises(SystemExit) as exc_info:
        main.main()
    assert exc_info.value.code == 1
