import json
import sys

import pytest
from pytest_httpx import HTTPXMock

from filesproxy.__main__ import main
from tests.conftest import ORIGIN
from tests.tools import media_doc, mock_origin


def run_main(monkeypatch, *args):
    monkeypatch.setattr(sys, "argv", ["python -m filesproxy", *args])
    main()


def test_fetch(tmp_path, monkeypatch, capsys, httpx_mock: HTTPXMock):
    monkeypatch.setenv("FILESPROXY_ORIGIN_URL", ORIGIN)
    records = tmp_path / "records.json"
    records.write_text(json.dumps([media_doc("a.jpg", "thumbnail"), media_doc("b.jpg", url=False)]))
    a = mock_origin(httpx_mock, "a.jpg")
    mock_origin(httpx_mock, "a-thumbnail.jpg")

    run_main(monkeypatch, "fetch", str(records), "-d", str(tmp_path / "out"))
    assert (tmp_path / "out" / "a.jpg").read_bytes() == a
    assert capsys.readouterr().out.splitlines() == [
        "a.jpg: fetched 2, present 0, failed 0",
        "b.jpg: fetched 0, present 0, failed 0",
    ]


def test_fetch_failure(tmp_path, monkeypatch, capsys, httpx_mock: HTTPXMock):
    monkeypatch.setenv("FILESPROXY_ORIGIN_URL", ORIGIN)
    records = tmp_path / "a.json"
    records.write_text(json.dumps(media_doc("a.jpg")))
    mock_origin(httpx_mock, "a.jpg", status_code=404)
    with pytest.raises(SystemExit) as e:
        run_main(monkeypatch, "fetch", str(records), "-d", str(tmp_path / "out"))
    assert e.value.code == 1
    assert "failed 1" in capsys.readouterr().out


def test_fetch_without_origin(tmp_path, monkeypatch):
    with pytest.raises(SystemExit) as e:
        run_main(monkeypatch, "fetch", str(tmp_path / "a.json"))
    assert e.value.code == 1


def test_config(monkeypatch, capsys):
    monkeypatch.setenv("FILESPROXY_ORIGIN_URL", ORIGIN)
    run_main(monkeypatch, "config")
    out = capsys.readouterr().out.splitlines()
    assert f"FILESPROXY_ORIGIN_URL={ORIGIN}" in out
    assert "FILESPROXY_ENABLED=True" in out
    assert "#FILESPROXY_RECORDS_FILE=" in out
