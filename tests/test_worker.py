"""
tests/test_worker.py — Process entry points
============================================
``python -m merzah --once`` (rotation worker) and ``python -m merzah.api``
(uvicorn launcher).
"""

from __future__ import annotations

import json
import sys

from merzah import __main__ as worker
from merzah.api import __main__ as api_server


def test_once_prints_report(monkeypatch, tmp_path, capsys):
    db_url = f"sqlite:///{tmp_path / 'worker.db'}"
    config = tmp_path / "config.yaml"
    config.write_text("platform_name: Merzah\napi_port: 8000\n", encoding="utf-8")

    monkeypatch.setenv("DATABASE_URL", db_url)
    monkeypatch.setattr(sys, "argv", ["merzah", "--config", str(config), "--once"])

    worker.main()

    report = json.loads(capsys.readouterr().out)
    assert report["rotated"] == []
    assert report["cancelled"] is False


def test_api_server_binds_configured_port(monkeypatch, tmp_path):
    config = tmp_path / "config.yaml"
    config.write_text("platform_name: Merzah\napi_port: 8123\n", encoding="utf-8")
    calls = []

    monkeypatch.setattr(api_server.uvicorn, "run", lambda app, **kw: calls.append((app, kw)))
    monkeypatch.setattr(
        sys, "argv", ["merzah-api", "--config", str(config), "--host", "0.0.0.0"],
    )

    api_server.main()

    [(app, kwargs)] = calls
    assert app == "merzah.api.main:app"
    assert kwargs["port"] == 8123
    assert kwargs["host"] == "0.0.0.0"
    assert kwargs["reload"] is False
