"""
tests/test_database.py — Engine, Session Helper & Async Bridge
===============================================================
"""

from __future__ import annotations

import asyncio

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from merzah.database.engine import create_db_engine, get_session, init_db, run_db
from merzah.database.models import Mosque


class TestCreateEngine:
    def test_requires_database_url(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        with pytest.raises(RuntimeError, match="DATABASE_URL is not set"):
            create_db_engine()

    def test_sqlite_url_for_local_runs(self, monkeypatch, tmp_path):
        monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'merzah.db'}")
        engine = create_db_engine()
        init_db(engine)
        with get_session(engine) as session:
            session.add(Mosque(name="Masjid Omar"))
        with Session(engine) as session:
            assert session.scalars(select(Mosque.name)).all() == ["Masjid Omar"]


class TestGetSession:
    def test_commits_on_success(self, db_engine):
        with get_session(db_engine) as session:
            session.add(Mosque(name="Masjid Ali"))
        with Session(db_engine) as session:
            assert len(session.scalars(select(Mosque)).all()) == 1

    def test_rolls_back_on_error(self, db_engine):
        with pytest.raises(ValueError):
            with get_session(db_engine) as session:
                session.add(Mosque(name="Masjid Ali"))
                session.flush()
                raise ValueError("boom")
        with Session(db_engine) as session:
            assert session.scalars(select(Mosque)).all() == []


class TestRunDb:
    def test_runs_sync_function_off_loop(self):
        loop = asyncio.new_event_loop()
        try:
            result = loop.run_until_complete(run_db(lambda a, b=0: a + b, 2, b=3))
        finally:
            loop.close()
        assert result == 5
