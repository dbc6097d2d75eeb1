from __future__ import annotations

from typing import Generator

import pytest
from sqlalchemy.orm import Session

from app import create_app
from pytests.common import create_empty_sqlite_db, patch_app_db
from utils.partner_store import PartnerStore


@pytest.fixture()
def db_session(tmp_path) -> Generator[Session, None, None]:
    """Session on a hermetic temp SQLite DB with all tables created."""

    session, engine = create_empty_sqlite_db(tmp_path / "partners.sqlite")
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture()
def store(db_session) -> PartnerStore:
    return PartnerStore(db_session)


@pytest.fixture()
def client(tmp_path, monkeypatch):
    """Flask test client backed by a temp SQLite DB."""

    monkeypatch.setenv("INIT_DB_ON_STARTUP", "0")

    session, engine = create_empty_sqlite_db(tmp_path / "api.sqlite")
    session.close()
    patch_app_db(monkeypatch, engine)

    app = create_app()
    app.config.update(TESTING=True)

    with app.test_client() as c:
        yield c

    engine.dispose()
