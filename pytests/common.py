"""Shared helpers for tests.

Intended usage:
- spin up a temporary SQLite database with every model table
- point the Flask app at it (`patch_app_db`)
- build small partner trees from nested dicts

These utilities keep tests small and consistent.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from models import Base

__all__ = [
    "make_sqlite_engine",
    "create_empty_sqlite_db",
    "patch_app_db",
    "build_tree",
]


def make_sqlite_engine(db_path: Path | str) -> Engine:
    """Create a SQLite engine suitable for tests."""

    if isinstance(db_path, Path):
        db_path = str(db_path)
    return create_engine(f"sqlite:///{db_path}")


def create_empty_sqlite_db(db_path: Path) -> tuple[Session, Engine]:
    """Create an empty SQLite DB file and initialize all models.

    Returns (session, engine).
    """

    engine = make_sqlite_engine(db_path)
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, autoflush=False)
    return SessionLocal(), engine


def patch_app_db(monkeypatch, engine: Engine) -> None:
    """Make `db.session_scope()` (and therefore every route) use `engine`."""

    import db

    monkeypatch.setattr(db, "engine", engine)
    monkeypatch.setattr(
        db, "SessionLocal", sessionmaker(bind=engine, autocommit=False, autoflush=False)
    )


def build_tree(store, layout: dict[str, Any], parent=None) -> dict[str, Any]:
    """Create partners from a nested layout and return them by key.

    Example:
        build_tree(store, {"acme": {"vals": {...}, "children": {"alice": {...}}}})
    """

    created: dict[str, Any] = {}
    for key, node in layout.items():
        vals = dict(node.get("vals") or {})
        if parent is not None:
            vals["parent_id"] = parent.id
        partner = store.create(vals)
        created[key] = partner
        created.update(build_tree(store, node.get("children") or {}, partner))
    return created
