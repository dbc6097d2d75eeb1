from contextlib import contextmanager
import os

from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker


def _set_sqlite_pragmas(dbapi_connection, connection_record):
    """Configure SQLite for concurrent reads and enforced parent links."""
    cursor = dbapi_connection.cursor()
    try:
        # Wait for locks instead of failing immediately.
        cursor.execute("PRAGMA busy_timeout=5000")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        # partners.parent_id / commercial_partner_id are real FKs.
        cursor.execute("PRAGMA foreign_keys=ON")
    finally:
        cursor.close()


DB_PATH = os.path.join(os.path.dirname(__file__), "data", "partners.db")
SQLALCHEMY_DATABASE_URL = os.getenv("PARTNER_DB_URL") or f"sqlite:///{DB_PATH}"

if SQLALCHEMY_DATABASE_URL.startswith("sqlite:///") and not os.getenv(
    "PARTNER_DB_URL"
):
    os.makedirs(os.path.dirname(DB_PATH), exist_ok=True)

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args=(
        {"check_same_thread": False, "timeout": 30}
        if SQLALCHEMY_DATABASE_URL.startswith("sqlite")
        else {}
    ),
    pool_pre_ping=True,
)

if SQLALCHEMY_DATABASE_URL.startswith("sqlite"):
    event.listen(engine, "connect", _set_sqlite_pragmas)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


@contextmanager
def session_scope():
    """Yield a session that commits on success and rolls back on any error.

    One scope is one logical write: a create/write and every propagation it
    triggers either land together or not at all.
    """

    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
