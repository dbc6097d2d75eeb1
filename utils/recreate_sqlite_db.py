"""Delete and recreate the local partners SQLite DB.

This is a destructive helper for local development.
It drops `data/partners.db` tables and recreates them from SQLAlchemy models,
optionally seeding a few countries with their address formats.

Usage:
    python utils/recreate_sqlite_db.py                  # with confirmation prompt
    python utils/recreate_sqlite_db.py --yes            # skip confirmation
    python utils/recreate_sqlite_db.py --seed-countries # add reference countries
"""

from __future__ import annotations

import argparse
import os
import sys

# Allow running as: `python utils/recreate_sqlite_db.py`
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import Session, sessionmaker

from logging_utils import get_logger
from models import Base
from models.countries import Country, CountryState

logger = get_logger(__name__)

DB_PATH = os.path.join(os.path.dirname(os.path.dirname(__file__)), "data", "partners.db")

# (code, name, address_format, [(state_code, state_name), ...])
SEED_COUNTRIES = [
    (
        "US",
        "United States",
        "{{ street }}\n{{ street2 }}\n{{ city }}, {{ state_code }} {{ zip }}\n{{ country_name }}",
        [("CA", "California"), ("NY", "New York"), ("TX", "Texas")],
    ),
    (
        "FR",
        "France",
        "{{ street }}\n{{ street2 }}\n{{ zip }} {{ city }}\n{{ country_name }}",
        [],
    ),
    (
        "GB",
        "United Kingdom",
        "{{ street }}\n{{ street2 }}\n{{ city }}\n{{ state_name }}\n{{ zip }}\n{{ country_name }}",
        [],
    ),
    ("BE", "Belgium", None, []),
]


def seed_countries(session: Session) -> int:
    """Insert missing seed countries (and their states). Returns rows added."""

    added = 0
    for code, name, address_format, states in SEED_COUNTRIES:
        country = session.query(Country).filter(Country.code == code).one_or_none()
        if country is None:
            country = Country(code=code, name=name, address_format=address_format)
            session.add(country)
            session.flush()
            added += 1
        for state_code, state_name in states:
            exists = (
                session.query(CountryState)
                .filter(
                    CountryState.country_id == country.id,
                    CountryState.code == state_code,
                )
                .first()
            )
            if exists is None:
                session.add(
                    CountryState(country_id=country.id, code=state_code, name=state_name)
                )
                added += 1
    session.flush()
    return added


def _confirm_or_exit(db_path: str, assume_yes: bool) -> None:
    """Prompt user for confirmation before proceeding with destructive operation."""
    if assume_yes:
        return

    resp = input(
        f"\nThis will DROP and RECREATE ALL TABLES in:\n  {db_path}\n\n"
        "ALL DATA WILL BE LOST!\n\n"
        "Continue? [y/N]: "
    ).strip()
    if resp.lower() not in {"y", "yes"}:
        print("Aborted.")
        raise SystemExit(1)


def recreate(db_url: str, *, seed: bool) -> list[str]:
    """Drop and recreate every table; return the resulting table names."""

    engine = create_engine(db_url)
    try:
        Base.metadata.drop_all(engine)
        Base.metadata.create_all(engine)
        if seed:
            session = sessionmaker(bind=engine)()
            try:
                added = seed_countries(session)
                session.commit()
                logger.info("Seeded %d country/state rows", added)
            finally:
                session.close()
        return sorted(inspect(engine).get_table_names())
    finally:
        engine.dispose()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="Reset the local SQLite database by dropping and recreating all tables."
    )
    parser.add_argument(
        "--yes",
        "-y",
        action="store_true",
        help="Do not prompt for confirmation.",
    )
    parser.add_argument(
        "--seed-countries",
        action="store_true",
        help="Insert reference countries with address formats.",
    )
    parser.add_argument(
        "--db-path",
        default=DB_PATH,
        help="SQLite file to reset (default: data/partners.db).",
    )
    args = parser.parse_args(argv)

    os.makedirs(os.path.dirname(os.path.abspath(args.db_path)), exist_ok=True)
    _confirm_or_exit(args.db_path, args.yes)

    tables = recreate(f"sqlite:///{args.db_path}", seed=args.seed_countries)
    logger.info("Recreated %d tables in %s", len(tables), args.db_path)
    print(f"Recreated tables ({len(tables)}):")
    for table in tables:
        print(f"  - {table}")


if __name__ == "__main__":
    main()
