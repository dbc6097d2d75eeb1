from __future__ import annotations

from sqlalchemy.orm import sessionmaker

from models.countries import Country, CountryState
from pytests.common import make_sqlite_engine
from utils import recreate_sqlite_db as mod


def test_recreate_creates_every_table(tmp_path) -> None:
    db_path = tmp_path / "fresh.sqlite"

    tables = mod.recreate(f"sqlite:///{db_path}", seed=False)

    assert tables == [
        "countries",
        "country_states",
        "partner_categories",
        "partner_category_rel",
        "partners",
    ]


def test_seed_countries_is_idempotent(db_session) -> None:
    added = mod.seed_countries(db_session)
    assert added == len(mod.SEED_COUNTRIES) + 3

    assert mod.seed_countries(db_session) == 0
    assert db_session.query(Country).count() == len(mod.SEED_COUNTRIES)
    assert db_session.query(CountryState).count() == 3


def test_main_with_seed(tmp_path, capsys) -> None:
    db_path = tmp_path / "cli.sqlite"

    mod.main(["--yes", "--seed-countries", "--db-path", str(db_path)])

    assert "Recreated tables (5):" in capsys.readouterr().out
    engine = make_sqlite_engine(db_path)
    try:
        session = sessionmaker(bind=engine)()
        us = session.query(Country).filter(Country.code == "US").one()
        assert "{{ state_code }}" in us.address_format
        session.close()
    finally:
        engine.dispose()
