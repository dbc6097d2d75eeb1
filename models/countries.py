from __future__ import annotations

from sqlalchemy import Column, ForeignKey, Integer, String, Text, UniqueConstraint

from models import Base


class Country(Base):
    """Country reference data used when rendering postal addresses.

    `address_format` is a Jinja2 template. When it is empty the default
    multi-line layout from `utils.address` is used instead.
    """

    __tablename__ = "countries"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # ISO 3166-1 alpha-2, stored upper case (e.g. 'FR', 'US').
    code = Column(String(2), unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)

    address_format = Column(Text, nullable=True)


class CountryState(Base):
    __tablename__ = "country_states"
    __table_args__ = (
        UniqueConstraint("country_id", "code", name="uq_country_states_country_code"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)

    country_id = Column(
        Integer,
        ForeignKey("countries.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    code = Column(String, nullable=False)
    name = Column(String, nullable=False)
