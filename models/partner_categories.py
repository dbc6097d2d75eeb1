from __future__ import annotations

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Table

from models import Base


# Many-to-many link between partners and their tags.
partner_category_rel = Table(
    "partner_category_rel",
    Base.metadata,
    Column(
        "partner_id",
        Integer,
        ForeignKey("partners.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "category_id",
        Integer,
        ForeignKey("partner_categories.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class PartnerCategory(Base):
    """Partner tag. Tags form their own tree, validated against recursion
    the same way partners are (see `utils.categories`)."""

    __tablename__ = "partner_categories"

    id = Column(Integer, primary_key=True, autoincrement=True)

    name = Column(String, nullable=False)
    color = Column(Integer, nullable=True)

    parent_id = Column(
        Integer,
        ForeignKey("partner_categories.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    active = Column(Boolean, nullable=False, default=True)
