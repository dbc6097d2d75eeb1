from __future__ import annotations

from typing import Any, Mapping, Optional

from sqlalchemy.orm import Session

from models.partner_categories import PartnerCategory
from utils.hierarchy import CycleDetected, check_parent

_RECURSIVE_TAGS_MESSAGE = "Error ! You can not create recursive tags."


def _parent_getter(session: Session):
    def _parent(category: PartnerCategory) -> Optional[PartnerCategory]:
        if not category.parent_id:
            return None
        return session.get(PartnerCategory, category.parent_id)

    return _parent


def create_category(session: Session, vals: Mapping[str, Any]) -> PartnerCategory:
    category = PartnerCategory(**vals)
    session.add(category)
    session.flush()
    check_parent([category], _parent_getter(session), message=_RECURSIVE_TAGS_MESSAGE)
    return category


def write_category(
    session: Session, category: PartnerCategory, vals: Mapping[str, Any]
) -> None:
    """Update a tag; a parent that would loop the tag tree is refused and the
    previous parent kept."""

    if "parent_id" in vals:
        previous = category.parent_id
        category.parent_id = vals["parent_id"]
        try:
            check_parent(
                [category], _parent_getter(session), message=_RECURSIVE_TAGS_MESSAGE
            )
        except CycleDetected:
            category.parent_id = previous
            raise
    for key, value in vals.items():
        if key != "parent_id":
            setattr(category, key, value)
    session.flush()


def category_display_name(
    session: Session, category: PartnerCategory, *, short: bool = False
) -> str:
    """Full path of a tag, e.g. 'Customers / Gold'."""

    if short:
        return category.name
    parent_of = _parent_getter(session)
    names: list[str] = []
    current: Optional[PartnerCategory] = category
    while current is not None:
        names.append(current.name)
        current = parent_of(current)
    return " / ".join(reversed(names))


def search_categories_by_name(
    session: Session, name: str, limit: Optional[int] = None
) -> list[PartnerCategory]:
    """Search tags by name; a full path only matches on its last segment."""

    query = session.query(PartnerCategory).filter(PartnerCategory.active.is_(True))
    if name:
        last = name.split(" / ")[-1]
        query = query.filter(PartnerCategory.name.ilike(f"%{last}%"))
    query = query.order_by(PartnerCategory.name, PartnerCategory.id)
    if limit is not None:
        query = query.limit(limit)
    return query.all()
