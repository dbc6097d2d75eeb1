"""Commercial entity resolution and stored derived fields.

The commercial partner of a record is the first company found walking up the
parent chain (the record itself included), or the root of the chain when no
company is found. It is stored on `partners.commercial_partner_id` so queries
don't walk the tree, and recomputed in the same session as the write that
invalidated it.

Derived fields are declared with their dependencies:

- a plain name (`parent_id`) is a column of the record itself;
- a dotted name (`parent.commercial_partner_id`) is a column of a related
  record; writing that column re-triggers the computation on every record
  that depends on it through the relation (see `RELATION_DEPENDENTS`).
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Iterable

from logging_utils import get_logger
from models.partners import Partner
from utils.hierarchy import CycleDetected

if TYPE_CHECKING:
    from utils.partner_store import PartnerStore

logger = get_logger(__name__)


def resolve_commercial_partner(store: "PartnerStore", partner: Partner) -> Partner:
    """Return the nearest company ancestor of `partner` (itself included),
    or the root of its chain."""

    current = partner
    seen = {partner.id}
    while not current.is_company and current.parent_id:
        parent = store.get(current.parent_id)
        if parent is None:
            break
        if parent.id in seen:
            raise CycleDetected(partner.id)
        seen.add(parent.id)
        current = parent
    return current


def is_commercial_entity(store: "PartnerStore", partner: Partner) -> bool:
    return resolve_commercial_partner(store, partner) is partner


def compute_commercial_partner_id(store: "PartnerStore", partner: Partner) -> int:
    return resolve_commercial_partner(store, partner).id


def compute_commercial_company_name(
    store: "PartnerStore", partner: Partner
) -> str | None:
    commercial = resolve_commercial_partner(store, partner)
    if commercial.is_company:
        return commercial.name
    return partner.company_name


@dataclass(frozen=True)
class DerivedField:
    name: str
    depends: tuple[str, ...]
    compute: Callable[["PartnerStore", Partner], Any]

    def triggered_by(self, changed: Iterable[str]) -> bool:
        return not set(self.depends).isdisjoint(changed)


# Order matters: a field may depend on one declared before it.
DERIVED_FIELDS: tuple[DerivedField, ...] = (
    DerivedField(
        "commercial_partner_id",
        depends=("is_company", "parent_id", "parent.commercial_partner_id"),
        compute=compute_commercial_partner_id,
    ),
    DerivedField(
        "commercial_company_name",
        depends=(
            "name",
            "company_name",
            "is_company",
            "parent_id",
            "commercial_partner_id",
            "commercial_partner.name",
        ),
        compute=compute_commercial_company_name,
    ),
)


def _children_of(store: "PartnerStore", partner: Partner) -> list[Partner]:
    return store.children(partner, active_only=False)


def _commercial_dependents_of(
    store: "PartnerStore", partner: Partner
) -> list[Partner]:
    return store.search(
        Partner.commercial_partner_id == partner.id,
        Partner.id != partner.id,
        active_test=False,
    )


# relation prefix -> records that reach `partner` through that relation
RELATION_DEPENDENTS: dict[str, Callable[["PartnerStore", Partner], list[Partner]]] = {
    "parent": _children_of,
    "commercial_partner": _commercial_dependents_of,
}


def _dotted_depends() -> set[str]:
    return {dep for field in DERIVED_FIELDS for dep in field.depends if "." in dep}


def recompute_derived(
    store: "PartnerStore", partners: Iterable[Partner], written: Iterable[str]
) -> int:
    """Recompute derived fields invalidated by a write of `written` columns.

    Walks dependents breadth-first with an explicit queue. Returns the number
    of records whose derived values changed.
    """

    dotted = _dotted_depends()
    pending = deque((partner, frozenset(written)) for partner in partners)
    changed_records = 0

    while pending:
        partner, changed = pending.popleft()
        updated: set[str] = set()

        for derived in DERIVED_FIELDS:
            if not derived.triggered_by(changed | updated):
                continue
            value = derived.compute(store, partner)
            if getattr(partner, derived.name) != value:
                setattr(partner, derived.name, value)
                updated.add(derived.name)

        if updated:
            changed_records += 1

        local = {name for name in changed | updated if "." not in name}
        for relation, dependents_of in RELATION_DEPENDENTS.items():
            paths = {f"{relation}.{name}" for name in local} & dotted
            if not paths:
                continue
            for dependent in dependents_of(store, partner):
                pending.append((dependent, frozenset(paths)))

    if changed_records:
        logger.debug("Recomputed derived fields on %d partner(s)", changed_records)
    return changed_records
