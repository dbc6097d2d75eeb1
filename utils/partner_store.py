"""Session-backed partner store.

All creates and writes of partners go through `PartnerStore` so that:

- parent assignments are validated against cycles before they stick,
- stored derived fields (`commercial_partner_id`, `commercial_company_name`)
  are recomputed in the same session,
- commercial and address values are propagated along the tree
  (`utils.partner_sync.fields_sync`) exactly once per create/write.

The store never commits. Wrap a logical operation in `db.session_scope()` so
it lands atomically.
"""

from __future__ import annotations

from collections import deque
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import Session

from logging_utils import get_logger
from models.partner_categories import PartnerCategory
from models.partners import PARTNER_TYPES, Partner
from utils.commercial import recompute_derived
from utils.hierarchy import CycleDetected, check_parent
from utils.partner_names import clean_website
from utils.partner_sync import fields_sync, handle_first_contact_creation
from utils.store_context import Context, WriteOptions

logger = get_logger(__name__)

_PARENT_CYCLE_MESSAGE = "You cannot create recursive Partner hierarchies."

# Columns maintained by `recompute_derived`; never accepted from callers.
_DERIVED_COLUMNS = {"commercial_partner_id", "commercial_company_name"}

# Columns not carried over by `PartnerStore.copy`.
_NO_COPY_COLUMNS = {"id", "name"} | _DERIVED_COLUMNS

PartnerOrMany = Union[Partner, Iterable[Partner]]


def _column_names() -> set[str]:
    return {attr.key for attr in sa_inspect(Partner).column_attrs}


class PartnerStore:
    def __init__(self, session: Session, context: Optional[Context] = None) -> None:
        self.session = session
        self.context = context or Context()

    def with_context(self, **flags: Any) -> "PartnerStore":
        """Return a store sharing this session with extra context flags."""
        return PartnerStore(self.session, self.context.with_keys(**flags))

    # ------------------------------------------------------------------ reads

    def get(self, partner_id: Optional[int]) -> Optional[Partner]:
        if not partner_id:
            return None
        return self.session.get(Partner, partner_id)

    def browse(self, ids: Iterable[int]) -> list[Partner]:
        return [p for p in (self.get(i) for i in ids) if p is not None]

    def parent_of(self, partner: Partner) -> Optional[Partner]:
        return self.get(partner.parent_id)

    def children(self, partner: Partner, *, active_only: bool = True) -> list[Partner]:
        """Records whose parent is `partner`, ordered by id."""
        if partner.id is None:
            return []
        self.session.flush()
        query = self.session.query(Partner).filter(Partner.parent_id == partner.id)
        if active_only:
            query = query.filter(Partner.active.is_(True))
        return query.order_by(Partner.id).all()

    def descendants(
        self, partner: Partner, *, active_only: bool = True
    ) -> list[Partner]:
        """All records below `partner`, breadth-first."""
        result: list[Partner] = []
        pending = deque(self.children(partner, active_only=active_only))
        while pending:
            record = pending.popleft()
            result.append(record)
            pending.extend(self.children(record, active_only=active_only))
        return result

    def search(
        self,
        *criteria,
        order_by=None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        active_test: Optional[bool] = None,
    ) -> list[Partner]:
        """Query partners. Inactive records are hidden unless `active_test`
        is False (explicitly or through the context)."""

        if active_test is None:
            active_test = self.context.get_bool("active_test", True)

        self.session.flush()
        query = self.session.query(Partner)
        if criteria:
            query = query.filter(*criteria)
        if active_test:
            query = query.filter(Partner.active.is_(True))
        query = query.order_by(*(order_by if order_by is not None else (Partner.id,)))
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def count(self, *criteria, active_test: Optional[bool] = None) -> int:
        if active_test is None:
            active_test = self.context.get_bool("active_test", True)
        self.session.flush()
        query = self.session.query(Partner)
        if criteria:
            query = query.filter(*criteria)
        if active_test:
            query = query.filter(Partner.active.is_(True))
        return query.count()

    # ----------------------------------------------------------------- writes

    def create(self, vals: Mapping[str, Any]) -> Partner:
        """Insert a partner, then run derived recompute and synchronization."""

        vals = dict(vals)
        links = self._pop_links(vals)
        vals = self._prepare_vals(vals)
        vals.setdefault("type", "contact")
        vals.setdefault("is_company", False)
        vals.setdefault("active", True)

        partner = Partner()
        for key, value in vals.items():
            setattr(partner, key, value)
        for key, value in links.items():
            setattr(partner, key, value)
        self.session.add(partner)
        self.session.flush()

        if partner.parent_id:
            check_parent([partner], self.parent_of, message=_PARENT_CYCLE_MESSAGE)

        recompute_derived(
            self, [partner], set(vals) | {"parent_id", "is_company", "name"}
        )
        self.session.flush()
        logger.debug(
            "Created partner id=%s parent_id=%s type=%s is_company=%s",
            partner.id,
            partner.parent_id,
            partner.type,
            partner.is_company,
        )

        fields_sync(self, partner, vals)
        handle_first_contact_creation(self, partner)
        return partner

    def write(
        self,
        partners: PartnerOrMany,
        vals: Mapping[str, Any],
        options: WriteOptions = WriteOptions(),
    ) -> bool:
        """Write `vals` on every record of `partners`.

        Unless `options.suppress_resync` is set, `fields_sync` runs afterwards
        for each written record.
        """

        records = [partners] if isinstance(partners, Partner) else list(partners)
        vals = dict(vals)
        links = self._pop_links(vals)
        if not records or not (vals or links):
            return False

        if options.suppress_resync:
            vals = self._check_columns(vals)
        else:
            vals = self._prepare_vals(vals)

        if vals:
            self._apply(records, vals)
        for record in records:
            for key, value in links.items():
                setattr(record, key, list(value))
        if links:
            self.session.flush()

        if options.suppress_resync:
            return True
        for record in records:
            fields_sync(self, record, vals)
        return True

    def toggle_active(self, partners: PartnerOrMany) -> None:
        records = [partners] if isinstance(partners, Partner) else list(partners)
        for record in records:
            self.write(record, {"active": not record.active})

    def copy(
        self, partner: Partner, overrides: Optional[Mapping[str, Any]] = None
    ) -> Partner:
        vals = {
            name: getattr(partner, name)
            for name in _column_names() - _NO_COPY_COLUMNS
        }
        vals["name"] = f"{partner.name or ''} (copy)"
        vals["category_ids"] = [category.id for category in partner.categories]
        vals.update(overrides or {})
        return self.create(vals)

    # --------------------------------------------------------------- internal

    def _pop_links(self, vals: dict[str, Any]) -> dict[str, list]:
        """Remove many-to-many id lists from `vals`, resolved to records."""

        links: dict[str, list] = {}
        if "category_ids" in vals:
            ids = list(dict.fromkeys(vals.pop("category_ids") or ()))
            categories = (
                self.session.query(PartnerCategory)
                .filter(PartnerCategory.id.in_(ids))
                .order_by(PartnerCategory.id)
                .all()
                if ids
                else []
            )
            missing = sorted(set(ids) - {c.id for c in categories})
            if missing:
                raise ValueError(f"Unknown partner category id(s): {missing}")
            links["categories"] = categories
        return links

    def _check_columns(self, vals: dict[str, Any]) -> dict[str, Any]:
        unknown = sorted(set(vals) - (_column_names() - {"id"}))
        if unknown:
            raise ValueError(f"Unknown or read-only partner field(s): {unknown}")
        return vals

    def _prepare_vals(self, vals: Mapping[str, Any]) -> dict[str, Any]:
        """Normalise caller-supplied values before they are stored."""

        vals = dict(vals)
        if "company_type" in vals:
            vals["is_company"] = vals.pop("company_type") == "company"

        derived = sorted(_DERIVED_COLUMNS & set(vals))
        if derived:
            raise ValueError(f"Derived partner field(s) cannot be written: {derived}")
        self._check_columns(vals)

        if "type" in vals and vals["type"] not in PARTNER_TYPES:
            raise ValueError(f"Unknown partner type: {vals['type']!r}")
        if vals.get("website"):
            vals["website"] = clean_website(vals["website"])
        if vals.get("parent_id"):
            vals["company_name"] = None
        return vals

    def _apply(self, records: Sequence[Partner], vals: Mapping[str, Any]) -> None:
        if "parent_id" in vals:
            previous = [record.parent_id for record in records]
            for record in records:
                record.parent_id = vals["parent_id"]
            try:
                check_parent(records, self.parent_of, message=_PARENT_CYCLE_MESSAGE)
            except CycleDetected:
                for record, parent_id in zip(records, previous):
                    record.parent_id = parent_id
                raise

        for record in records:
            for key, value in vals.items():
                if key != "parent_id":
                    setattr(record, key, value)

        self.session.flush()
        recompute_derived(self, records, vals.keys())
        self.session.flush()
