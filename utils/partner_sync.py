"""Propagation of commercial and address values along the partner tree.

`fields_sync` runs after every create and every regular write, as if the
commercial fields were related to the commercial entity and the address
fields were related to the parent:

1. upstream: pull commercial values from the commercial entity when the
   parent changed, pull the parent's address into contacts;
2. downstream: push commercial values to non-company descendants, push the
   written address values to descendant contacts.

Every write issued from here uses `SYNC_WRITE` so it never re-enters
`fields_sync`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable, Mapping, Union

from sqlalchemy import inspect as sa_inspect

from logging_utils import get_logger
from models.partners import Partner
from utils.commercial import resolve_commercial_partner
from utils.store_context import SYNC_WRITE

if TYPE_CHECKING:
    from utils.partner_store import PartnerStore

logger = get_logger(__name__)


def update_field_values(partner: Partner, fields: Iterable[str]) -> dict[str, Any]:
    """Return `{field: value}` for the given fields of `partner`.

    Only plain columns can be synchronized between relatives.
    """

    columns = {attr.key for attr in sa_inspect(type(partner)).column_attrs}
    values: dict[str, Any] = {}
    for name in fields:
        if name not in columns:
            raise ValueError(
                f"{name!r} is not a column and cannot be synchronized as part of "
                "the commercial or address fields"
            )
        values[name] = getattr(partner, name)
    return values


def has_address(partner: Partner) -> bool:
    return any(getattr(partner, name) for name in partner.address_fields())


def update_address(
    store: "PartnerStore",
    partners: Union[Partner, Iterable[Partner]],
    vals: Mapping[str, Any],
) -> bool:
    """Write only the address subset of `vals`. Other values are discarded."""

    address = {name: vals[name] for name in Partner.address_fields() if name in vals}
    if not address:
        return False
    return store.write(partners, address, SYNC_WRITE)


def onchange_parent(store: "PartnerStore", partner: Partner) -> dict[str, Any]:
    """Address values a contact should take from its parent.

    Empty when the partner is not a contact, has no parent, or the parent has
    no address at all. Otherwise the full address set, empty values included.
    """

    parent = store.parent_of(partner)
    if parent is None or partner.type != "contact":
        return {}
    if not has_address(parent):
        return {}
    return update_field_values(parent, partner.address_fields())


def commercial_sync_from_company(store: "PartnerStore", partner: Partner) -> bool:
    """Copy commercial values from the commercial entity onto `partner`."""

    commercial = resolve_commercial_partner(store, partner)
    if commercial is partner:
        return False
    values = update_field_values(commercial, type(partner).commercial_fields())
    return store.write(partner, values, SYNC_WRITE)


def commercial_sync_to_children(store: "PartnerStore", partner: Partner) -> bool:
    """Push the commercial values of `partner`'s commercial entity to every
    non-company descendant, stopping at companies.

    Batches are collected parent-first with a stack and written deepest-first.
    """

    commercial = resolve_commercial_partner(store, partner)
    values = update_field_values(commercial, type(partner).commercial_fields())
    values["commercial_partner_id"] = commercial.id

    batches: list[list[Partner]] = []
    stack = [partner]
    while stack:
        current = stack.pop()
        batch = [child for child in store.children(current) if not child.is_company]
        if batch:
            batches.append(batch)
            stack.extend(batch)

    if not batches:
        return False

    for batch in reversed(batches):
        store.write(batch, values, SYNC_WRITE)
    logger.debug(
        "Pushed commercial fields of partner id=%s to %d descendant(s)",
        commercial.id,
        sum(len(batch) for batch in batches),
    )
    return True


def contact_descendants(store: "PartnerStore", partner: Partner) -> list[Partner]:
    """Descendants of `partner` with type `contact`, without entering companies.

    A company child and everything below it keep their own address.
    """

    contacts: list[Partner] = []
    stack = [partner]
    while stack:
        current = stack.pop()
        for child in store.children(current):
            if child.is_company:
                continue
            if child.type == "contact":
                contacts.append(child)
            stack.append(child)
    return contacts


def fields_sync(store: "PartnerStore", partner: Partner, vals: Mapping[str, Any]) -> None:
    """Synchronize `partner` with its relatives after `vals` was written."""

    address_written = any(name in vals for name in partner.address_fields())

    # Upstream: commercial fields follow a new parent.
    if vals.get("parent_id"):
        commercial_sync_from_company(store, partner)

    # Upstream: contacts take the parent's address as defaults; address values
    # supplied by this write are kept on top of them.
    if partner.parent_id and partner.type == "contact":
        pulled = onchange_parent(store, partner)
        if pulled:
            pulled.update(
                (name, vals[name]) for name in partner.address_fields() if name in vals
            )
            update_address(store, partner, pulled)

    children = store.children(partner)
    if not children:
        return

    # Downstream: commercial fields. Derived ids of the subtree are already
    # recomputed at this point, so a moved partner always pushes.
    commercial = resolve_commercial_partner(store, partner)
    if commercial is partner and any(
        getattr(partner, name) for name in partner.commercial_fields()
    ):
        commercial_sync_to_children(store, partner)
    elif "parent_id" in vals or any(
        child.commercial_partner_id != commercial.id
        for child in children
        if not child.is_company
    ):
        commercial_sync_to_children(store, partner)

    # Downstream: address fields.
    if address_written:
        contacts = contact_descendants(store, partner)
        if contacts:
            logger.debug(
                "Pushing address of partner id=%s to %d contact(s)",
                partner.id,
                len(contacts),
            )
            update_address(store, contacts, vals)


def handle_first_contact_creation(store: "PartnerStore", partner: Partner) -> bool:
    """On creation of the first contact of a company (or of a root record)
    that has no address, assume the contact's address was meant for the
    parent as well."""

    parent = store.parent_of(partner)
    if parent is None:
        return False
    if not parent.is_company and parent.parent_id:
        # Parent is neither a company nor a root record.
        return False
    if len(store.children(parent)) != 1:
        return False
    if not has_address(partner) or has_address(parent):
        return False

    logger.debug(
        "First contact id=%s gives its address to parent id=%s", partner.id, parent.id
    )
    return update_address(
        store, parent, update_field_values(partner, partner.address_fields())
    )


def create_company(store: "PartnerStore", partner: Partner) -> bool:
    """Turn `partner.company_name` into a real company partner.

    The company takes the partner's address and commercial values, then the
    partner and its children are attached to it.
    """

    if not partner.company_name:
        return False

    values = update_field_values(
        partner, partner.address_fields() + partner.commercial_fields()
    )
    values.update(name=partner.company_name, is_company=True)
    company = store.create(values)

    children = store.children(partner)
    store.write(partner, {"parent_id": company.id})
    if children:
        store.write(children, {"parent_id": company.id})
    logger.info("Created company id=%s for partner id=%s", company.id, partner.id)
    return True
