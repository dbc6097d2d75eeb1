from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import inspect as sa_inspect

from models.partners import Partner
from utils.address import contact_address
from utils.partner_names import email_formatted, name_get, name_search_criteria
from utils.partner_store import PartnerStore

# Query-string flags forwarded to the store context.
CONTEXT_FLAGS = (
    "active_test",
    "show_address",
    "show_address_only",
    "show_email",
    "html_format",
)


class PartnerNotFound(LookupError):
    def __init__(self, partner_id: int) -> None:
        self.partner_id = partner_id
        super().__init__(f"Partner {partner_id} not found")


def get_partner_or_raise(store: PartnerStore, partner_id: int) -> Partner:
    partner = store.get(partner_id)
    if partner is None:
        raise PartnerNotFound(partner_id)
    return partner


def clamp_page(offset: int, limit: int, *, max_limit: int = 200) -> Tuple[int, int]:
    """Keep paging arguments inside sane bounds."""
    if offset < 0:
        offset = 0
    if limit < 1:
        limit = 1
    if limit > max_limit:
        limit = max_limit
    return offset, limit


def list_partners_page(
    store: PartnerStore, *, q: str, offset: int, limit: int
) -> Tuple[List[Partner], int]:
    """Return (page, total) for a name/e-mail/ref search (all when q is empty)."""
    criteria = name_search_criteria(q)
    page = store.search(*criteria, offset=offset, limit=limit)
    return page, store.count(*criteria)


def serialize_partner(store: PartnerStore, partner: Partner) -> Dict[str, Any]:
    """JSON-ready view of a partner, computed values included."""

    data: Dict[str, Any] = {
        attr.key: getattr(partner, attr.key)
        for attr in sa_inspect(Partner).column_attrs
    }
    data.update(
        {
            "company_type": partner.company_type,
            "display_name": name_get(store, partner),
            "email_formatted": email_formatted(partner),
            "contact_address": contact_address(store, partner),
            "category_ids": sorted(category.id for category in partner.categories),
        }
    )
    return data


def serialize_partner_ref(partner: Optional[Partner]) -> Optional[Dict[str, Any]]:
    if partner is None:
        return None
    return {"id": partner.id, "name": partner.name, "type": partner.type}
