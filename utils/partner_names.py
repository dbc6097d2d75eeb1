"""Display names, e-mail parsing and name-based lookups for partners."""

from __future__ import annotations

from email.utils import formataddr, parseaddr
from typing import TYPE_CHECKING, Optional
from urllib.parse import urlsplit, urlunsplit

from sqlalchemy import func, or_

from models.partners import PARTNER_TYPES, Partner
from utils.address import display_address

if TYPE_CHECKING:
    from utils.partner_store import PartnerStore


def clean_website(website: str) -> str:
    """Return the website URL with a scheme (defaults to http)."""

    website = (website or "").strip()
    if not website:
        return website
    parts = urlsplit(website)
    if not parts.scheme or not parts.netloc:
        parts = urlsplit(f"http://{website}")
    return urlunsplit(parts)


def email_formatted(partner: Partner) -> str:
    """'Name <email@domain>' or an empty string when there is no e-mail."""
    if not partner.email:
        return ""
    return formataddr((partner.name or "", partner.email))


def parse_partner_name(text: str) -> tuple[str, str]:
    """Split 'Raoul <raoul@grosbedon.fr>' into (name, email).

    Anything that does not contain an e-mail address is returned whole as
    the name, with an empty e-mail.
    """

    name, email = parseaddr(text or "")
    if not email or "@" not in email:
        return text, ""
    return name, email


def name_get(store: "PartnerStore", partner: Partner) -> str:
    """Display name of a partner, shaped by the store's context flags."""

    context = store.context
    name = partner.name or ""

    if partner.company_name or partner.parent_id:
        if not name and partner.type in ("invoice", "delivery", "other"):
            name = PARTNER_TYPES[partner.type]
        if not partner.is_company and partner.commercial_company_name:
            name = f"{partner.commercial_company_name}, {name}"

    if context.get_bool("show_address_only"):
        name = display_address(store, partner, include_company_name=False)
    if context.get_bool("show_address"):
        name = name + "\n" + display_address(store, partner, include_company_name=False)

    name = name.replace("\n\n", "\n").replace("\n\n", "\n")

    if context.get_bool("show_email") and partner.email:
        name = email_formatted(partner)
    if context.get_bool("html_format"):
        name = name.replace("\n", "<br/>")
    return name


def name_search_criteria(name: str) -> list:
    """Case-insensitive substring match on name, e-mail and reference."""

    name = (name or "").strip()
    if not name:
        return []
    pattern = f"%{name}%"
    return [
        or_(
            Partner.name.ilike(pattern),
            Partner.email.ilike(pattern),
            Partner.ref.ilike(pattern),
        )
    ]


def search_by_name(
    store: "PartnerStore", name: str, limit: Optional[int] = None
) -> list[Partner]:
    return store.search(*name_search_criteria(name), limit=limit)


def name_create(store: "PartnerStore", text: str) -> Partner:
    """Create a partner from a single 'Name <email>' style string.

    With `force_email` in the context an e-mail address is mandatory;
    `default_email` fills in a missing one.
    """

    name, email = parse_partner_name(text)
    if not email and store.context.get_bool("force_email"):
        raise ValueError("Couldn't create contact without email address!")
    if not name and email:
        name = email
    if not email:
        email = store.context.get_string("default_email")
    return store.create({"name": name, "email": email or None})


def find_or_create(store: "PartnerStore", email: str) -> Partner:
    """Return the first partner with this e-mail, creating one if needed."""

    _, parsed = parse_partner_name(email)
    if parsed:
        email = parsed
    found = store.search(func.lower(Partner.email) == email.strip().lower(), limit=1)
    if found:
        return found[0]
    return name_create(store, email)
