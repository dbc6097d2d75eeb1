"""Address lookup and rendering.

`address_get` answers "which record holds the address of role X for this
partner": it searches the partner's descendants breadth-first without
crossing companies, then climbs to the ancestors that sit inside the same
company boundary.

`display_address` renders a partner's address with its country's template
(Jinja2, sandboxed, strict undefined) or a default multi-line layout.
"""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING, Iterable, Optional

from jinja2 import StrictUndefined, TemplateError
from jinja2.sandbox import SandboxedEnvironment

from logging_utils import get_logger
from models.countries import Country, CountryState
from models.partners import Partner
from utils.commercial import compute_commercial_company_name

if TYPE_CHECKING:
    from utils.partner_store import PartnerStore

logger = get_logger(__name__)

DEFAULT_ADDRESS_FORMAT = (
    "{{ street }}\n{{ street2 }}\n{{ city }} {{ state_code }} {{ zip }}\n{{ country_name }}"
)

_template_env = SandboxedEnvironment(
    undefined=StrictUndefined,
    autoescape=False,
    keep_trailing_newline=False,
)


class TemplateRenderError(RuntimeError):
    """An address format could not be parsed or rendered."""

    def __init__(self, address_format: str, cause: Exception) -> None:
        self.address_format = address_format
        super().__init__(f"Error while rendering address format {address_format!r}: {cause}")


def address_get(
    store: "PartnerStore",
    partners: Iterable[Partner],
    addr_types: Optional[Iterable[str]] = None,
) -> dict[str, Partner]:
    """Find the records holding each requested address type.

    Result keys are address types (`contact`, `invoice`, ...). `contact` is
    always searched and always present. Types with no match default to the
    `contact` match, or to the first given partner when there is none.
    """

    seeds = list(partners)
    requested = list(dict.fromkeys(addr_types or ()))
    wanted = set(requested) | {"contact"}
    result: dict[str, Partner] = {}
    if not seeds:
        return result

    visited: set[int] = set()
    for seed in seeds:
        current: Optional[Partner] = seed
        while current is not None:
            to_scan = deque([current])
            while to_scan:
                record = to_scan.popleft()
                visited.add(record.id)
                if record.type in wanted and record.type not in result:
                    result[record.type] = record
                    if len(result) == len(wanted):
                        return result
                to_scan.extend(
                    child
                    for child in store.children(record)
                    if child.id not in visited and not child.is_company
                )
            # Continue at the ancestor unless we reached a commercial boundary.
            if current.is_company or not current.parent_id:
                break
            current = store.parent_of(current)

    default = result.get("contact", seeds[0])
    for addr_type in requested + ["contact"]:
        result.setdefault(addr_type, default)
    return result


def _address_data(store: "PartnerStore", partner: Partner) -> dict[str, str]:
    country = store.session.get(Country, partner.country_id) if partner.country_id else None
    state = store.session.get(CountryState, partner.state_id) if partner.state_id else None
    return {
        "street": partner.street or "",
        "street2": partner.street2 or "",
        "city": partner.city or "",
        "zip": partner.zip or "",
        "state_code": state.code if state else "",
        "state_name": state.name if state else "",
        "country_code": country.code if country else "",
        "country_name": country.name if country else "",
        "company_name": compute_commercial_company_name(store, partner) or "",
    }


def display_address(
    store: "PartnerStore", partner: Partner, include_company_name: bool = True
) -> str:
    """Render the address of `partner` following its country's standards."""

    address_format = DEFAULT_ADDRESS_FORMAT
    if partner.country_id:
        country = store.session.get(Country, partner.country_id)
        if country is not None and country.address_format:
            address_format = country.address_format

    data = _address_data(store, partner)
    if include_company_name and data["company_name"]:
        address_format = "{{ company_name }}\n" + address_format

    try:
        return _template_env.from_string(address_format).render(**data)
    except TemplateError as exc:
        logger.exception("Address format failed to render partner_id=%s", partner.id)
        raise TemplateRenderError(address_format, exc) from exc


def contact_address(store: "PartnerStore", partner: Partner) -> str:
    """Complete address of a partner, company name included."""
    return display_address(store, partner, include_company_name=True)
