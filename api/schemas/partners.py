from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

PartnerType = Literal["contact", "invoice", "delivery", "other"]


class PartnerFields(BaseModel):
    """Writable partner attributes accepted by the API.

    Only the keys present in the request body are written (`to_vals`).
    Derived values (commercial partner, commercial company name) are not
    accepted.
    """

    name: Optional[str] = None
    ref: Optional[str] = None
    parent_id: Optional[int] = Field(default=None, ge=1)
    type: Optional[PartnerType] = None
    is_company: Optional[bool] = None
    company_type: Optional[Literal["person", "company"]] = None
    company_name: Optional[str] = None

    vat: Optional[str] = None
    credit_limit: Optional[float] = None

    street: Optional[str] = None
    street2: Optional[str] = None
    zip: Optional[str] = None
    city: Optional[str] = None
    state_id: Optional[int] = Field(default=None, ge=1)
    country_id: Optional[int] = Field(default=None, ge=1)

    email: Optional[str] = None
    phone: Optional[str] = None
    mobile: Optional[str] = None
    website: Optional[str] = None
    function: Optional[str] = None
    comment: Optional[str] = None

    active: Optional[bool] = None
    customer: Optional[bool] = None
    supplier: Optional[bool] = None
    employee: Optional[bool] = None

    category_ids: Optional[List[int]] = None

    model_config = ConfigDict(extra="forbid")

    def to_vals(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class PartnerCreate(PartnerFields):
    pass


class PartnerUpdate(PartnerFields):
    pass


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1)
    color: Optional[int] = None
    parent_id: Optional[int] = Field(default=None, ge=1)

    model_config = ConfigDict(extra="forbid")


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    color: Optional[int] = None
    parent_id: Optional[int] = Field(default=None, ge=1)
    active: Optional[bool] = None

    model_config = ConfigDict(extra="forbid")
