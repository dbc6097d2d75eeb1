from __future__ import annotations

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from models import Base
from models.partner_categories import partner_category_rel


PARTNER_TYPES = {
    "contact": "Contact",
    "invoice": "Invoice Address",
    "delivery": "Shipping Address",
    "other": "Other Address",
}


class Partner(Base):
    """A node of the partner tree: a person, a company or a typed address.

    Tree notes:
    - `parent_id` is the only stored link. Children are always queried
      (`PartnerStore.children`), never kept as a back-reference.
    - `is_company` marks a boundary: commercial values and address lookups
      stop at companies.
    - `commercial_partner_id` and `commercial_company_name` are derived and
      stored; `utils.commercial.recompute_derived` keeps them current.

    Writes should go through `utils.partner_store.PartnerStore` so that
    derived values and commercial/address propagation stay consistent.
    """

    __tablename__ = "partners"
    __table_args__ = (
        CheckConstraint(
            "(type = 'contact' AND name IS NOT NULL) OR (type != 'contact')",
            name="check_name",
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)

    name = Column(String, nullable=True, index=True)
    ref = Column(String, nullable=True, index=True)

    parent_id = Column(
        Integer,
        ForeignKey("partners.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # 'contact' | 'invoice' | 'delivery' | 'other'
    type = Column(String, nullable=False, default="contact")

    is_company = Column(Boolean, nullable=False, default=False)
    company_name = Column(String, nullable=True)

    # Derived (stored) values.
    commercial_partner_id = Column(
        Integer,
        ForeignKey("partners.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    commercial_company_name = Column(String, nullable=True)

    # Commercial fields: authoritative on the commercial entity only.
    vat = Column(String, nullable=True)
    credit_limit = Column(Float, nullable=True)

    # Address fields.
    street = Column(String, nullable=True)
    street2 = Column(String, nullable=True)
    zip = Column(String, nullable=True)
    city = Column(String, nullable=True)
    state_id = Column(
        Integer, ForeignKey("country_states.id", ondelete="RESTRICT"), nullable=True
    )
    country_id = Column(
        Integer, ForeignKey("countries.id", ondelete="RESTRICT"), nullable=True
    )

    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    mobile = Column(String, nullable=True)
    website = Column(String, nullable=True)
    function = Column(String, nullable=True)  # job position
    comment = Column(Text, nullable=True)

    active = Column(Boolean, nullable=False, default=True)
    customer = Column(Boolean, nullable=False, default=True)
    supplier = Column(Boolean, nullable=False, default=False)
    employee = Column(Boolean, nullable=False, default=False)

    categories = relationship("PartnerCategory", secondary=partner_category_rel)

    @classmethod
    def address_fields(cls) -> list[str]:
        """Fields that together make one postal address, in display order."""
        return ["street", "street2", "zip", "city", "state_id", "country_id"]

    @classmethod
    def commercial_fields(cls) -> list[str]:
        """Fields managed by the commercial entity a partner belongs to.

        Subclasses extend this list to have more values follow the company.
        """
        return ["vat", "credit_limit"]

    @property
    def company_type(self) -> str:
        return "company" if self.is_company else "person"
