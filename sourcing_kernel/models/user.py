"""
Module: sourcing_kernel.models.user
Responsibility: ORM persistence for marketplace participants (clients,
    suppliers, admins).  The client row carries the denormalized credit
    limit and the optional client-specific margin.
Architecture position: Kernel > Models.  May import from db/ only.
    MUST NOT import from services/, selectors/, or outer layers.

Invariants enforced:
    - credit_limit equals the cumulative effect of the client's
      credit-limit history.  Only the credit ledger service writes it,
      and only through a compare-and-swap on the previously read value.
    - client_margin, when set, lies in [0, 100] with two decimal places.

Failure modes:
    - IntegrityError on duplicate email (uq_user_email constraint).
"""

from decimal import Decimal
from enum import Enum

from sqlalchemy import Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from sourcing_kernel.db.base import TrackedBase
from sourcing_kernel.db.types import Percent


class UserRole(str, Enum):
    """Marketplace role.  Values match ``ActorRole`` one for one."""

    CLIENT = "CLIENT"
    SUPPLIER = "SUPPLIER"
    ADMIN = "ADMIN"


class PaymentTerms(str, Enum):
    """Client payment terms.  Prepay clients are never credit-checked."""

    PREPAY = "prepay"
    NET_15 = "net_15"
    NET_30 = "net_30"
    NET_45 = "net_45"


class UserModel(TrackedBase):
    """
    A marketplace participant.

    Contract:
        ``role`` is fixed at creation.  Credit fields are meaningful only
        for CLIENT rows; suppliers and admins keep the zero default.

    Non-goals:
        - Authentication.  The identity/session service is external and
          hands the kernel an ``Actor`` value.
        - Balance.  It is derived from the client's orders, never stored.
    """

    __tablename__ = "users"

    __table_args__ = (
        UniqueConstraint("email", name="uq_user_email"),
        Index("idx_user_role", "role"),
    )

    role: Mapped[str] = mapped_column(String(20), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    company_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Credit controls (clients only)
    credit_limit: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    client_margin: Mapped[Percent | None] = mapped_column(nullable=True)
    payment_terms: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PaymentTerms.NET_30.value,
    )

    @property
    def is_client(self) -> bool:
        return self.role == UserRole.CLIENT.value

    @property
    def is_prepay(self) -> bool:
        return self.payment_terms == PaymentTerms.PREPAY.value

    @property
    def display_name(self) -> str:
        """Label used in margin-source descriptions and notifications."""
        return self.company_name or self.name

    def __repr__(self) -> str:
        return f"<User {self.name} ({self.role})>"
