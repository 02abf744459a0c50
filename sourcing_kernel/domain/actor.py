"""
Acting identity (``sourcing_kernel.domain.actor``).

The identity/session service is an external collaborator.  The kernel
only ever sees its output: who is acting and in which role.  Permission
checks in quote acceptance and credit adjustment consume this value.
"""

from dataclasses import dataclass
from enum import Enum
from uuid import UUID


class ActorRole(str, Enum):
    CLIENT = "CLIENT"
    SUPPLIER = "SUPPLIER"
    ADMIN = "ADMIN"


@dataclass(frozen=True)
class Actor:
    """The authenticated user performing an operation."""
    actor_id: UUID
    role: ActorRole

    @property
    def is_admin(self) -> bool:
        return self.role == ActorRole.ADMIN

    @classmethod
    def admin(cls, actor_id: UUID) -> "Actor":
        return cls(actor_id=actor_id, role=ActorRole.ADMIN)

    @classmethod
    def client(cls, actor_id: UUID) -> "Actor":
        return cls(actor_id=actor_id, role=ActorRole.CLIENT)

    @classmethod
    def supplier(cls, actor_id: UUID) -> "Actor":
        return cls(actor_id=actor_id, role=ActorRole.SUPPLIER)
