"""
Module: sourcing_kernel.selectors.base
Responsibility: Abstract base class for read-only query selectors (balance,
    available credit, credit history, payout summaries).
Architecture position: Kernel > Selectors.  May import from db/ and models/.
    MUST NOT import from services/ or outer layers.

Invariants enforced:
    - Read-only access: selectors MUST NOT call session.add(),
      session.delete(), session.commit(), or session.flush().
    - DTO return convention: selectors return frozen dataclasses or
      computed values, not ORM instances.
    - Derived values (balance, available credit) are computed from source
      rows on every call; nothing is cached.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseSelector(ABC):
    """
    Abstract base class for all selectors.

    Contract:
        Accepts a Session from the caller and performs read-only queries.
        The caller owns the session and its transaction scope.
    """

    def __init__(self, session: Session):
        self.session = session
