"""
Pure domain layer.

Value objects and rules with NO dependencies on the ORM, the database,
or I/O (the SystemClock being the one sanctioned time boundary).
"""

from sourcing_kernel.domain.actor import Actor, ActorRole
from sourcing_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from sourcing_kernel.domain.pricing import apply_margin
from sourcing_kernel.domain.results import OperationResult, OperationStatus
from sourcing_kernel.domain.workflow import Transition, Workflow

__all__ = [
    "Actor",
    "ActorRole",
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "apply_margin",
    "OperationResult",
    "OperationStatus",
    "Transition",
    "Workflow",
]
