"""
Canonical workflow types (``sourcing_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for lifecycle state machines.  Quote and order
lifecycles are each declared once as a ``Workflow``; the adjacency table
derived from its transitions is the single source of truth for every
caller that moves an entity between states.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``services/``, ``selectors/``, or outer layers.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* Declared ``terminal_states`` have no outgoing transitions.
* A state never transitions to itself: a repeated request fails instead
  of silently succeeding, so blind retries cannot double-apply.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Transition:
    """A valid state transition in a workflow.

    ``action`` names the business event that drives the transition
    (``send``, ``accept``, ``ship``...).
    """
    from_state: str
    to_state: str
    action: str


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for a document lifecycle.

    Contract: frozen; ``transitions`` reference only states in ``states``.
    Guarantees: ``initial_state`` is a member of ``states``; terminal states
    have no outgoing edges.  Violations raise ``ValueError`` at definition
    time, so a malformed table never reaches runtime.
    """
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()
    _adjacency: dict[str, tuple[str, ...]] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        known = set(self.states)
        if self.initial_state not in known:
            raise ValueError(
                f"Workflow {self.name}: initial state {self.initial_state!r} not in states"
            )
        adjacency: dict[str, list[str]] = {state: [] for state in self.states}
        for t in self.transitions:
            if t.from_state not in known or t.to_state not in known:
                raise ValueError(
                    f"Workflow {self.name}: transition {t.from_state}->{t.to_state} "
                    "references an unknown state"
                )
            if t.from_state == t.to_state:
                raise ValueError(
                    f"Workflow {self.name}: self-transition on {t.from_state}"
                )
            if t.to_state not in adjacency[t.from_state]:
                adjacency[t.from_state].append(t.to_state)
        for state in self.terminal_states:
            if adjacency.get(state):
                raise ValueError(
                    f"Workflow {self.name}: terminal state {state} has outgoing transitions"
                )
        object.__setattr__(
            self,
            "_adjacency",
            {state: tuple(targets) for state, targets in adjacency.items()},
        )

    def allowed_transitions(self, current: str) -> tuple[str, ...]:
        """Legal next states from ``current`` (empty for unknown/terminal)."""
        return self._adjacency.get(current, ())

    def can_transition(self, current: str, target: str) -> bool:
        return target in self.allowed_transitions(current)

    def is_terminal(self, state: str) -> bool:
        return state in self.states and not self._adjacency.get(state)

    def action_for(self, current: str, target: str) -> str | None:
        for t in self.transitions:
            if t.from_state == current and t.to_state == target:
                return t.action
        return None
