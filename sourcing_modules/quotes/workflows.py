"""
Quote Workflow.

A quote waits for the admin, who applies a margin and sends it to the
client; the client accepts or rejects it.  The admin may also reject a
quote before it is sent.
"""

from sourcing_kernel.domain.workflow import Transition, Workflow
from sourcing_kernel.logging_config import get_logger

logger = get_logger("modules.quotes.workflows")


QUOTE_WORKFLOW = Workflow(
    name="quote",
    description="Supplier quote lifecycle",
    initial_state="PENDING_ADMIN",
    states=(
        "PENDING_ADMIN",
        "SENT_TO_CLIENT",
        "ACCEPTED",
        "REJECTED",
    ),
    transitions=(
        Transition("PENDING_ADMIN", "SENT_TO_CLIENT", action="apply_margin_and_send"),
        Transition("PENDING_ADMIN", "REJECTED", action="reject"),
        Transition("SENT_TO_CLIENT", "ACCEPTED", action="accept"),
        Transition("SENT_TO_CLIENT", "REJECTED", action="reject"),
    ),
    terminal_states=("ACCEPTED", "REJECTED"),
)

logger.info(
    "quote_workflow_registered",
    extra={
        "workflow_name": QUOTE_WORKFLOW.name,
        "state_count": len(QUOTE_WORKFLOW.states),
        "transition_count": len(QUOTE_WORKFLOW.transitions),
        "initial_state": QUOTE_WORKFLOW.initial_state,
    },
)
