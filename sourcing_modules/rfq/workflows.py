"""
RFQ Workflow.

RFQ status follows its quotes: the first quote sent moves it to QUOTED,
an accepted quote closes it.
"""

from sourcing_kernel.domain.workflow import Transition, Workflow
from sourcing_kernel.logging_config import get_logger

logger = get_logger("modules.rfq.workflows")


RFQ_WORKFLOW = Workflow(
    name="rfq",
    description="Request-for-quotation lifecycle",
    initial_state="OPEN",
    states=(
        "OPEN",
        "QUOTED",
        "CLOSED",
        "CANCELLED",
    ),
    transitions=(
        Transition("OPEN", "QUOTED", action="quote_sent"),
        Transition("OPEN", "CLOSED", action="quote_accepted"),
        Transition("QUOTED", "CLOSED", action="quote_accepted"),
        Transition("OPEN", "CANCELLED", action="cancel"),
        Transition("QUOTED", "CANCELLED", action="cancel"),
    ),
    terminal_states=("CLOSED", "CANCELLED"),
)

logger.info(
    "rfq_workflow_registered",
    extra={
        "workflow_name": RFQ_WORKFLOW.name,
        "state_count": len(RFQ_WORKFLOW.states),
        "transition_count": len(RFQ_WORKFLOW.transitions),
        "initial_state": RFQ_WORKFLOW.initial_state,
    },
)
