"""Error types raised by the stringcost runtime."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from stringcost.contracts.billing_io import BillingInvoice


class StringcostError(Exception):
    """Base class for all stringcost errors."""


class CapabilityNotFoundError(StringcostError):
    """Raised when a capability name is not present in the registry."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f'Capability "{name}" is not registered')


class AgentExecutionError(StringcostError):
    """Raised when a workflow run fails.

    Carries the partial invoice built before the failure so billing
    information survives an aborted run. The original exception is also
    chained as ``__cause__`` by the runtime.

    Attributes:
        workflow_name: Name of the agent whose workflow failed.
        trace_id: Root trace id of the failed run.
        invoice: Invoice snapshot taken when the failure escaped the workflow.
        original_error: The exception raised by the workflow.
    """

    def __init__(
        self,
        workflow_name: str,
        trace_id: str,
        original_error: BaseException,
        invoice: "BillingInvoice",
    ):
        self.workflow_name = workflow_name
        self.trace_id = trace_id
        self.original_error = original_error
        self.invoice = invoice
        super().__init__(f'Agent "{workflow_name}" failed (trace {trace_id})')

    @property
    def agent_name(self) -> str:
        """Alias of workflow_name."""
        return self.workflow_name
