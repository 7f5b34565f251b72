"""Contracts for agent runs.

AgentContext is what a workflow function receives next to its input.
AgentRunResult is what a successful run returns; a failed run raises
AgentExecutionError instead.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from stringcost.contracts.billing_io import BillingInvoice

if TYPE_CHECKING:
    from stringcost.core.billing import BillingLedger
    from stringcost.core.logger import StructuredLogger


@dataclass
class AgentContext:
    """Run-scoped context handed to a workflow function.

    Attributes:
        trace_id: Root trace id of the run.
        billing_ledger: The ledger owned by this run.
        logger: Logger bound with the agent name and trace id.
        metadata: Caller-supplied run metadata.
    """

    trace_id: str
    billing_ledger: "BillingLedger"
    logger: "StructuredLogger"
    metadata: Dict[str, Any] = field(default_factory=dict)


class AgentRunResult(BaseModel):
    """Result of a successful run."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    output: Any = Field(..., description="Value returned by the workflow")
    invoice: BillingInvoice = Field(..., description="Invoice for the run")
    trace_id: str = Field(..., description="Root trace id")
    started_at: datetime = Field(..., description="When the run started (UTC)")
    duration_ms: float = Field(..., description="Total run duration")

    def to_payload(self) -> Dict[str, Any]:
        """Serialize to {output, invoice, traceId, startedAt, durationMs}."""
        return self.model_dump(mode="json", by_alias=True)
