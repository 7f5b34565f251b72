"""Data contracts shared across the stringcost runtime."""

from .agent_io import AgentContext, AgentRunResult
from .billing_io import (
    ActionType,
    BillingEvent,
    BillingEventInput,
    BillingInvoice,
    BillingStatus,
    Metadata,
)
from .capability_io import (
    PARENT_TRACE_HEADER,
    CapabilityContext,
    CapabilityDefinition,
    CapabilityInvokeOptions,
    CapabilityResult,
    CapabilitySpec,
)
from .step_io import (
    CostDetails,
    StepFailure,
    StepFinalizeInput,
    StepOptions,
    StepOutcome,
    StepSuccess,
)

__all__ = [
    "PARENT_TRACE_HEADER",
    "ActionType",
    "AgentContext",
    "AgentRunResult",
    "BillingEvent",
    "BillingEventInput",
    "BillingInvoice",
    "BillingStatus",
    "CapabilityContext",
    "CapabilityDefinition",
    "CapabilityInvokeOptions",
    "CapabilityResult",
    "CapabilitySpec",
    "CostDetails",
    "Metadata",
    "StepFailure",
    "StepFinalizeInput",
    "StepOptions",
    "StepOutcome",
    "StepSuccess",
]
