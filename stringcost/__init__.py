"""Stringcost: step-level tracing, logging and billing for agent workflows.

The public surface re-exported here is what workflow authors need:
- create_agent / Agent: run a workflow with a fresh ledger, logger and trace
- StepOptions: describe one billed step
- CapabilityRegistry / create_capability_tool: invoke named external tools
- BillingLedger / BillingInvoice: the per-run cost record
"""

from .capabilities import (
    CapabilityRegistry,
    CapabilityTool,
    create_capability_tool,
    get_registry,
    set_registry,
)
from .contracts import (
    ActionType,
    AgentContext,
    AgentRunResult,
    BillingEvent,
    BillingEventInput,
    BillingInvoice,
    BillingStatus,
    CapabilityContext,
    CapabilityDefinition,
    CapabilityInvokeOptions,
    CapabilityResult,
    CostDetails,
    StepFinalizeInput,
    StepOptions,
)
from .core import BillingLedger, StructuredLogger, configure_logging, create_logger
from .errors import AgentExecutionError, CapabilityNotFoundError, StringcostError
from .runtime import Agent, StepExecutor, StepRuntime, create_agent

__all__ = [
    "ActionType",
    "Agent",
    "AgentContext",
    "AgentExecutionError",
    "AgentRunResult",
    "BillingEvent",
    "BillingEventInput",
    "BillingInvoice",
    "BillingLedger",
    "BillingStatus",
    "CapabilityContext",
    "CapabilityDefinition",
    "CapabilityInvokeOptions",
    "CapabilityNotFoundError",
    "CapabilityRegistry",
    "CapabilityResult",
    "CapabilityTool",
    "CostDetails",
    "StepExecutor",
    "StepFinalizeInput",
    "StepOptions",
    "StepRuntime",
    "StringcostError",
    "StructuredLogger",
    "configure_logging",
    "create_agent",
    "create_capability_tool",
    "create_logger",
    "get_registry",
    "set_registry",
]
