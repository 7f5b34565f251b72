"""Runtime layer for workflow execution.

This module provides the execution substrate of the system:
- StepExecutor: Runs billed, traced, logged steps
- Agent: Runs a workflow with its own ledger, logger and trace id
- Tracer: Mirrors runs and steps into Langfuse
"""

from .agent import Agent, create_agent, invoke_workflow
from .step import StepExecutor, StepRuntime, build_billing_event
from .tracing import Tracer, get_tracer, set_tracer, to_langfuse_trace_id

__all__ = [
    # Agent
    "Agent",
    "create_agent",
    "invoke_workflow",
    # Step
    "StepExecutor",
    "StepRuntime",
    "build_billing_event",
    # Tracer
    "Tracer",
    "get_tracer",
    "set_tracer",
    "to_langfuse_trace_id",
]
