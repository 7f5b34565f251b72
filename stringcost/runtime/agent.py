"""Agent runtime: the top-level orchestrator for workflow runs.

Every invocation gets its own root trace id, billing ledger, logger chain
and step executor; none of these are shared between runs. A run either
returns an AgentRunResult or raises a single AgentExecutionError carrying
the partial invoice, so billing information survives a failed run.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Generic, Optional, TypeVar

from stringcost.config import settings
from stringcost.contracts.agent_io import AgentContext, AgentRunResult
from stringcost.core.billing import BillingLedger
from stringcost.core.logger import StructuredLogger, create_logger
from stringcost.core.trace_ids import new_root_id
from stringcost.core.values import serialize_error, summarize_input
from stringcost.errors import AgentExecutionError
from stringcost.runtime.step import StepExecutor
from stringcost.runtime.tracing import Tracer, get_tracer

logger = logging.getLogger(__name__)

TInput = TypeVar("TInput")
TOutput = TypeVar("TOutput")

StepFunction = Callable[..., Awaitable[Any]]
WorkflowFunction = Callable[[StepFunction, Any, AgentContext], Awaitable[Any]]


class Agent(Generic[TInput, TOutput]):
    """A named workflow that can be invoked any number of times."""

    def __init__(
        self,
        name: str,
        workflow: WorkflowFunction,
        tracer: Optional[Tracer] = None,
    ):
        """Initialize the agent.

        Args:
            name: Agent (workflow) name; used as log prefix and in errors.
            workflow: Async function (step, input, context) -> output.
            tracer: Tracing sink. If None, uses the process default tracer.
        """
        if not callable(workflow):
            raise ValueError(f"Workflow for agent {name} must be callable")
        self.name = name
        self.workflow = workflow
        self._tracer = tracer

    @property
    def tracer(self) -> Tracer:
        return self._tracer or get_tracer()

    async def invoke(
        self,
        input: TInput,
        trace_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        logger: Optional[StructuredLogger] = None,
    ) -> AgentRunResult:
        """Run the workflow once.

        Args:
            input: Workflow input.
            trace_id: Root trace id to use. Generated when omitted.
            metadata: Run metadata exposed to the workflow as context.metadata.
            logger: Base logger. Defaults to a logger prefixed with the agent name.

        Returns:
            AgentRunResult with output, invoice, trace id, start time and duration.

        Raises:
            AgentExecutionError: If the workflow raises. Carries the partial
                invoice and chains the original exception.
        """
        trace_id = trace_id or new_root_id()
        ledger = BillingLedger()
        base_logger = (logger or create_logger(self.name)).child(
            {"trace_id": trace_id, "agent": self.name}
        )
        started_at = datetime.now(timezone.utc)
        started = time.perf_counter()
        tracer = self.tracer

        base_logger.info(
            "run.start",
            {"input_preview": summarize_input(input, settings.input_preview_length)},
        )

        executor = StepExecutor(trace_id, ledger, base_logger, tracer=tracer)
        context = AgentContext(
            trace_id=trace_id,
            billing_ledger=ledger,
            logger=base_logger,
            metadata=dict(metadata or {}),
        )

        with tracer.span(
            name=f"agent.{self.name}",
            trace_id=trace_id,
            metadata={"agent": self.name, **context.metadata},
        ) as span:
            try:
                output = await self.workflow(executor.step, input, context)
            except Exception as error:
                invoice = ledger.invoice()
                duration_ms = _elapsed_ms(started)
                base_logger.error(
                    "run.error",
                    {"duration_ms": duration_ms, "error": serialize_error(error)},
                )
                tracer.update_span(
                    span, output=invoice.to_payload(), level="ERROR"
                )
                raise AgentExecutionError(self.name, trace_id, error, invoice) from error

            invoice = ledger.invoice()
            duration_ms = _elapsed_ms(started)
            base_logger.info(
                "run.success", {"duration_ms": duration_ms, "total": invoice.total}
            )
            tracer.update_span(span, output=invoice.to_payload())

        return AgentRunResult(
            output=output,
            invoice=invoice,
            trace_id=trace_id,
            started_at=started_at,
            duration_ms=duration_ms,
        )


def create_agent(
    name: str, workflow: WorkflowFunction, tracer: Optional[Tracer] = None
) -> Agent:
    """Create an Agent for a workflow function.

    Args:
        name: Agent name.
        workflow: Async function (step, input, context) -> output.
        tracer: Optional tracing sink.

    Returns:
        The Agent.
    """
    return Agent(name, workflow, tracer=tracer)


async def invoke_workflow(
    name: str,
    workflow: WorkflowFunction,
    input: Any,
    **options: Any,
) -> AgentRunResult:
    """Run a workflow once without keeping an Agent around.

    Args:
        name: Workflow name.
        workflow: Async function (step, input, context) -> output.
        input: Workflow input.
        **options: trace_id, metadata and logger, as for Agent.invoke.

    Returns:
        The AgentRunResult.
    """
    return await Agent(name, workflow).invoke(input, **options)


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 3)
