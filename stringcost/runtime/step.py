"""Step execution middleware.

This module provides the StepExecutor, which wraps one unit of work in a
child trace, times it, logs start/complete/failed and commits exactly one
billing event to the run's ledger, on success and (by default) on failure.

The work's outcome is captured as a tagged StepSuccess / StepFailure, the
billing event is built from it, and only then is the value returned or the
original exception re-raised. Billing never swallows an error.
"""

import inspect
import logging
import threading
import time
from collections.abc import Mapping
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar, Union

from stringcost.contracts.billing_io import (
    BillingEvent,
    BillingEventInput,
    BillingStatus,
)
from stringcost.contracts.step_io import (
    CostDetails,
    StepFailure,
    StepFinalizeInput,
    StepOptions,
    StepOutcome,
    StepSuccess,
)
from stringcost.core.billing import BillingLedger
from stringcost.core.logger import StructuredLogger
from stringcost.core.trace_ids import derive_child_id
from stringcost.core.values import coerce_metadata, sanitize_number, serialize_error
from stringcost.runtime.tracing import Tracer, get_tracer

logger = logging.getLogger(__name__)

T = TypeVar("T")

StepWork = Callable[["StepRuntime"], Union[Awaitable[T], T]]


class StepRuntime:
    """Handle passed to a step body while it runs.

    Lets the body adjust quantity, unit cost and metadata before the
    billing event is finalized. Only valid for the duration of the step.
    """

    def __init__(
        self,
        trace_id: str,
        parent_trace_id: str,
        logger: StructuredLogger,
        unit_cost: float,
        quantity: float,
        metadata: Dict[str, Any],
    ):
        self.trace_id = trace_id
        self.parent_trace_id = parent_trace_id
        self.logger = logger
        self._unit_cost = unit_cost
        self._quantity = quantity
        self._metadata = metadata

    @property
    def unit_cost(self) -> float:
        return self._unit_cost

    @property
    def quantity(self) -> float:
        return self._quantity

    @property
    def metadata(self) -> Dict[str, Any]:
        """Copy of the metadata accumulated so far."""
        return dict(self._metadata)

    def set_quantity(self, value: Any) -> None:
        """Set the quantity; non-finite values keep the current quantity."""
        self._quantity = sanitize_number(value, self._quantity)

    def set_unit_cost(self, value: Any) -> None:
        """Set the unit cost; non-finite values keep the current unit cost."""
        self._unit_cost = sanitize_number(value, self._unit_cost)

    def record_metadata(self, data: Mapping) -> None:
        """Merge data into the step metadata, last write wins."""
        self._metadata.update(coerce_metadata(data))


class StepExecutor:
    """Executes billed, traced, logged steps for one run.

    One executor is bound to a run's root trace id, ledger and logger. Its
    step() method is the callable handed to workflow functions.
    """

    def __init__(
        self,
        root_trace_id: str,
        ledger: BillingLedger,
        logger: StructuredLogger,
        tracer: Optional[Tracer] = None,
    ):
        """Initialize the executor.

        Args:
            root_trace_id: Trace id of the run; parent of every step.
            ledger: Ledger the run's billing events are committed to.
            logger: Run logger; each step logs through a child of it.
            tracer: Tracing sink. If None, uses the process default tracer.
        """
        self.root_trace_id = root_trace_id
        self.ledger = ledger
        self.logger = logger
        self.tracer = tracer or get_tracer()
        self._last_issued_ms = 0
        self._issue_lock = threading.Lock()

    async def __call__(
        self, options: Union[StepOptions, Mapping], work: StepWork
    ) -> Any:
        return await self.step(options, work)

    async def step(self, options: Union[StepOptions, Mapping], work: StepWork) -> Any:
        """Run work as one billed step.

        Args:
            options: StepOptions (or a mapping of its fields).
            work: Callable receiving a StepRuntime. May be sync or async.

        Returns:
            Whatever work returned.

        Raises:
            Exception: Whatever work raised, after the failure was logged and,
                when bill_on_error is set, billed.
        """
        if not isinstance(options, StepOptions):
            options = StepOptions.model_validate(options)

        started = time.perf_counter()
        trace_id = derive_child_id(
            self.root_trace_id, options.name, self._issue_timestamp()
        )
        step_logger = self.logger.child(
            {
                "step": options.name,
                "trace_id": trace_id,
                "parent_trace_id": self.root_trace_id,
            }
        )
        metadata = coerce_metadata(options.metadata)
        metadata["trace_id"] = trace_id
        runtime = StepRuntime(
            trace_id=trace_id,
            parent_trace_id=self.root_trace_id,
            logger=step_logger,
            unit_cost=sanitize_number(options.unit_cost, 0.0),
            quantity=sanitize_number(options.quantity, 1.0),
            metadata=metadata,
        )

        step_logger.info(
            "start",
            {
                "action_type": options.action_type,
                "unit_cost": runtime.unit_cost,
                "quantity": runtime.quantity,
            },
        )

        with self.tracer.span(
            name=f"step.{options.name}",
            trace_id=self.root_trace_id,
            metadata={"step_trace_id": trace_id, "action_type": options.action_type},
        ) as span:
            outcome = await self._run(work, runtime)
            duration_ms = _elapsed_ms(started)
            runtime.record_metadata({"duration_ms": duration_ms})

            if isinstance(outcome, StepFailure):
                error_summary = serialize_error(outcome.error)
                runtime.record_metadata({"error": error_summary})
                step_logger.error(
                    "failed", {"duration_ms": duration_ms, "error": error_summary}
                )
                if options.bill_on_error:
                    try:
                        event = await self._commit(
                            options, runtime, duration_ms, outcome, BillingStatus.ERROR
                        )
                    except Exception as hook_error:
                        # The work's error is re-raised; bill unit_cost * quantity.
                        step_logger.error(
                            "billing hook failed",
                            {"error": serialize_error(hook_error)},
                        )
                        event = self.ledger.record(
                            build_billing_event(
                                options,
                                runtime,
                                duration_ms,
                                BillingStatus.ERROR,
                                apply_calculator=False,
                            )
                        )
                    self.tracer.update_span(
                        span, output=event.to_payload(), level="ERROR"
                    )
                raise outcome.error

            event = await self._commit(
                options, runtime, duration_ms, outcome, BillingStatus.SUCCESS
            )
            self.tracer.update_span(span, output=event.to_payload())
            step_logger.info(
                "complete", {"duration_ms": duration_ms, "total": event.total}
            )
            return outcome.value

    async def _run(self, work: StepWork, runtime: StepRuntime) -> StepOutcome:
        try:
            result = work(runtime)
            if inspect.isawaitable(result):
                result = await result
        except Exception as error:
            return StepFailure(error=error)
        return StepSuccess(value=result)

    async def _commit(
        self,
        options: StepOptions,
        runtime: StepRuntime,
        duration_ms: float,
        outcome: StepOutcome,
        status: BillingStatus,
    ) -> BillingEvent:
        default_event = build_billing_event(options, runtime, duration_ms, status)
        event: Union[BillingEventInput, Mapping, None] = None

        if options.finalize_billing is not None:
            finalize_input = StepFinalizeInput(
                result=outcome.value if isinstance(outcome, StepSuccess) else None,
                error=outcome.error if isinstance(outcome, StepFailure) else None,
                duration_ms=duration_ms,
                default_event=default_event,
            )
            event = options.finalize_billing(finalize_input)
            if inspect.isawaitable(event):
                event = await event

        # A hook returning nothing keeps the default; anything else replaces it.
        if event is None or (isinstance(event, Mapping) and not event):
            event = default_event
        return self.ledger.record(event)

    def _issue_timestamp(self) -> int:
        # Strictly increasing per executor so same-named steps never share an id.
        now = int(time.time() * 1000)
        with self._issue_lock:
            if now <= self._last_issued_ms:
                now = self._last_issued_ms + 1
            self._last_issued_ms = now
        return now


def build_billing_event(
    options: StepOptions,
    runtime: StepRuntime,
    duration_ms: float,
    status: BillingStatus = BillingStatus.SUCCESS,
    apply_calculator: bool = True,
) -> BillingEventInput:
    """Build the default billing event for a finished step.

    The total comes from the step's cost calculator when one is set and
    apply_calculator is true, and is unit_cost * quantity otherwise.
    """
    metadata = runtime.metadata
    unit_cost = runtime.unit_cost
    quantity = runtime.quantity
    if apply_calculator and options.cost_calculator is not None:
        total = options.cost_calculator(
            CostDetails(
                unit_cost=unit_cost,
                quantity=quantity,
                metadata=metadata,
                duration_ms=duration_ms,
            )
        )
    else:
        total = unit_cost * quantity

    return BillingEventInput(
        step_name=options.name,
        action_type=options.action_type,
        unit_cost=unit_cost,
        quantity=quantity,
        total=sanitize_number(total, unit_cost * quantity),
        metadata=metadata,
        status=status,
    )


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 3)
