"""Invoke registered capabilities through the step machinery.

A CapabilityTool is bound to a capability name. Calling it runs one step
that resolves the capability in the registry, executes it with a
CapabilityContext, and bills the line item with whatever unit cost,
quantity and metadata the capability reported. A missing capability fails
inside the step, so it is logged and billed like any other step failure.
"""

import inspect
import logging
from collections.abc import Mapping
from typing import Any, Awaitable, Callable, Optional, Union

from stringcost.contracts.billing_io import ActionType, BillingEventInput
from stringcost.contracts.capability_io import (
    PARENT_TRACE_HEADER,
    CapabilityContext,
    CapabilityInvokeOptions,
    CapabilityResult,
)
from stringcost.contracts.step_io import CostDetails, StepFinalizeInput, StepOptions
from stringcost.capabilities.registry import CapabilityRegistry, get_registry
from stringcost.core.values import coerce_metadata, sanitize_number

logger = logging.getLogger(__name__)

StepFunction = Callable[..., Awaitable[Any]]


class CapabilityTool:
    """Callable that invokes one named capability as a billed step."""

    def __init__(self, name: str, registry: Optional[CapabilityRegistry] = None):
        """Initialize the tool.

        Args:
            name: Name of the capability to invoke.
            registry: Registry to resolve the capability in. If None, the
                process default registry is used at call time.
        """
        self.name = name
        self._registry = registry

    @property
    def registry(self) -> CapabilityRegistry:
        if self._registry is None:
            return get_registry()
        return self._registry

    async def __call__(
        self,
        step: StepFunction,
        input: Any,
        options: Union[CapabilityInvokeOptions, Mapping, None] = None,
    ) -> CapabilityResult:
        """Invoke the capability as a step.

        Args:
            step: The run's step function.
            input: Input passed to the capability's execute function.
            options: Per-call step options and extra headers.

        Returns:
            The CapabilityResult reported by the capability.

        Raises:
            CapabilityNotFoundError: If the capability is not registered.
            Exception: Whatever the capability raised.
        """
        if options is None:
            options = CapabilityInvokeOptions()
        elif not isinstance(options, CapabilityInvokeOptions):
            options = CapabilityInvokeOptions.model_validate(options)

        registry = self.registry

        step_options = StepOptions(
            name=options.name or f"{self.name} tool call",
            action_type=options.action_type or ActionType.TOOL_USE.value,
            unit_cost=options.unit_cost,
            quantity=options.quantity,
            metadata={**options.metadata, "capability": self.name},
            cost_calculator=options.cost_calculator,
            finalize_billing=self._reconcile(options),
            bill_on_error=options.bill_on_error,
        )

        async def work(runtime) -> CapabilityResult:
            definition = registry.get(self.name)
            if options.unit_cost is None and definition.default_unit_cost is not None:
                runtime.set_unit_cost(definition.default_unit_cost)
            headers = {**options.headers, PARENT_TRACE_HEADER: runtime.parent_trace_id}
            runtime.record_metadata({"headers": headers})

            execution = definition.execute(
                input,
                CapabilityContext(
                    trace_id=runtime.trace_id,
                    parent_trace_id=runtime.parent_trace_id,
                    logger=runtime.logger,
                    headers=headers,
                ),
            )
            if inspect.isawaitable(execution):
                execution = await execution
            if not isinstance(execution, CapabilityResult):
                execution = CapabilityResult.model_validate(execution)

            if execution.quantity is not None:
                runtime.set_quantity(execution.quantity)
            if execution.unit_cost is not None:
                runtime.set_unit_cost(execution.unit_cost)
            if execution.metadata:
                runtime.record_metadata(execution.metadata)
                # Reported metadata never replaces the trace headers.
                runtime.record_metadata({"headers": headers})
            return execution

        return await step(step_options, work)

    @staticmethod
    def _reconcile(
        options: CapabilityInvokeOptions,
    ) -> Callable[[StepFinalizeInput], BillingEventInput]:
        """Build the finalize hook merging capability-reported billing values."""

        def finalize(finalize_input: StepFinalizeInput) -> BillingEventInput:
            default_event = finalize_input.default_event
            execution = finalize_input.result
            if not isinstance(execution, CapabilityResult):
                execution = None

            metadata = {
                **default_event.metadata,
                **(coerce_metadata(execution.metadata) if execution else {}),
                "duration_ms": finalize_input.duration_ms,
            }
            if "headers" in default_event.metadata:
                metadata["headers"] = default_event.metadata["headers"]
            quantity = sanitize_number(
                execution.quantity if execution else None,
                sanitize_number(default_event.quantity, 1.0),
            )
            unit_cost = sanitize_number(
                execution.unit_cost if execution else None,
                sanitize_number(default_event.unit_cost, 0.0),
            )
            if options.cost_calculator is not None:
                total = options.cost_calculator(
                    CostDetails(
                        unit_cost=unit_cost,
                        quantity=quantity,
                        metadata=metadata,
                        duration_ms=finalize_input.duration_ms,
                    )
                )
            else:
                total = unit_cost * quantity

            return default_event.model_copy(
                update={
                    "unit_cost": unit_cost,
                    "quantity": quantity,
                    "total": total,
                    "metadata": metadata,
                }
            )

        return finalize


def create_capability_tool(
    name: str, registry: Optional[CapabilityRegistry] = None
) -> CapabilityTool:
    """Create a tool invoking the named capability.

    Args:
        name: Capability name.
        registry: Registry to resolve it in; defaults to the process registry.

    Returns:
        The CapabilityTool.
    """
    return CapabilityTool(name, registry=registry)
