"""Unit tests for invoking capabilities as billed steps."""

import pytest

from stringcost.capabilities.registry import set_registry
from stringcost.capabilities.tool import CapabilityTool, create_capability_tool
from stringcost.contracts.billing_io import BillingStatus
from stringcost.contracts.capability_io import (
    PARENT_TRACE_HEADER,
    CapabilityDefinition,
    CapabilityInvokeOptions,
    CapabilityResult,
)
from stringcost.core.billing import BillingLedger
from stringcost.core.logger import create_logger
from stringcost.errors import CapabilityNotFoundError
from stringcost.runtime.step import StepExecutor
from stringcost.runtime.tracing import Tracer

ROOT_TRACE_ID = "run-root"


@pytest.fixture
def ledger():
    return BillingLedger()


@pytest.fixture
def step(ledger):
    """Create a step function bound to a fresh ledger."""
    executor = StepExecutor(
        ROOT_TRACE_ID, ledger, create_logger("tool-test"), tracer=Tracer(enabled=False)
    )
    return executor.step


class Recorder:
    """Capability that records its calls and reports fixed billing."""

    def __init__(self, result=None, unit_cost=None, quantity=None, metadata=None):
        self.calls = []
        self.result = result
        self.unit_cost = unit_cost
        self.quantity = quantity
        self.metadata = metadata or {}

    async def __call__(self, input, context):
        self.calls.append((input, context))
        return CapabilityResult(
            result=self.result if self.result is not None else input,
            unit_cost=self.unit_cost,
            quantity=self.quantity,
            metadata=self.metadata,
        )


class TestCapabilityTool:
    """Test CapabilityTool invocation."""

    @pytest.mark.asyncio
    async def test_reported_values_override_step_defaults(self, registry, step, ledger):
        """Test that reported unit cost and metadata land on the line item."""
        capability = Recorder(
            result={"ok": True}, unit_cost=0.002, metadata={"value": "ok"}
        )
        registry.register(
            CapabilityDefinition(name="lookup", default_unit_cost=0.001, execute=capability)
        )
        tool = create_capability_tool("lookup", registry=registry)

        execution = await tool(step, {"q": "coffee"}, {"quantity": 3})

        assert execution.result == {"ok": True}
        item = ledger.line_items()[0]
        assert item.unit_cost == 0.002
        assert item.quantity == 3
        assert item.total == pytest.approx(0.006)
        assert item.metadata["value"] == "ok"
        assert item.metadata["capability"] == "lookup"
        assert "duration_ms" in item.metadata

    @pytest.mark.asyncio
    async def test_defaults(self, registry, step, ledger):
        """Test the default step name, action type and unit cost."""
        registry.register(
            CapabilityDefinition(name="lookup", default_unit_cost=0.001, execute=Recorder())
        )

        await CapabilityTool("lookup", registry=registry)(step, "input")

        item = ledger.line_items()[0]
        assert item.step_name == "lookup tool call"
        assert item.action_type == "tool_use"
        assert item.unit_cost == 0.001
        assert item.total == 0.001
        assert item.status == BillingStatus.SUCCESS

    @pytest.mark.asyncio
    async def test_caller_options(self, registry, step, ledger):
        """Test caller-supplied name, action type, unit cost and metadata."""
        registry.register(
            CapabilityDefinition(name="lookup", default_unit_cost=0.001, execute=Recorder())
        )
        tool = CapabilityTool("lookup", registry=registry)

        await tool(
            step,
            "input",
            CapabilityInvokeOptions(
                name="Custom Lookup",
                action_type="evaluation",
                unit_cost=0.01,
                metadata={"source": "test"},
            ),
        )

        item = ledger.line_items()[0]
        assert item.step_name == "Custom Lookup"
        assert item.action_type == "evaluation"
        assert item.unit_cost == 0.01
        assert item.metadata["source"] == "test"

    @pytest.mark.asyncio
    async def test_context_and_headers(self, registry, step, ledger):
        """Test the context passed to execute and the recorded headers."""
        capability = Recorder()
        registry.register(CapabilityDefinition(name="lookup", execute=capability))

        await CapabilityTool("lookup", registry=registry)(
            step, "input", {"headers": {"X-Tenant": "acme"}}
        )

        _, context = capability.calls[0]
        assert context.parent_trace_id == ROOT_TRACE_ID
        assert context.trace_id.startswith(f"{ROOT_TRACE_ID}:lookup-tool-call:")
        assert context.headers == {
            "X-Tenant": "acme",
            PARENT_TRACE_HEADER: ROOT_TRACE_ID,
        }
        assert ledger.line_items()[0].metadata["headers"] == context.headers

    @pytest.mark.asyncio
    async def test_mapping_result_is_coerced(self, registry, step, ledger):
        """Test a synchronous capability returning a plain mapping."""

        def execute(input, context):
            return {"result": input * 2, "quantity": 4, "unitCost": 0.5}

        registry.register(CapabilityDefinition(name="double", execute=execute))

        execution = await CapabilityTool("double", registry=registry)(step, 21)

        assert isinstance(execution, CapabilityResult)
        assert execution.result == 42
        assert ledger.line_items()[0].total == 2.0

    @pytest.mark.asyncio
    async def test_cost_calculator(self, registry, step, ledger):
        registry.register(
            CapabilityDefinition(
                name="lookup", execute=Recorder(unit_cost=0.1, quantity=10)
            )
        )

        await CapabilityTool("lookup", registry=registry)(
            step, "x", {"cost_calculator": lambda details: details.unit_cost * 2}
        )

        assert ledger.line_items()[0].total == pytest.approx(0.2)

    @pytest.mark.asyncio
    async def test_missing_capability_is_billed_failure(self, registry, step, ledger):
        """Test that an unknown capability fails inside a billed step."""
        tool = CapabilityTool("ghost", registry=registry)

        with pytest.raises(CapabilityNotFoundError):
            await tool(step, "x")

        item = ledger.line_items()[0]
        assert item.status == BillingStatus.ERROR
        assert item.step_name == "ghost tool call"
        assert item.metadata["error"]["name"] == "CapabilityNotFoundError"

    @pytest.mark.asyncio
    async def test_capability_error_propagates(self, registry, step, ledger):
        def execute(input, context):
            raise ConnectionError("upstream down")

        registry.register(
            CapabilityDefinition(name="flaky", default_unit_cost=0.003, execute=execute)
        )

        with pytest.raises(ConnectionError):
            await CapabilityTool("flaky", registry=registry)(step, "x")

        item = ledger.line_items()[0]
        assert item.status == BillingStatus.ERROR
        assert item.total == 0.003

    @pytest.mark.asyncio
    async def test_replacement_is_observed(self, registry, step):
        """Test that a tool resolves the capability at call time."""
        registry.register(CapabilityDefinition(name="svc", execute=Recorder(result="v1")))
        tool = CapabilityTool("svc", registry=registry)

        first = await tool(step, "x")
        registry.register(CapabilityDefinition(name="svc", execute=Recorder(result="v2")))
        second = await tool(step, "x")

        assert (first.result, second.result) == ("v1", "v2")

    @pytest.mark.asyncio
    async def test_uses_default_registry(self, registry, step):
        """Test that a tool without a registry uses the process default."""
        set_registry(registry)
        registry.register(CapabilityDefinition(name="svc", execute=Recorder(result="v")))

        execution = await create_capability_tool("svc")(step, "x")

        assert execution.result == "v"

    @pytest.mark.asyncio
    async def test_reported_headers_do_not_replace_trace_headers(
        self, registry, step, ledger
    ):
        """Test that a capability's own headers metadata is overridden."""
        capability = Recorder(metadata={"headers": {"X-Parent-Trace-Id": "spoofed"}})
        registry.register(CapabilityDefinition(name="lookup", execute=capability))

        await CapabilityTool("lookup", registry=registry)(step, "x")

        _, context = capability.calls[0]
        assert ledger.line_items()[0].metadata["headers"] == context.headers
        assert context.headers[PARENT_TRACE_HEADER] == ROOT_TRACE_ID

    @pytest.mark.asyncio
    async def test_default_unit_cost_from_definition_that_runs(
        self, registry, step, ledger
    ):
        """Test that the default cost comes from the definition actually executed."""
        registry.register(
            CapabilityDefinition(name="svc", default_unit_cost=0.001, execute=Recorder())
        )
        replacement = Recorder(result="new")

        async def step_after_replacement(options, work):
            registry.register(
                CapabilityDefinition(
                    name="svc", default_unit_cost=0.005, execute=replacement
                )
            )
            return await step(options, work)

        execution = await CapabilityTool("svc", registry=registry)(
            step_after_replacement, "x"
        )

        assert execution.result == "new"
        item = ledger.line_items()[0]
        assert item.unit_cost == 0.005
        assert item.total == 0.005
