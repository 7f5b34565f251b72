"""Unit tests for the agent runtime."""

import logging

import pytest

from stringcost.capabilities.registry import CapabilityRegistry
from stringcost.capabilities.tool import create_capability_tool
from stringcost.contracts.billing_io import ActionType, BillingStatus
from stringcost.contracts.step_io import StepOptions
from stringcost.core.logger import DEFAULT_LOGGER_NAME
from stringcost.errors import AgentExecutionError, CapabilityNotFoundError
from stringcost.runtime.agent import Agent, create_agent, invoke_workflow


async def branching_workflow(step, input, context):
    """Generate, evaluate each branch, then synthesize."""
    themes = await step(
        StepOptions(name="Generate", action_type=ActionType.LLM_CALL, unit_cost=0.002),
        lambda runtime: [f"theme {i}" for i in range(input["branches"])],
    )
    scores = []
    for theme in themes:
        scores.append(
            await step(
                StepOptions(
                    name="Evaluate",
                    action_type=ActionType.EVALUATION,
                    unit_cost=0.001,
                    metadata={"theme": theme},
                ),
                lambda runtime, theme=theme: len(theme),
            )
        )
    return await step(
        StepOptions(name="Synthesize", action_type=ActionType.SYNTHESIS, unit_cost=0.002),
        lambda runtime: {"themes": themes, "scores": scores},
    )


class TestAgentInvoke:
    """Test Agent.invoke on successful runs."""

    @pytest.mark.asyncio
    async def test_bills_every_step(self):
        """Test one line item per step and the resulting total."""
        agent = create_agent("brancher", branching_workflow)

        result = await agent.invoke({"branches": 3})

        items = result.invoice.line_items
        assert [item.step_name for item in items] == [
            "Generate",
            "Evaluate",
            "Evaluate",
            "Evaluate",
            "Synthesize",
        ]
        assert result.invoice.total == 0.007
        assert result.output["themes"] == ["theme 0", "theme 1", "theme 2"]
        assert all(item.status == BillingStatus.SUCCESS for item in items)

    @pytest.mark.asyncio
    async def test_more_branches_cost_more(self):
        """Test that the total increases strictly with the branch count."""
        agent = create_agent("brancher", branching_workflow)

        three = await agent.invoke({"branches": 3})
        five = await agent.invoke({"branches": 5})

        assert len(five.invoice.line_items) == len(three.invoice.line_items) + 2
        assert five.invoice.total > three.invoice.total

    @pytest.mark.asyncio
    async def test_runs_are_isolated(self):
        """Test that each run gets its own trace id and ledger."""
        agent = create_agent("brancher", branching_workflow)

        first = await agent.invoke({"branches": 1})
        second = await agent.invoke({"branches": 1})

        assert first.trace_id != second.trace_id
        assert len(first.invoice.line_items) == len(second.invoice.line_items) == 3
        for item in second.invoice.line_items:
            assert item.metadata["trace_id"].startswith(f"{second.trace_id}:")

    @pytest.mark.asyncio
    async def test_uses_supplied_trace_id_and_metadata(self):
        """Test that caller trace id and metadata reach the workflow."""
        seen = {}

        async def workflow(step, input, context):
            seen["trace_id"] = context.trace_id
            seen["metadata"] = context.metadata
            seen["ledger"] = context.billing_ledger
            return input

        result = await create_agent("echo", workflow).invoke(
            "hello", trace_id="fixed-trace", metadata={"tenant": "acme"}
        )

        assert result.trace_id == "fixed-trace"
        assert result.output == "hello"
        assert seen["trace_id"] == "fixed-trace"
        assert seen["metadata"] == {"tenant": "acme"}
        assert len(seen["ledger"]) == 0
        assert result.invoice.total == 0
        assert result.duration_ms >= 0
        assert result.started_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_invoke_workflow(self):
        """Test the one-shot helper."""
        result = await invoke_workflow("once", branching_workflow, {"branches": 2})
        assert len(result.invoice.line_items) == 4

    @pytest.mark.asyncio
    async def test_payload_uses_camel_case(self):
        """Test AgentRunResult.to_payload."""
        result = await invoke_workflow("once", branching_workflow, {"branches": 1})
        payload = result.to_payload()
        assert set(payload) == {"output", "invoice", "traceId", "startedAt", "durationMs"}
        assert payload["invoice"]["lineItems"][0]["stepName"] == "Generate"

    def test_rejects_non_callable_workflow(self):
        with pytest.raises(ValueError):
            Agent("broken", workflow="not callable")


class TestAgentFailure:
    """Test Agent.invoke when the workflow raises."""

    @pytest.mark.asyncio
    async def test_wraps_error_with_partial_invoice(self):
        """Test that the failing step's line item survives in the error."""
        cause = RuntimeError("evaluation failed")

        async def workflow(step, input, context):
            await step(
                StepOptions(name="Generate", action_type="llm_call", unit_cost=0.002),
                lambda r: None,
            )

            def fail(runtime):
                raise cause

            await step(
                StepOptions(name="Evaluate", action_type="evaluation", unit_cost=0.001),
                fail,
            )
            return "unreachable"

        with pytest.raises(AgentExecutionError) as exc_info:
            await create_agent("failing", workflow).invoke("x", trace_id="t-1")

        error = exc_info.value
        assert error.workflow_name == "failing"
        assert error.agent_name == "failing"
        assert error.trace_id == "t-1"
        assert error.original_error is cause
        assert error.__cause__ is cause
        items = error.invoice.line_items
        assert [item.status for item in items] == [
            BillingStatus.SUCCESS,
            BillingStatus.ERROR,
        ]
        assert error.invoice.total == 0.003

    @pytest.mark.asyncio
    async def test_error_outside_steps(self):
        """Test a workflow raising before any step."""

        async def workflow(step, input, context):
            raise ValueError("bad input")

        with pytest.raises(AgentExecutionError) as exc_info:
            await create_agent("early", workflow).invoke(None)

        assert isinstance(exc_info.value.original_error, ValueError)
        assert exc_info.value.invoice.line_items == []

    @pytest.mark.asyncio
    async def test_missing_capability_is_the_cause(self):
        """Test that an unregistered capability surfaces as the original error."""
        tool = create_capability_tool("ghost", registry=CapabilityRegistry())

        async def workflow(step, input, context):
            return await tool(step, input)

        with pytest.raises(AgentExecutionError) as exc_info:
            await create_agent("ghostly", workflow).invoke({})

        assert isinstance(exc_info.value.original_error, CapabilityNotFoundError)
        items = exc_info.value.invoice.line_items
        assert len(items) == 1
        assert items[0].step_name == "ghost tool call"
        assert items[0].status == BillingStatus.ERROR


class TestAgentLogging:
    """Test run-level log records."""

    @pytest.mark.asyncio
    async def test_run_start_preview_is_truncated(self, caplog):
        """Test that long inputs are previewed, not dumped."""
        caplog.set_level(logging.DEBUG, logger=DEFAULT_LOGGER_NAME)

        async def workflow(step, input, context):
            return None

        await create_agent("preview", workflow).invoke("x" * 500, trace_id="t-2")

        start = next(r for r in caplog.records if getattr(r, "event", None) == "run.start")
        preview = start.fields["input_preview"]
        assert preview.endswith("...")
        assert len(preview) < 500
        assert start.fields["trace_id"] == "t-2"
        assert start.fields["agent"] == "preview"
        assert start.prefix == "preview"

        success = next(
            r for r in caplog.records if getattr(r, "event", None) == "run.success"
        )
        assert success.fields["total"] == 0

    @pytest.mark.asyncio
    async def test_run_error_logged(self, caplog):
        caplog.set_level(logging.DEBUG, logger=DEFAULT_LOGGER_NAME)

        async def workflow(step, input, context):
            raise RuntimeError("kaput")

        with pytest.raises(AgentExecutionError):
            await create_agent("noisy", workflow).invoke(None)

        errors = [r for r in caplog.records if getattr(r, "event", None) == "run.error"]
        assert len(errors) == 1
        assert errors[0].fields["error"] == {"name": "RuntimeError", "message": "kaput"}
