"""Coffee shop naming agent.

Reference workflow exercising the whole runtime: a generation step billed
per theme, one evaluation step per theme, a synthesis step billed per
candidate, a validation gate, and an optional market-trends capability
call whose failure is tolerated.
"""

import logging
from collections.abc import Mapping
from typing import Any, List, Optional, Union

from pydantic import BaseModel, Field

from stringcost.capabilities.registry import CapabilityRegistry, get_registry
from stringcost.capabilities.tool import create_capability_tool
from stringcost.contracts.agent_io import AgentContext
from stringcost.contracts.billing_io import ActionType
from stringcost.contracts.capability_io import CapabilityInvokeOptions
from stringcost.contracts.step_io import StepFinalizeInput, StepOptions
from stringcost.mock import (
    SynthesisResult,
    ThemeEvaluationResult,
    ThemeGenerationResult,
    evaluate_theme,
    generate_themes,
    synthesize_names,
)
from stringcost.runtime.agent import Agent, StepFunction
from stringcost.tools import register_tools
from stringcost.tools.market_trends import CAPABILITY_NAME, MarketTrendsResult

logger = logging.getLogger(__name__)

AGENT_NAME = "coffeeNameGenerator"

GENERATION_UNIT_COST = 0.002
EVALUATION_UNIT_COST = 0.001
SYNTHESIS_UNIT_COST = 0.002
VALIDATION_UNIT_COST = 0.0005
MARKET_TRENDS_UNIT_COST = 0.0005


class DuplicateNamesError(ValueError):
    """Raised by the QA gate when duplicate candidates are not allowed."""


class CoffeeNameAgentInput(BaseModel):
    prompt: str = Field(..., min_length=1, description="What the shop is about")
    branches: int = Field(default=3, ge=1, description="Number of themes to explore")
    finalists: int = Field(default=3, ge=1, description="Number of names to return")
    fail_on_duplicate: bool = Field(
        default=False, description="Fail the QA gate on duplicate names"
    )
    include_market_trends: bool = Field(
        default=False, description="Fetch market trends through the capability"
    )


class CoffeeNameAgentOutput(BaseModel):
    themes: ThemeGenerationResult
    evaluations: List[ThemeEvaluationResult] = Field(default_factory=list)
    synthesis: SynthesisResult
    market_trends: Optional[MarketTrendsResult] = None


def find_duplicates(values: List[str]) -> List[str]:
    """Return values that repeat an earlier value, compared case-insensitively."""
    seen = set()
    duplicates: List[str] = []
    for value in values:
        normalized = value.lower()
        if normalized in seen:
            if value not in duplicates:
                duplicates.append(value)
        else:
            seen.add(normalized)
    return duplicates


def build_coffee_workflow(registry: CapabilityRegistry):
    """Build the coffee naming workflow bound to a capability registry."""
    fetch_market_trends = create_capability_tool(CAPABILITY_NAME, registry=registry)

    async def maybe_fetch_trends(
        step: StepFunction, context: AgentContext
    ) -> Optional[MarketTrendsResult]:
        try:
            execution = await fetch_market_trends(
                step,
                {"category": "coffee", "region": "global"},
                CapabilityInvokeOptions(
                    name="Fetch Market Trends",
                    action_type=ActionType.TOOL_USE,
                    unit_cost=MARKET_TRENDS_UNIT_COST,
                    metadata={
                        "description": "Fetches current coffee market descriptors"
                    },
                ),
            )
        except Exception as error:
            context.logger.warning(
                "market trends unavailable", {"error": str(error)}
            )
            return None
        return execution.result

    async def coffee_workflow(
        step: StepFunction,
        input: Union[CoffeeNameAgentInput, Mapping],
        context: AgentContext,
    ) -> CoffeeNameAgentOutput:
        if not isinstance(input, CoffeeNameAgentInput):
            input = CoffeeNameAgentInput.model_validate(input)

        def generate(runtime) -> ThemeGenerationResult:
            generation = generate_themes(input.prompt, input.branches)
            runtime.set_quantity(len(generation.themes))
            runtime.record_metadata(
                {
                    "prompt_tokens": generation.prompt_tokens,
                    "completion_tokens": generation.completion_tokens,
                }
            )
            return generation

        themes = await step(
            StepOptions(
                name="Generate Name Themes",
                action_type=ActionType.LLM_CALL,
                unit_cost=GENERATION_UNIT_COST,
                metadata={"prompt": input.prompt, "branches": input.branches},
            ),
            generate,
        )

        evaluations: List[ThemeEvaluationResult] = []
        for theme in themes.themes:

            def evaluate(runtime, theme: str = theme) -> ThemeEvaluationResult:
                result = evaluate_theme(theme)
                runtime.record_metadata(
                    {
                        "prompt_tokens": result.prompt_tokens,
                        "completion_tokens": result.completion_tokens,
                        "score": result.score,
                    }
                )
                return result

            evaluations.append(
                await step(
                    StepOptions(
                        name=f"Evaluate Theme: {theme}",
                        action_type=ActionType.EVALUATION,
                        unit_cost=EVALUATION_UNIT_COST,
                        metadata={"theme": theme},
                        # Flat fee per evaluation regardless of quantity.
                        cost_calculator=lambda details: details.unit_cost,
                    ),
                    evaluate,
                )
            )

        ranked = sorted(evaluations, key=lambda item: item.score, reverse=True)
        ranked_themes = [item.theme for item in ranked[: input.finalists]]

        def synthesize(runtime) -> SynthesisResult:
            response = synthesize_names(input.prompt, ranked_themes, input.finalists)
            runtime.set_quantity(len(response.candidates))
            runtime.record_metadata(
                {
                    "prompt_tokens": response.prompt_tokens,
                    "completion_tokens": response.completion_tokens,
                }
            )
            return response

        synthesis = await step(
            StepOptions(
                name="Synthesize Final Names",
                action_type=ActionType.LLM_CALL,
                unit_cost=SYNTHESIS_UNIT_COST,
                metadata={"finalists": input.finalists},
            ),
            synthesize,
        )

        def qa_gate(runtime) -> None:
            duplicates = find_duplicates(synthesis.candidates)
            runtime.record_metadata({"duplicates": duplicates})
            if duplicates and input.fail_on_duplicate:
                raise DuplicateNamesError("Duplicate coffee names detected")

        def tag_duplicates(finalize: StepFinalizeInput):
            event = finalize.default_event
            return event.model_copy(
                update={
                    "metadata": {
                        **event.metadata,
                        "duplicates": find_duplicates(synthesis.candidates),
                    }
                }
            )

        await step(
            StepOptions(
                name="Final QA Gate",
                action_type=ActionType.VALIDATION,
                unit_cost=VALIDATION_UNIT_COST,
                metadata={"candidate_count": len(synthesis.candidates)},
                bill_on_error=True,
                finalize_billing=tag_duplicates,
            ),
            qa_gate,
        )

        market_trends = None
        if input.include_market_trends:
            market_trends = await maybe_fetch_trends(step, context)

        return CoffeeNameAgentOutput(
            themes=themes,
            evaluations=evaluations,
            synthesis=synthesis,
            market_trends=market_trends,
        )

    return coffee_workflow


def create_coffee_name_agent(
    registry: Optional[CapabilityRegistry] = None,
) -> Agent:
    """Create the coffee naming agent.

    Registers the bundled capabilities in the registry if market-trends is
    not already there.

    Args:
        registry: Registry used for the market-trends call. Defaults to the
            process registry.

    Returns:
        The Agent.
    """
    if registry is None:
        registry = get_registry()
    if CAPABILITY_NAME not in registry:
        register_tools(registry)
    return Agent(AGENT_NAME, build_coffee_workflow(registry))


async def run_coffee_agent(input: Any, **options: Any):
    """Invoke a coffee naming agent backed by the process registry."""
    return await create_coffee_name_agent().invoke(input, **options)
