"""Coffee shop naming agent."""

from .agent import (
    AGENT_NAME,
    CoffeeNameAgentInput,
    CoffeeNameAgentOutput,
    DuplicateNamesError,
    create_coffee_name_agent,
    find_duplicates,
    run_coffee_agent,
)

__all__ = [
    "AGENT_NAME",
    "CoffeeNameAgentInput",
    "CoffeeNameAgentOutput",
    "DuplicateNamesError",
    "create_coffee_name_agent",
    "find_duplicates",
    "run_coffee_agent",
]
