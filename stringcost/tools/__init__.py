"""Capabilities shipped with stringcost."""

from pathlib import Path
from typing import List, Optional

from stringcost.capabilities.registry import CapabilityRegistry, get_registry
from stringcost.contracts.capability_io import CapabilityDefinition

from .market_trends import (
    MarketTrendsInput,
    MarketTrendsResult,
    execute_market_trends,
    market_trends_capability,
)

CATALOG_PATH = Path(__file__).parent / "catalog.yaml"


def register_tools(
    registry: Optional[CapabilityRegistry] = None,
) -> List[CapabilityDefinition]:
    """Register the bundled capabilities from the packaged catalog.

    Args:
        registry: Target registry. Defaults to the process registry.

    Returns:
        The registered definitions.
    """
    if registry is None:
        registry = get_registry()
    return registry.load_catalog(CATALOG_PATH)


__all__ = [
    "CATALOG_PATH",
    "MarketTrendsInput",
    "MarketTrendsResult",
    "execute_market_trends",
    "market_trends_capability",
    "register_tools",
]
