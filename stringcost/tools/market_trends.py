"""Capability returning trend descriptors for specialty beverage markets.

Reports its own billing: a flat unit cost per descriptor returned.
"""

import logging
import time
from collections.abc import Mapping
from typing import Dict, List, Union

from pydantic import BaseModel, Field

from stringcost.contracts.capability_io import (
    CapabilityContext,
    CapabilityDefinition,
    CapabilityResult,
)

logger = logging.getLogger(__name__)

CAPABILITY_NAME = "market-trends"
UNIT_COST = 0.0005

MARKET_DESCRIPTORS: Dict[str, List[str]] = {
    "coffee": ["single-origin", "nitro", "oat milk", "sustainable", "seasonal"],
    "tea": ["functional", "matcha", "boba", "botanical", "sparkling"],
    "pastry": ["laminated", "gluten-free", "heritage", "micro-batch"],
}
FALLBACK_DESCRIPTORS = ["artisan", "small-batch", "seasonal"]


class MarketTrendsInput(BaseModel):
    category: str = Field(..., description="Market category, e.g. 'coffee'")
    region: str = Field(default="global", description="Region of interest")


class MarketTrendsResult(BaseModel):
    descriptors: List[str] = Field(default_factory=list)
    summary: str


async def execute_market_trends(
    input: Union[MarketTrendsInput, Mapping], context: CapabilityContext
) -> CapabilityResult:
    """Look up trend descriptors for a market category.

    Args:
        input: MarketTrendsInput or a mapping of its fields.
        context: Execution context supplied by the runtime.

    Returns:
        CapabilityResult with a MarketTrendsResult payload, billed per descriptor.
    """
    start = time.perf_counter()
    if not isinstance(input, MarketTrendsInput):
        input = MarketTrendsInput.model_validate(input)

    descriptors = MARKET_DESCRIPTORS.get(input.category, FALLBACK_DESCRIPTORS)
    summary = (
        f"Consumers in {input.region} respond to "
        f"{', '.join(descriptors[:3])} concepts."
    )
    context.logger.info(
        "market-trends.respond", {"category": input.category, "region": input.region}
    )

    return CapabilityResult(
        result=MarketTrendsResult(descriptors=list(descriptors), summary=summary),
        metadata={
            "descriptors": list(descriptors),
            "region": input.region,
            "duration_ms": round((time.perf_counter() - start) * 1000, 3),
        },
        unit_cost=UNIT_COST,
        quantity=len(descriptors),
    )


market_trends_capability = CapabilityDefinition(
    name=CAPABILITY_NAME,
    description="Returns trend descriptors for specialty beverage markets.",
    default_unit_cost=UNIT_COST,
    execute=execute_market_trends,
)
