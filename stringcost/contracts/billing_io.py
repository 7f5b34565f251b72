"""Billing contracts for the per-run ledger.

This module defines the records the ledger stores and the invoice it
produces. BillingEventInput is what steps and finalize hooks hand to the
ledger; BillingEvent is the sanitized, immutable line item the ledger keeps.

Serialization toward any reporting layer uses camelCase keys:
    {currency, total, lineItems: [{stepName, actionType, unitCost,
    quantity, total, metadata, status}]}
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, JsonValue, field_validator
from pydantic.alias_generators import to_camel

# Metadata values are restricted to JSON-serializable kinds.
Metadata = Dict[str, JsonValue]


class ActionType(str, Enum):
    """Well-known action categories. Any other string is also accepted."""

    LLM_CALL = "llm_call"
    TOOL_USE = "tool_use"
    EVALUATION = "evaluation"
    VALIDATION = "validation"
    SYNTHESIS = "synthesis"


class BillingStatus(str, Enum):
    """Outcome of the step a billing event was recorded for."""

    SUCCESS = "success"
    ERROR = "error"


def _action_value(value: Union[ActionType, str]) -> str:
    return value.value if isinstance(value, ActionType) else value


class BillingEventInput(BaseModel):
    """Unsanitized billing event as produced by a step or finalize hook.

    Numeric fields may be missing or non-finite; the ledger replaces them
    with safe defaults when recording.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    step_name: str = Field(..., description="Name of the billed step")
    action_type: str = Field(..., description="Free-form action category")
    unit_cost: Optional[float] = Field(default=None, description="Cost per unit")
    quantity: Optional[float] = Field(default=None, description="Number of units")
    total: Optional[float] = Field(
        default=None,
        description="Explicit total; derived as unit_cost * quantity when absent",
    )
    metadata: Dict[str, Any] = Field(
        default_factory=dict, description="Arbitrary metadata for the line item"
    )
    status: BillingStatus = Field(default=BillingStatus.SUCCESS)

    @field_validator("action_type", mode="before")
    @classmethod
    def validate_action_type(cls, v: Any) -> Any:
        """Store ActionType members as their plain string value."""
        return _action_value(v)


class BillingEvent(BaseModel):
    """Immutable line item stored by the ledger."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    step_name: str
    action_type: str
    unit_cost: float
    quantity: float
    total: float
    metadata: Metadata = Field(default_factory=dict)
    status: BillingStatus = BillingStatus.SUCCESS

    @field_validator("action_type", mode="before")
    @classmethod
    def validate_action_type(cls, v: Any) -> Any:
        """Store ActionType members as their plain string value."""
        return _action_value(v)

    def to_payload(self) -> Dict[str, Any]:
        """Serialize to the camelCase line item shape."""
        return self.model_dump(mode="json", by_alias=True)


class BillingInvoice(BaseModel):
    """Snapshot of a ledger: currency, rounded total and ordered line items."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    currency: str = Field(..., description="Currency tag")
    total: float = Field(..., description="Sum of line item totals, rounded")
    line_items: List[BillingEvent] = Field(
        default_factory=list, description="Line items in commit order"
    )

    def to_payload(self) -> Dict[str, Any]:
        """Serialize to the camelCase invoice shape."""
        return self.model_dump(mode="json", by_alias=True)
