"""Contracts for a single billed step.

StepOptions describes the step before it runs. CostDetails and
StepFinalizeInput are handed to caller hooks while the billing event is
being built. StepSuccess / StepFailure are the tagged outcome the executor
computes billing from before returning the value or re-raising the error.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from stringcost.contracts.billing_io import ActionType, BillingEventInput


class CostDetails(BaseModel):
    """Inputs available to a cost calculator."""

    unit_cost: float
    quantity: float
    metadata: Dict[str, Any] = Field(default_factory=dict)
    duration_ms: float


class StepFinalizeInput(BaseModel):
    """Inputs available to a finalize-billing hook.

    Exactly one of result / error is meaningful: error is set when the
    step's work raised.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    result: Any = None
    error: Optional[BaseException] = None
    duration_ms: float
    default_event: BillingEventInput

    @property
    def failed(self) -> bool:
        return self.error is not None


CostCalculator = Callable[[CostDetails], float]
FinalizeResult = Union[BillingEventInput, Mapping[str, Any], None]
FinalizeBilling = Callable[
    [StepFinalizeInput], Union[FinalizeResult, Awaitable[FinalizeResult]]
]


class StepOptions(BaseModel):
    """Options describing one billed step.

    Attributes:
        name: Step name, used for the line item and the child trace id.
        action_type: Action category tag.
        unit_cost: Initial unit cost; the step body may change it.
        quantity: Initial quantity; the step body may change it.
        metadata: Initial metadata for the line item.
        cost_calculator: Optional override computing the total from
            CostDetails. Defaults to unit_cost * quantity.
        finalize_billing: Optional hook returning a replacement billing
            event. Returning None (or an empty mapping) keeps the default.
        bill_on_error: Whether a failing step is still billed.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str = Field(..., description="Step name")
    action_type: str = Field(..., description="Action category tag")
    unit_cost: Optional[float] = Field(default=None, description="Initial unit cost")
    quantity: Optional[float] = Field(default=None, description="Initial quantity")
    metadata: Dict[str, Any] = Field(
        default_factory=dict, description="Initial line item metadata"
    )
    cost_calculator: Optional[CostCalculator] = Field(
        default=None, description="Override computing the total", exclude=True
    )
    finalize_billing: Optional[FinalizeBilling] = Field(
        default=None, description="Hook replacing the default event", exclude=True
    )
    bill_on_error: bool = Field(
        default=True, description="Whether failing steps are billed"
    )

    @field_validator("action_type", mode="before")
    @classmethod
    def validate_action_type(cls, v: Any) -> Any:
        """Store ActionType members as their plain string value."""
        return v.value if isinstance(v, ActionType) else v


@dataclass(frozen=True)
class StepSuccess:
    """Outcome of a step whose work returned."""

    value: Any


@dataclass(frozen=True)
class StepFailure:
    """Outcome of a step whose work raised."""

    error: Exception


StepOutcome = Union[StepSuccess, StepFailure]
