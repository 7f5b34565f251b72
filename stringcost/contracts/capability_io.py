"""Contracts for pluggable external capabilities (tools).

A capability is registered once under a unique name and invoked through the
step machinery. Its execute function receives the typed input and a
CapabilityContext, and returns a CapabilityResult (or a mapping of the same
fields) whose unit_cost / quantity / metadata override the step's defaults
when the line item is billed.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from stringcost.contracts.billing_io import ActionType
from stringcost.contracts.step_io import CostCalculator

if TYPE_CHECKING:
    from stringcost.core.logger import StructuredLogger

PARENT_TRACE_HEADER = "X-Parent-Trace-Id"


@dataclass(frozen=True)
class CapabilityContext:
    """Execution context handed to a capability.

    Attributes:
        trace_id: Trace id of the step wrapping this invocation.
        parent_trace_id: Trace id of the run the step belongs to.
        logger: Logger bound to the step's context.
        headers: Transport headers; always carries X-Parent-Trace-Id.
    """

    trace_id: str
    parent_trace_id: str
    logger: "StructuredLogger"
    headers: Dict[str, str] = field(default_factory=dict)


class CapabilityResult(BaseModel):
    """What a capability returns: a payload plus optional billing overrides."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    result: Any = Field(..., description="The capability's payload")
    metadata: Dict[str, Any] = Field(
        default_factory=dict, description="Metadata merged into the line item"
    )
    unit_cost: Optional[float] = Field(
        default=None, description="Reported unit cost, overriding the step's"
    )
    quantity: Optional[float] = Field(
        default=None, description="Reported quantity, overriding the step's"
    )


CapabilityExecute = Callable[
    [Any, CapabilityContext],
    Union[CapabilityResult, Dict[str, Any], Awaitable[Union[CapabilityResult, Dict[str, Any]]]],
]


class CapabilityDefinition(BaseModel):
    """A registered capability. Replace it by registering under the same name."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = Field(..., description="Unique registry key")
    description: Optional[str] = Field(default=None, description="What it does")
    default_unit_cost: Optional[float] = Field(
        default=None, description="Unit cost used when the caller sets none"
    )
    execute: CapabilityExecute = Field(..., description="Execution function")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate that the capability name is not blank."""
        if not v.strip():
            raise ValueError("Capability name must not be empty")
        return v


class CapabilitySpec(BaseModel):
    """One entry of a YAML capability catalog."""

    name: str = Field(..., description="Unique registry key")
    description: Optional[str] = Field(default=None)
    default_unit_cost: Optional[float] = Field(default=None)
    entrypoint: str = Field(
        ..., description='Import path of the execute function, "module:attr"'
    )

    @field_validator("entrypoint")
    @classmethod
    def validate_entrypoint(cls, v: str) -> str:
        """Validate the "module:attr" format."""
        module_name, sep, attr = v.partition(":")
        if not sep or not module_name.strip() or not attr.strip():
            raise ValueError(f'Entrypoint must look like "module:attr", got "{v}"')
        return v


class CapabilityInvokeOptions(BaseModel):
    """Per-call options for invoking a capability as a step.

    Every field is optional: the step name defaults to "<capability> tool
    call", the action type to tool_use and the unit cost to the
    capability's default.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: Optional[str] = None
    action_type: Optional[str] = None
    unit_cost: Optional[float] = None
    quantity: Optional[float] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    cost_calculator: Optional[CostCalculator] = Field(default=None, exclude=True)
    bill_on_error: bool = True
    headers: Dict[str, str] = Field(
        default_factory=dict, description="Caller headers, recorded as metadata"
    )

    @field_validator("action_type", mode="before")
    @classmethod
    def validate_action_type(cls, v: Any) -> Any:
        """Store ActionType members as their plain string value."""
        return v.value if isinstance(v, ActionType) else v
