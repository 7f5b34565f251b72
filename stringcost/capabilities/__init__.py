"""Capability registry and invocation adapter."""

from .registry import CapabilityRegistry, get_registry, set_registry
from .tool import CapabilityTool, create_capability_tool

__all__ = [
    "CapabilityRegistry",
    "CapabilityTool",
    "create_capability_tool",
    "get_registry",
    "set_registry",
]
