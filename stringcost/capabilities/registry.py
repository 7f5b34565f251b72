"""Capability registry for resolving external tools by name.

The registry maps a capability name to its CapabilityDefinition. It is
meant to be built once at process start and passed to whatever invokes
capabilities; get_registry() / set_registry() hold a process default for
callers that do not inject one.

Registration is last-write-wins: registering under an existing name
replaces the definition. All operations are guarded by a lock so
concurrent register / unregister / get calls cannot corrupt the mapping.
"""

import importlib
import logging
import threading
from collections.abc import Mapping
from pathlib import Path
from typing import Dict, List, Optional, Union

import yaml
from pydantic import ValidationError

from stringcost.contracts.capability_io import CapabilityDefinition, CapabilitySpec
from stringcost.errors import CapabilityNotFoundError

logger = logging.getLogger(__name__)


class CapabilityRegistry:
    """Thread-safe directory of capability definitions."""

    def __init__(self) -> None:
        self._definitions: Dict[str, CapabilityDefinition] = {}
        self._lock = threading.RLock()

    def register(self, definition: Union[CapabilityDefinition, Mapping]) -> None:
        """Register a capability, replacing any definition with the same name.

        Args:
            definition: The definition, or a mapping of its fields.
        """
        if not isinstance(definition, CapabilityDefinition):
            definition = CapabilityDefinition.model_validate(definition)
        with self._lock:
            replaced = definition.name in self._definitions
            self._definitions[definition.name] = definition
        if replaced:
            logger.info(f"Replaced capability: {definition.name}")
        else:
            logger.info(f"Registered capability: {definition.name}")

    def unregister(self, name: str) -> None:
        """Remove a capability. Does nothing if it is not registered."""
        with self._lock:
            removed = self._definitions.pop(name, None)
        if removed is not None:
            logger.info(f"Unregistered capability: {name}")

    def get(self, name: str) -> CapabilityDefinition:
        """Get a capability by name.

        Args:
            name: The capability name.

        Returns:
            The registered CapabilityDefinition.

        Raises:
            CapabilityNotFoundError: If no capability is registered under name.
        """
        with self._lock:
            definition = self._definitions.get(name)
        if definition is None:
            raise CapabilityNotFoundError(name)
        return definition

    def find(self, name: str) -> Optional[CapabilityDefinition]:
        """Get a capability by name, or None if it is not registered."""
        with self._lock:
            return self._definitions.get(name)

    def list(self) -> List[CapabilityDefinition]:
        """List all definitions in first-registration order."""
        with self._lock:
            return list(self._definitions.values())

    def names(self) -> List[str]:
        with self._lock:
            return list(self._definitions.keys())

    def load_catalog(self, path: Union[str, Path]) -> List[CapabilityDefinition]:
        """Register the capabilities listed in a YAML catalog.

        The catalog looks like::

            capabilities:
              - name: market-trends
                description: Trend descriptors for beverage markets
                default_unit_cost: 0.0005
                entrypoint: stringcost.tools.market_trends:execute_market_trends

        Args:
            path: Path to the catalog file.

        Returns:
            The definitions that were registered, in catalog order.

        Raises:
            FileNotFoundError: If the catalog does not exist.
            ValueError: If the YAML, an entry or an entrypoint is invalid.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Capability catalog not found: {path}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in capability catalog {path}: {e}") from e

        if data is None:
            return []
        if not isinstance(data, dict) or not isinstance(
            data.get("capabilities", []), list
        ):
            raise ValueError(
                f"Capability catalog {path} must contain a 'capabilities' list"
            )

        specs: List[CapabilitySpec] = []
        for index, entry in enumerate(data.get("capabilities", [])):
            try:
                specs.append(CapabilitySpec.model_validate(entry))
            except ValidationError as e:
                raise ValueError(
                    f"Invalid capability entry #{index} in {path}: {e}"
                ) from e

        definitions = [
            CapabilityDefinition(
                name=spec.name,
                description=spec.description,
                default_unit_cost=spec.default_unit_cost,
                execute=_resolve_entrypoint(spec.entrypoint),
            )
            for spec in specs
        ]
        for definition in definitions:
            self.register(definition)
        return definitions

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._definitions

    def __len__(self) -> int:
        with self._lock:
            return len(self._definitions)


def _resolve_entrypoint(entrypoint: str):
    module_name, _, attr_path = entrypoint.partition(":")
    try:
        target = importlib.import_module(module_name)
    except ImportError as e:
        raise ValueError(f"Could not import capability module {module_name}: {e}") from e

    for attr in attr_path.split("."):
        try:
            target = getattr(target, attr)
        except AttributeError as e:
            raise ValueError(f"Entrypoint {entrypoint} not found: {e}") from e

    if not callable(target):
        raise ValueError(f"Entrypoint {entrypoint} is not callable")
    return target


_default_registry: Optional[CapabilityRegistry] = None


def get_registry() -> CapabilityRegistry:
    """Get the process default registry, creating it on first use.

    Returns:
        The default CapabilityRegistry instance.
    """
    global _default_registry
    if _default_registry is None:
        _default_registry = CapabilityRegistry()
    return _default_registry


def set_registry(registry: Optional[CapabilityRegistry]) -> None:
    """Set the process default registry.

    Args:
        registry: Registry to use by default, or None to reset.
    """
    global _default_registry
    _default_registry = registry
