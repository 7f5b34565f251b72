"""Pytest configuration and fixtures.

This module configures pytest to resolve imports from the stringcost
package and keeps process-wide defaults (tracer, registry) isolated
between tests.
"""

import sys
from pathlib import Path

import pytest

# Add the project root to Python path so stringcost imports work
# without an editable install
project_dir = Path(__file__).parent.parent
if str(project_dir) not in sys.path:
    sys.path.insert(0, str(project_dir))

from stringcost.capabilities.registry import CapabilityRegistry, set_registry  # noqa: E402
from stringcost.runtime.tracing import Tracer, set_tracer  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_defaults():
    """Use a disabled tracer and a fresh default registry for every test."""
    set_tracer(Tracer(enabled=False))
    set_registry(CapabilityRegistry())
    yield
    set_tracer(None)
    set_registry(None)


@pytest.fixture
def registry():
    """Create an empty CapabilityRegistry."""
    return CapabilityRegistry()
