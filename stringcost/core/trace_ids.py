"""Trace identifiers for runs and steps.

Root ids are random UUIDs. Child ids are derived, human-readable strings:

    <parent id>:<step slug>:<issuance time in base 36>

Derivation is a pure function of its inputs, so the same parent, name and
timestamp always produce the same id.
"""

import logging
import random
import re
import time
import uuid

logger = logging.getLogger(__name__)

SLUG_MAX_LENGTH = 48

_NON_ALPHANUMERIC = re.compile(r"[^a-z0-9]+")
_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def to_base36(value: int) -> str:
    """Encode a non-negative integer in lower-case base 36."""
    if value < 0:
        raise ValueError("Only non-negative integers can be encoded")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def slugify(value: str) -> str:
    """Lower-case value, collapse non-alphanumeric runs to '-', trim and cap."""
    slug = _NON_ALPHANUMERIC.sub("-", value.lower()).strip("-")
    return slug[:SLUG_MAX_LENGTH]


def new_root_id() -> str:
    """Create a unique root trace id.

    Returns:
        A UUID4 string, or a timestamp plus random suffix when the system
        has no secure random source.
    """
    try:
        return str(uuid.uuid4())
    except NotImplementedError:
        logger.debug("No secure random source, using timestamp-based trace id")
        millis = int(time.time() * 1000)
        return f"{to_base36(millis)}-{random.getrandbits(52):x}"


def derive_child_id(parent_id: str, step_name: str, issued_at_ms: int) -> str:
    """Derive the trace id of a step from its parent.

    Args:
        parent_id: Trace id of the run (or enclosing step).
        step_name: Human-readable step name.
        issued_at_ms: Issuance time in milliseconds since the epoch.

    Returns:
        The child trace id.
    """
    return f"{parent_id}:{slugify(step_name)}:{to_base36(int(issued_at_ms))}"
