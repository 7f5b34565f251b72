"""Value helpers shared by the ledger, the executor and the runtime.

These helpers are intentionally permissive: they turn whatever a step body
hands over into numbers and metadata the ledger can store, and they
summarize inputs and errors for logs without dumping full payloads.
"""

import math
from collections.abc import Mapping
from typing import Any, Dict, Optional

from pydantic import BaseModel

_MAX_PREVIEW_KEYS = 5


def sanitize_number(value: Any, fallback: float) -> float:
    """Return value as a float if it is a finite number, else the fallback.

    Booleans are not treated as numbers.

    Args:
        value: Candidate value.
        fallback: Value returned when the candidate is missing or unusable.

    Returns:
        A finite float.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return fallback
    try:
        number = float(value)
    except OverflowError:
        return fallback
    if not math.isfinite(number):
        return fallback
    return number


def coerce_metadata_value(value: Any) -> Any:
    """Convert a value into the JSON-serializable kinds metadata may hold."""
    if value is None or isinstance(value, (str, bool, int)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, BaseModel):
        return coerce_metadata(value.model_dump(mode="json"))
    if isinstance(value, Mapping):
        return coerce_metadata(value)
    if isinstance(value, (list, tuple, set, frozenset)):
        return [coerce_metadata_value(item) for item in value]
    return str(value)


def coerce_metadata(data: Optional[Mapping]) -> Dict[str, Any]:
    """Copy a mapping into a metadata dict with string keys and JSON values."""
    if not data:
        return {}
    return {str(key): coerce_metadata_value(value) for key, value in data.items()}


def serialize_error(error: Any) -> Dict[str, str]:
    """Summarize an exception as its kind and message only."""
    if isinstance(error, BaseException):
        return {"name": type(error).__name__, "message": str(error)}
    return {"message": str(error)}


def summarize_input(value: Any, max_length: int = 64) -> Any:
    """Build a bounded preview of a workflow input for logging.

    Strings longer than max_length are truncated with an ellipsis. Mappings
    and sequences are summarized by shape, not content.

    Args:
        value: The workflow input.
        max_length: Maximum length of a string preview.

    Returns:
        A short, log-safe representation of the input.
    """
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        if len(value) > max_length:
            return f"{value[: max_length - 3]}..."
        return value
    if isinstance(value, BaseModel):
        return _summarize_keys(type(value).__name__, list(type(value).model_fields))
    if isinstance(value, Mapping):
        return _summarize_keys("dict", [str(key) for key in value.keys()])
    if isinstance(value, (list, tuple, set, frozenset)):
        return f"{type(value).__name__}({len(value)})"
    return f"<{type(value).__name__}>"


def _summarize_keys(label: str, keys: list) -> str:
    shown = ",".join(keys[:_MAX_PREVIEW_KEYS])
    if len(keys) > _MAX_PREVIEW_KEYS:
        shown += ",…"
    return f"{label}({shown})"
