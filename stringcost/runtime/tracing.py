"""Tracing sink for runs and steps using Langfuse.

The runtime already derives its own hierarchical trace ids; this module
mirrors runs and steps into Langfuse spans when credentials are configured.
When tracing is disabled every operation is a no-op.

It provides:
- Span creation for runs and steps
- Trace id conversion to Langfuse's format
- Best-effort span updates with billing output
"""

import logging
import re
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from langfuse import Langfuse

from stringcost.config import settings

logger = logging.getLogger(__name__)

_LANGFUSE_TRACE_ID = re.compile(r"^[0-9a-f]{32}$")


def to_langfuse_trace_id(trace_id: str) -> str:
    """Convert a trace id to Langfuse format (32 lowercase hex chars, no dashes).

    UUIDs are converted by dropping their dashes. Any other id is hashed
    into a valid Langfuse id with the id itself as seed, so the mapping is
    stable for a given run.

    Args:
        trace_id: Root trace id of a run.

    Returns:
        Trace id in Langfuse format.
    """
    cleaned = trace_id.replace("-", "").lower()
    if _LANGFUSE_TRACE_ID.match(cleaned):
        return cleaned
    return Langfuse.create_trace_id(seed=trace_id)


class Tracer:
    """Tracer exporting run and step spans to Langfuse."""

    def __init__(
        self,
        public_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        base_url: Optional[str] = None,
        enabled: Optional[bool] = None,
    ):
        """Initialize the tracer.

        Args:
            public_key: Langfuse public key. If None, uses settings.langfuse_public_key.
            secret_key: Langfuse secret key. If None, uses settings.langfuse_secret_key.
            base_url: Langfuse base URL. If None, uses settings.langfuse_base_url.
            enabled: Whether tracing is enabled. If None, uses settings.tracing_enabled.
                Tracing stays off without a public key.
        """
        if enabled is None:
            enabled = settings.tracing_enabled
        self.enabled = enabled and bool(public_key or settings.langfuse_public_key)

        if self.enabled:
            self.client: Optional[Langfuse] = Langfuse(
                public_key=public_key or settings.langfuse_public_key,
                secret_key=secret_key or settings.langfuse_secret_key,
                base_url=base_url or settings.langfuse_base_url,
            )
        else:
            self.client = None
            logger.debug("Langfuse tracing is disabled")

    @contextmanager
    def span(
        self,
        name: str,
        trace_id: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Iterator[Any]:
        """Open a span for a run or step.

        Exceptions raised inside the block propagate unchanged; Langfuse
        records them on the span.

        Args:
            name: Span name, e.g. "agent.coffee" or "step.Generate Themes".
            trace_id: Root trace id of the run the span belongs to.
            metadata: Metadata attached to the span.

        Yields:
            The Langfuse observation, or None when tracing is disabled.
        """
        if not self.enabled or self.client is None:
            yield None
            return

        try:
            observation_cm = self.client.start_as_current_observation(
                name=name,
                as_type="span",
                metadata=metadata or {},
                trace_context={"trace_id": to_langfuse_trace_id(trace_id)},
            )
        except (AttributeError, TypeError) as e:
            logger.warning(
                f"Langfuse start_as_current_observation() not available: {e}, "
                f"tracing disabled for span: {name}"
            )
            yield None
            return

        with observation_cm as observation:
            yield observation

    def update_span(self, span: Any, **fields: Any) -> None:
        """Update a span, ignoring tracing failures.

        Args:
            span: Observation yielded by span(); None is ignored.
            **fields: Keyword arguments forwarded to the observation's update().
        """
        if span is None or not hasattr(span, "update"):
            return
        try:
            span.update(**fields)
        except Exception as e:
            logger.debug(f"Failed to update span: {e}")

    def flush(self) -> None:
        """Flush pending spans to Langfuse."""
        if self.client is not None:
            self.client.flush()


_default_tracer: Optional[Tracer] = None


def get_tracer() -> Tracer:
    """Get the process default tracer, creating it on first use.

    Returns:
        The default Tracer instance.
    """
    global _default_tracer
    if _default_tracer is None:
        _default_tracer = Tracer()
    return _default_tracer


def set_tracer(tracer: Optional[Tracer]) -> None:
    """Set the process default tracer.

    Args:
        tracer: Tracer to use by default, or None to reset.
    """
    global _default_tracer
    _default_tracer = tracer
