"""Core primitives: trace ids, structured logging and the billing ledger."""

from .billing import INVOICE_PRECISION, BillingLedger
from .logger import (
    StructuredFormatter,
    StructuredLogger,
    configure_logging,
    create_logger,
)
from .trace_ids import derive_child_id, new_root_id, slugify, to_base36

__all__ = [
    "INVOICE_PRECISION",
    "BillingLedger",
    "StructuredFormatter",
    "StructuredLogger",
    "configure_logging",
    "create_logger",
    "derive_child_id",
    "new_root_id",
    "slugify",
    "to_base36",
]
