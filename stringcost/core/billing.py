"""In-memory billing ledger for a single workflow run.

The ledger is append-only. Each record call sanitizes the event's numbers,
appends it and updates a running subtotal under a lock, so concurrent
commits serialize and line items keep commit order. Numeric sanitization
is the one place bad input is defaulted instead of rejected: a failing
step can still be billed with partial information.
"""

import logging
import threading
from collections.abc import Mapping
from typing import List, Optional, Union

from stringcost.config import settings
from stringcost.contracts.billing_io import (
    BillingEvent,
    BillingEventInput,
    BillingInvoice,
)
from stringcost.core.values import coerce_metadata, sanitize_number

logger = logging.getLogger(__name__)

INVOICE_PRECISION = 6

_NUMERIC_KEYS = ("unit_cost", "unitCost", "quantity", "total")


class BillingLedger:
    """Append-only record of billing events for one run."""

    def __init__(self, currency: Optional[str] = None):
        """Initialize an empty ledger.

        Args:
            currency: Currency tag. Defaults to settings.billing_currency.
        """
        self.currency = currency or settings.billing_currency
        self._line_items: List[BillingEvent] = []
        self._subtotal = 0.0
        self._lock = threading.Lock()

    def record(self, event: Union[BillingEventInput, Mapping]) -> BillingEvent:
        """Sanitize and append a billing event.

        Missing, malformed or non-finite numbers fall back to unit_cost=0, quantity=1
        and total=unit_cost*quantity.

        Args:
            event: The event to record, as a model or a mapping of its fields.

        Returns:
            The stored, immutable BillingEvent.
        """
        if not isinstance(event, BillingEventInput):
            event = BillingEventInput.model_validate(_drop_malformed_numbers(event))

        unit_cost = sanitize_number(event.unit_cost, 0.0)
        quantity = sanitize_number(event.quantity, 1.0)
        product = sanitize_number(unit_cost * quantity, 0.0)
        total = sanitize_number(event.total, product)

        stored = BillingEvent(
            step_name=event.step_name,
            action_type=event.action_type,
            unit_cost=unit_cost,
            quantity=quantity,
            total=total,
            metadata=coerce_metadata(event.metadata),
            status=event.status,
        )
        with self._lock:
            self._line_items.append(stored)
            self._subtotal += total
        logger.debug(f"Recorded billing event for {stored.step_name}: {total}")
        return stored

    def line_items(self) -> List[BillingEvent]:
        """Return a copy of all recorded events in commit order."""
        with self._lock:
            return [item.model_copy(deep=True) for item in self._line_items]

    @property
    def subtotal(self) -> float:
        """Running subtotal, rounded to invoice precision."""
        with self._lock:
            return round(self._subtotal, INVOICE_PRECISION)

    def invoice(self) -> BillingInvoice:
        """Snapshot the ledger as an invoice.

        The total is recomputed from the stored line items rather than taken
        from the running subtotal.

        Returns:
            BillingInvoice with currency, rounded total and line items.
        """
        items = self.line_items()
        total = round(sum(item.total for item in items), INVOICE_PRECISION)
        return BillingInvoice(currency=self.currency, total=total, line_items=items)

    def __len__(self) -> int:
        with self._lock:
            return len(self._line_items)


def _drop_malformed_numbers(event: Mapping) -> dict:
    # Unusable numbers become None so record() applies its fallbacks.
    cleaned = dict(event)
    for key in _NUMERIC_KEYS:
        if key in cleaned and cleaned[key] is not None:
            if sanitize_number(cleaned[key], None) is None:
                cleaned[key] = None
    return cleaned
