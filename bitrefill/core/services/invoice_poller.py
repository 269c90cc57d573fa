"""Waits for a freshly created invoice to leave the pending-delivery state."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from bitrefill.domain.events.api_events import InvoicePolled, dispatch_event
from bitrefill.domain.models.common import PollingConfig
from bitrefill.domain.models.invoice import Invoice, is_pending

logger = logging.getLogger(__name__)

InvoiceFetcher = Callable[[str], Awaitable[Invoice]]


class InvoiceCompletionPoller:
    """Re-fetches an invoice until it is delivered or the attempt budget runs out.

    Only the `not_delivered` status is retried. Fetch errors propagate on the
    first occurrence.
    """

    def __init__(
        self,
        fetch_invoice: InvoiceFetcher,
        config: Optional[PollingConfig] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.fetch_invoice = fetch_invoice
        self.config = config or PollingConfig()
        self._sleep = sleep

    async def await_completion(self, invoice_id: str) -> Invoice:
        """Polls the invoice and returns the last fetched snapshot.

        The first fetch happens immediately; each further fetch is preceded
        by `delay_seconds`. At most `max_attempts` fetches are made. Running
        out of attempts is not an error: the still-pending invoice is returned.

        Args:
            invoice_id: Server-assigned invoice id.

        Returns:
            The most recently fetched invoice, delivered or not.
        """
        attempts = 1
        invoice = await self.fetch_invoice(invoice_id)
        dispatch_event(InvoicePolled(invoice_id=invoice_id, attempt_number=attempts, status=invoice.get("status")))

        while is_pending(invoice) and attempts < self.config.max_attempts:
            await self._sleep(self.config.delay_seconds)
            attempts += 1
            invoice = await self.fetch_invoice(invoice_id)
            dispatch_event(InvoicePolled(invoice_id=invoice_id, attempt_number=attempts, status=invoice.get("status")))

        if is_pending(invoice):
            logger.warning(f"Invoice {invoice_id} still pending after {attempts} attempts; returning last state")
        else:
            logger.info(f"Invoice {invoice_id} reached status '{invoice.get('status')}' after {attempts} attempt(s)")
        return invoice
