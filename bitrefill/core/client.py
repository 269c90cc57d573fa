"""BitrefillClient: the public API surface of the package.

Composes the transport, credential headers, BulkPaginator and
InvoiceCompletionPoller. Single calls unwrap the `data` envelope of the
response and wrap failures with a message naming the operation.
"""

import logging
from typing import Any, Dict, List, Optional, Union

from bitrefill.core.services.bulk_paginator import BulkPaginator
from bitrefill.core.services.invoice_poller import InvoiceCompletionPoller
from bitrefill.domain.exceptions import (
    BitrefillError, FetchFailure, RateLimited, TransportFailure, UpstreamStatus, ValidationFailure
)
from bitrefill.domain.interfaces.credentials import CredentialEncoder
from bitrefill.domain.interfaces.transport import Transport, TransportResponse
from bitrefill.domain.models.catalog import AccountBalance, PageResult, Product, build_products_query
from bitrefill.domain.models.common import DEFAULT_BASE_URL, PageOffset, PaginationConfig, PollingConfig
from bitrefill.domain.models.invoice import Invoice, InvoiceProduct, PaymentType, build_invoice_payload
from bitrefill.infrastructure.http.basic_auth import BasicAuthEncoder
from bitrefill.infrastructure.http.httpx_transport import HttpxTransport
from bitrefill.infrastructure.resilience.rate_limit_tracker import now_epoch_millis, parse_rate_limit_headers

logger = logging.getLogger(__name__)


class BitrefillClient:
    """Async client for the Bitrefill v2 API."""

    def __init__(
        self,
        transport: Transport,
        credentials: CredentialEncoder,
        pagination: Optional[PaginationConfig] = None,
        polling: Optional[PollingConfig] = None,
        paginator: Optional[BulkPaginator] = None,
        poller: Optional[InvoiceCompletionPoller] = None,
    ):
        """Initializes the client.

        Args:
            transport: Issues the HTTP requests.
            credentials: Produces the authorization headers.
            pagination: Page/batch sizes for get_all_products.
            polling: Attempt budget and delay for invoice completion.
            paginator: Pre-built paginator; built from `pagination` if None.
            poller: Pre-built poller; built from `polling` if None.
        """
        self.transport = transport
        self.credentials = credentials
        self.paginator = paginator or BulkPaginator(self.fetch_page, config=pagination)
        self.poller = poller or InvoiceCompletionPoller(self._fetch_invoice, config=polling)

    async def __aenter__(self) -> "BitrefillClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self.transport.aclose()

    # --- Request plumbing ---

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
    ) -> TransportResponse:
        """Sends a request and raises for anything but HTTP 200."""
        response = await self.transport.request(
            method, path, headers=self.credentials.headers(), params=params, json=json
        )
        if response.status == 429:
            snapshot = parse_rate_limit_headers(response.headers, now_epoch_millis())
            raise RateLimited(rate_limit=snapshot)
        if response.status != 200:
            raise UpstreamStatus(response.status, response.reason)
        return response

    @staticmethod
    def _unwrap(response: TransportResponse) -> Any:
        body = response.body
        if not isinstance(body, dict) or "data" not in body:
            raise TransportFailure("Response body has no 'data' field", status=response.status)
        return body["data"]

    # --- Catalog ---

    async def fetch_page(
        self,
        start: int,
        limit: int,
        include_test_products: Optional[bool] = None,
    ) -> PageResult:
        """Fetches one page with its rate-limit snapshot. Errors are not wrapped."""
        response = await self._request(
            "GET", "/products", params=build_products_query(start, limit, include_test_products)
        )
        observed_at = now_epoch_millis()
        products = self._unwrap(response) or []
        return PageResult(
            start=PageOffset(start),
            products=list(products),
            rate_limit=parse_rate_limit_headers(response.headers, observed_at),
        )

    async def get_products(
        self,
        start: Optional[int] = None,
        limit: Optional[int] = None,
        include_test_products: Optional[bool] = None,
    ) -> List[Product]:
        """Fetches a single page of products.

        Raises:
            FetchFailure: "Failed to fetch products: ..." on any error.
        """
        try:
            response = await self._request(
                "GET", "/products", params=build_products_query(start, limit, include_test_products)
            )
            return list(self._unwrap(response) or [])
        except BitrefillError as e:
            raise FetchFailure("Failed to fetch products", e) from e

    async def get_all_products(self, include_test_products: Optional[bool] = None) -> List[Product]:
        """Fetches the whole catalog with concurrent, rate-limit-aware rounds."""
        return await self.paginator.fetch_all(include_test_products=include_test_products)

    # --- Account ---

    async def get_account_balance(self) -> AccountBalance:
        try:
            response = await self._request("GET", "/accounts/balance")
            return self._unwrap(response)
        except BitrefillError as e:
            raise FetchFailure("Failed to get account balance", e) from e

    # --- Invoices ---

    async def _fetch_invoice(self, invoice_id: str) -> Invoice:
        response = await self._request("GET", f"/invoices/{invoice_id}")
        return self._unwrap(response)

    async def get_invoice(self, invoice_id: str) -> Invoice:
        try:
            return await self._fetch_invoice(invoice_id)
        except BitrefillError as e:
            raise FetchFailure("Failed to get invoice", e) from e

    async def create_invoice(
        self,
        products: List[InvoiceProduct],
        payment_type: Union[PaymentType, str],
        wait_for_completion: bool = False,
        refund_address: Optional[str] = None,
    ) -> Invoice:
        """Creates an invoice and optionally waits for it to be delivered.

        Waiting only applies to `autoBalancePayment`; other payment types
        return the freshly created invoice straight away.

        Args:
            products: Items to buy.
            payment_type: A PaymentType or its string value.
            wait_for_completion: Poll until delivery (auto balance only).
            refund_address: Required for bitcoin payments.

        Returns:
            The created invoice, or its last polled state.

        Raises:
            ValidationFailure: Bad arguments; nothing was sent.
            FetchFailure: "Failed to create invoice: ..." on request errors.
        """
        try:
            payment_type = PaymentType(payment_type)
        except ValueError as e:
            raise ValidationFailure(f"Unknown payment type: {payment_type!r}") from e
        if not products:
            raise ValidationFailure("An invoice needs at least one product.")
        if payment_type.requires_refund_address and not refund_address:
            raise ValidationFailure(f"A refund address is required for {payment_type.value}.")

        payload = build_invoice_payload(products, payment_type, refund_address)
        try:
            response = await self._request("POST", "/invoices", json=payload)
            invoice: Invoice = self._unwrap(response)
            if not isinstance(invoice, dict):
                raise TransportFailure("Created invoice is not a JSON object", status=response.status)
            logger.info(f"Created invoice {invoice.get('id')} ({payment_type.value}), status '{invoice.get('status')}'")

            if wait_for_completion and payment_type.settles_automatically:
                invoice_id = invoice.get("id")
                if not invoice_id:
                    raise TransportFailure("Created invoice has no 'id' field", status=response.status)
                invoice = await self.poller.await_completion(invoice_id)
            return invoice
        except BitrefillError as e:
            raise FetchFailure("Failed to create invoice", e) from e


def create_client(
    api_key: str,
    api_secret: str,
    base_url: str = DEFAULT_BASE_URL,
    timeout: float = HttpxTransport.DEFAULT_TIMEOUT_SECONDS,
    pagination: Optional[PaginationConfig] = None,
    polling: Optional[PollingConfig] = None,
) -> BitrefillClient:
    """Builds a BitrefillClient wired to an httpx transport."""
    return BitrefillClient(
        transport=HttpxTransport(base_url=base_url, timeout=timeout),
        credentials=BasicAuthEncoder(api_key, api_secret),
        pagination=pagination,
        polling=polling,
    )
