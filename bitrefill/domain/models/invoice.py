"""Domain models for invoices, orders and payment types.

The client only ever inspects `Invoice.status`; every other field is
server-owned and passed through as received.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, TypedDict


class PaymentType(str, Enum):
    """How an invoice is paid. Values match the public client API names."""
    AUTO_BALANCE = "autoBalancePayment"
    TRIGGER_BALANCE = "triggerBalancePayment"
    BITCOIN = "bitcoinPayment"

    @property
    def payment_method(self) -> str:
        """Server-side `payment_method` value."""
        return "bitcoin" if self is PaymentType.BITCOIN else "balance"

    @property
    def auto_pay(self) -> bool:
        return self is PaymentType.AUTO_BALANCE

    @property
    def requires_refund_address(self) -> bool:
        return self is PaymentType.BITCOIN

    @property
    def settles_automatically(self) -> bool:
        """Only auto-paid balance invoices progress without further action."""
        return self is PaymentType.AUTO_BALANCE


class InvoiceStatus:
    """Known invoice statuses. Other strings may appear and are kept as-is."""
    NOT_DELIVERED = "not_delivered"
    ALL_DELIVERED = "all_delivered"
    PARTIALLY_DELIVERED = "partially_delivered"


class InvoiceProduct(TypedDict):
    product_id: str
    value: float
    quantity: int


class RedemptionInfo(TypedDict, total=False):
    code: str
    instructions: str
    other: str
    extra_fields: Dict[str, Any]


class Order(TypedDict, total=False):
    id: str
    status: str
    product: Dict[str, Any]
    created_time: str
    delivered_time: str
    redemption_info: RedemptionInfo


class Invoice(TypedDict, total=False):
    id: str
    created_time: str
    completed_time: str
    status: str
    user: Dict[str, Any]
    payment: Dict[str, Any]
    orders: List[Order]


def is_pending(invoice: Invoice) -> bool:
    """True while the invoice still reports the pending-delivery sentinel."""
    return invoice.get("status") == InvoiceStatus.NOT_DELIVERED


def redemption_codes(invoice: Invoice) -> List[Optional[str]]:
    """Redemption code of each order, None where nothing has been delivered yet."""
    return [(order.get("redemption_info") or {}).get("code") for order in invoice.get("orders") or []]


def build_invoice_payload(
    products: List[InvoiceProduct],
    payment_type: PaymentType,
    refund_address: Optional[str] = None,
) -> Dict[str, Any]:
    """Maps a client-side invoice request onto the `/invoices` body."""
    payload: Dict[str, Any] = {
        "products": list(products),
        "payment_method": payment_type.payment_method,
        "auto_pay": payment_type.auto_pay,
    }
    if refund_address:
        payload["refund_address"] = refund_address
    return payload
