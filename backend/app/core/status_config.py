"""Status Configuration

Defines the order status and payment status values used by the order
fulfillment workflow, and the fixed forward flow the transition rules are
computed from.

`cancelled` is not part of FORWARD_FLOW: it is an out-of-band
terminal escape and is special-cased everywhere ordering matters.
"""
from enum import Enum
from typing import FrozenSet, List, Optional, Tuple


# =============================================================================
# Order Status
# =============================================================================

class OrderStatus(str, Enum):
    """Valid status values for orders"""
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


# Monotonic fulfillment flow; an order never moves to an earlier index
FORWARD_FLOW: Tuple[OrderStatus, ...] = (
    OrderStatus.PENDING,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
)

TERMINAL_STATUSES: FrozenSet[OrderStatus] = frozenset({
    OrderStatus.DELIVERED,
    OrderStatus.CANCELLED,
})


# =============================================================================
# Payment Status
# =============================================================================

class PaymentStatus(str, Enum):
    """Valid payment status values for orders"""
    UNPAID = "unpaid"
    PAID = "paid"
    FAILED = "failed"


PAYMENT_STATUS_DESCRIPTIONS = {
    PaymentStatus.UNPAID: "Payment not yet received",
    PaymentStatus.PAID: "Full payment received",
    PaymentStatus.FAILED: "Payment attempt failed",
}

COD_PAYMENT_METHOD = "cod"


# =============================================================================
# Parsing Helpers
# =============================================================================

def parse_order_status(value: Optional[str]) -> Optional[OrderStatus]:
    """Parse a wire status string (case-insensitive). Unknown values return None."""
    if value is None:
        return None
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(str(value).strip().lower())
    except ValueError:
        return None


def parse_payment_status(value: Optional[str]) -> Optional[PaymentStatus]:
    """Parse a wire payment status string (case-insensitive). Unknown values return None."""
    if value is None:
        return None
    if isinstance(value, PaymentStatus):
        return value
    try:
        return PaymentStatus(str(value).strip().lower())
    except ValueError:
        return None


def is_terminal(status: Optional[OrderStatus]) -> bool:
    return status in TERMINAL_STATUSES


def status_label(value: Optional[str]) -> str:
    """Display label for a status badge ("Unknown" when missing)."""
    if not value:
        return "Unknown"
    text = str(value.value if isinstance(value, Enum) else value)
    return text[:1].upper() + text[1:]


def all_order_statuses() -> List[str]:
    return [s.value for s in OrderStatus]
