"""
Order Pydantic Schemas

The backing store speaks camelCase JSON with a few legacy spellings
(`_id` for `id`, `status` for `orderStatus`, envelopes such as
`{"status": "success", "data": {...}}`). Everything is normalized here,
once, into the canonical `Order` type; nothing past this module ever
looks at the legacy names.
"""
import math
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator
from pydantic.alias_generators import to_camel

from app.core.status_config import (
    COD_PAYMENT_METHOD,
    OrderStatus,
    PaymentStatus,
    parse_order_status,
    parse_payment_status,
    status_label,
)


def _first_present(data: Dict[str, Any], *keys: str) -> Any:
    """Return the first value under `keys` that is not None/empty."""
    for key in keys:
        value = data.get(key)
        if value is not None and value != "":
            return value
    return None


def unwrap_envelope(payload: Any, *keys: str) -> Any:
    """
    Strip response envelopes: `{"data": {...}}` and then any of `keys`
    (e.g. `{"order": {...}}`) when present.
    """
    if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
        payload = payload["data"]
    for key in keys:
        if isinstance(payload, dict) and isinstance(payload.get(key), dict):
            payload = payload[key]
    return payload


class CamelModel(BaseModel):
    """Serializes to camelCase, accepts either spelling on input."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# ============================================================================
# Canonical Order
# ============================================================================

class Order(CamelModel):
    """An order as seen by the status workflow."""
    id: str = ""
    order_number: Optional[str] = None  # display only, never a mutation key
    order_status: Optional[OrderStatus] = None
    raw_status: Optional[str] = None  # status string as received, whether or not it is a known status
    payment_status: Optional[PaymentStatus] = None
    payment_method: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    tracking_number: Optional[str] = None
    total_amount: Optional[float] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def normalize_wire_fields(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = unwrap_envelope(data, "order")

        status_value = _first_present(
            data, "orderStatus", "order_status", "status", "rawStatus", "raw_status"
        )
        customer = data.get("customer") or data.get("user") or {}
        if not isinstance(customer, dict):
            customer = {}

        if isinstance(status_value, OrderStatus):
            status_value = status_value.value
        order_id = _first_present(data, "id", "_id")
        payment_method = _first_present(data, "paymentMethod", "payment_method")

        normalized = {
            "id": str(order_id).strip() if order_id is not None else "",
            "order_number": _first_present(data, "orderNumber", "order_number", "invoice"),
            "order_status": parse_order_status(status_value),
            "raw_status": str(status_value) if status_value is not None else None,
            "payment_status": parse_payment_status(
                _first_present(data, "paymentStatus", "payment_status")
            ),
            "payment_method": str(payment_method) if payment_method is not None else None,
            "customer_name": _first_present(data, "customerName", "customer_name", "username")
            or customer.get("name"),
            "customer_email": _first_present(data, "customerEmail", "customer_email")
            or customer.get("email"),
            "tracking_number": _first_present(data, "trackingNumber", "tracking_number"),
            "total_amount": _first_present(data, "totalAmount", "total_amount", "amount"),
            "created_at": _first_present(data, "createdAt", "created_at", "date"),
            "updated_at": _first_present(data, "updatedAt", "updated_at"),
        }
        return normalized

    @property
    def is_cod(self) -> bool:
        return (self.payment_method or "").strip().lower() == COD_PAYMENT_METHOD

    @computed_field
    @property
    def status_label(self) -> str:
        if self.order_status is not None:
            return status_label(self.order_status)
        return status_label(self.raw_status)

    @computed_field
    @property
    def is_complete(self) -> bool:
        return self.order_status == OrderStatus.DELIVERED

    def matches_search(self, query: str) -> bool:
        """Case-insensitive match over the fields the order search box covers."""
        query = query.strip().lower()
        if not query:
            return True
        haystack = (
            self.order_number,
            self.customer_name,
            self.customer_email,
            self.tracking_number,
        )
        return any(query in value.lower() for value in haystack if value)

    def with_status(
        self,
        order_status: OrderStatus,
        payment_status: Optional[PaymentStatus] = None,
    ) -> "Order":
        """Copy with the status fields replaced, for when the store echoes no order."""
        update: Dict[str, Any] = {"order_status": order_status, "raw_status": order_status.value}
        if payment_status is not None:
            update["payment_status"] = payment_status
        return self.model_copy(update=update)


class OrderPage(CamelModel):
    """One page of the order list."""
    orders: List[Order] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    pages: int = 1

    @model_validator(mode="before")
    @classmethod
    def normalize_wire_page(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = unwrap_envelope(data)
        pagination = data.get("pagination") or {}
        orders = data.get("orders")
        if orders is None:
            orders = data.get("items") or []

        total = _first_present(pagination, "total")
        if total is None:
            total = data.get("total", len(orders))
        page = _first_present(pagination, "page") or data.get("page") or 1
        limit = _first_present(pagination, "limit") or data.get("limit") or data.get("pageSize")
        pages = _first_present(pagination, "pages") or data.get("pages")
        if pages is None:
            pages = max(1, math.ceil(int(total) / int(limit))) if limit else 1

        return {"orders": orders, "total": total, "page": page, "pages": pages}


# ============================================================================
# Transition Requests / Results
# ============================================================================

class QuickStatusUpdate(BaseModel):
    """Inline selector submission: order status only."""
    status: str = Field(..., min_length=1, description="Target order status")


class StatusDialogSubmit(CamelModel):
    """Status dialog submission: order status, plus payment status when solicited."""
    order_status: str = Field(..., min_length=1, description="Target order status")
    payment_status: Optional[str] = Field(None, description="Target payment status (COD delivery only)")


class AppliedTransition(CamelModel):
    """What the gateway did for a transition request."""
    order_id: str
    applied: bool  # False when the request short-circuited as a no-op
    previous_status: Optional[OrderStatus] = None
    order_status: OrderStatus
    previous_payment_status: Optional[PaymentStatus] = None
    payment_status: Optional[PaymentStatus] = None  # set only when the request wrote it
    order: Optional[Order] = None  # the order as returned by the store


class TransitionResponse(AppliedTransition):
    """API response for a transition; `order` is the refreshed cached detail."""
    surface: str
