"""
Order Store Client

HTTP boundary to the commerce backend that owns orders. All wire-format
quirks are normalized through `app.schemas.order` before anything leaves
this module, and every failure is converted into a TransportFailure whose
message is safe to show to a user.

Requests are bound to a single fixed timeout and are never retried.
"""
from typing import Any, Dict, Optional, Protocol

import requests
from pydantic import ValidationError as PydanticValidationError

from app.core.settings import Settings
from app.core.status_config import OrderStatus, PaymentStatus
from app.exceptions import TransportFailure
from app.logging_config import get_logger
from app.schemas.dashboard import DashboardStats
from app.schemas.order import Order, OrderPage

logger = get_logger(__name__)

MUTATION_FAILED = "Failed to update order status."
READ_FAILED = "Failed to load orders."
TIMED_OUT = "The order service timed out. Please try again."

# HTTP status -> (reason, user-facing message)
_STATUS_MESSAGES: Dict[int, tuple] = {
    401: ("unauthorized", "Your session has expired. Please sign in again."),
    404: ("not_found", "Order not found."),
    413: ("payload_too_large", "Request payload too large."),
    429: ("rate_limited", "Too many requests. Please wait a moment and try again."),
}


class OrderStore(Protocol):
    """Operations the workflow needs from the backing store."""

    def list_orders(
        self,
        page: int,
        page_size: int,
        sort: Optional[str] = None,
        status: Optional[str] = None,
    ) -> OrderPage: ...

    def get_order(self, order_id: str) -> Order: ...

    def update_order_status(self, order_id: str, status: OrderStatus) -> Order: ...

    def update_order(
        self,
        order_id: str,
        order_status: OrderStatus,
        payment_status: PaymentStatus,
    ) -> Order: ...

    def get_dashboard_stats(self) -> DashboardStats: ...


def failure_from_response(response: requests.Response, fallback: str) -> TransportFailure:
    """
    Build a TransportFailure from an error response.

    Message priority: a structured server message (`message`, `error`,
    `detail`), then a recognizable HTTP status, then `fallback`.
    """
    reason, status_message = _STATUS_MESSAGES.get(response.status_code, ("server", None))

    server_message = None
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "error", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                server_message = value.strip()
                break

    return TransportFailure(
        server_message or status_message or fallback,
        http_status=response.status_code,
        reason=reason,
    )


class HttpOrderStore:
    """OrderStore over the backend's REST API (requests)."""

    LIST_PATH = "/admin/orders"
    ORDER_PATH = "/admin/orders/{order_id}"
    STATUS_PATH = "/admin/orders/{order_id}/status"
    STATS_PATH = "/admin/dashboard/stats"

    def __init__(
        self,
        base_url: str,
        *,
        token: Optional[str] = None,
        timeout: float = 120.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Accept": "application/json",
            "Content-Type": "application/json",
        })
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    @classmethod
    def from_settings(cls, settings: Settings) -> "HttpOrderStore":
        return cls(
            settings.store_api_base,
            token=settings.STORE_API_TOKEN,
            timeout=settings.STORE_TIMEOUT_SECONDS,
        )

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        *,
        fallback: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(
                method, url, params=params, json=json, timeout=self.timeout
            )
        except requests.Timeout as e:
            logger.error(f"Order store timeout: {method} {path}: {e}")
            raise TransportFailure(TIMED_OUT, reason="timeout") from e
        except requests.RequestException as e:
            logger.error(f"Order store unreachable: {method} {path}: {e}")
            raise TransportFailure(fallback, reason="network") from e

        if not response.ok:
            failure = failure_from_response(response, fallback)
            logger.error(
                f"Order store error: {method} {path} -> {response.status_code}",
                extra={"http_status": response.status_code, "reason": failure.reason},
            )
            raise failure

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Order store returned non-JSON body: {method} {path}")
            raise TransportFailure(fallback, http_status=response.status_code) from e

    def _order_from(self, payload: Any, fallback: str) -> Order:
        try:
            return Order.model_validate(payload)
        except PydanticValidationError as e:
            logger.error(f"Unreadable order payload from store: {e}")
            raise TransportFailure(fallback, reason="server") from e

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_orders(
        self,
        page: int,
        page_size: int,
        sort: Optional[str] = None,
        status: Optional[str] = None,
    ) -> OrderPage:
        params: Dict[str, Any] = {"page": page, "limit": page_size}
        if sort:
            params["sort"] = sort
        if status:
            params["status"] = status
        payload = self._request("GET", self.LIST_PATH, params=params, fallback=READ_FAILED)
        try:
            return OrderPage.model_validate(payload)
        except PydanticValidationError as e:
            logger.error(f"Unreadable order page from store: {e}")
            raise TransportFailure(READ_FAILED, reason="server") from e

    def get_order(self, order_id: str) -> Order:
        payload = self._request(
            "GET", self.ORDER_PATH.format(order_id=order_id), fallback=READ_FAILED
        )
        return self._order_from(payload, READ_FAILED)

    def get_dashboard_stats(self) -> DashboardStats:
        payload = self._request("GET", self.STATS_PATH, fallback="Failed to load dashboard stats.")
        try:
            return DashboardStats.model_validate(payload)
        except PydanticValidationError as e:
            logger.error(f"Unreadable dashboard stats from store: {e}")
            raise TransportFailure("Failed to load dashboard stats.", reason="server") from e

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def update_order_status(self, order_id: str, status: OrderStatus) -> Order:
        payload = self._request(
            "PATCH",
            self.STATUS_PATH.format(order_id=order_id),
            json={"status": status.value},
            fallback=MUTATION_FAILED,
        )
        return self._order_from(payload, MUTATION_FAILED)

    def update_order(
        self,
        order_id: str,
        order_status: OrderStatus,
        payment_status: PaymentStatus,
    ) -> Order:
        payload = self._request(
            "PATCH",
            self.ORDER_PATH.format(order_id=order_id),
            json={"orderStatus": order_status.value, "paymentStatus": payment_status.value},
            fallback=MUTATION_FAILED,
        )
        return self._order_from(payload, MUTATION_FAILED)
