"""
Unit Tests for the HTTP order store client

Requests are answered by a transport adapter mounted on the session, so
no network is involved.
"""
import json

import pytest
import requests
from requests.adapters import BaseAdapter

from app.core.status_config import OrderStatus, PaymentStatus
from app.exceptions import TransportFailure
from app.services.order_store import MUTATION_FAILED, READ_FAILED, TIMED_OUT, HttpOrderStore

BASE_URL = "http://store.test/api/v1"


class StubAdapter(BaseAdapter):
    """Returns one canned response (or raises) and records each request."""

    def __init__(self, status_code=200, body=None, raw=None, exc=None):
        super().__init__()
        self.status_code = status_code
        self.body = body
        self.raw = raw
        self.exc = exc
        self.sent = []

    def send(self, request, **kwargs):
        self.sent.append((request, kwargs))
        if self.exc is not None:
            raise self.exc
        response = requests.Response()
        response.status_code = self.status_code
        if self.body is not None:
            response._content = json.dumps(self.body).encode("utf-8")
            response.headers["Content-Type"] = "application/json"
        else:
            response._content = self.raw or b""
        response.url = request.url
        response.request = request
        return response

    def close(self):
        pass


def _store(adapter, **kwargs):
    session = requests.Session()
    session.mount("http://", adapter)
    return HttpOrderStore(BASE_URL, session=session, **kwargs)


def _order_body(**fields):
    order = {"_id": "o1", "orderStatus": "pending", "paymentMethod": "card"}
    order.update(fields)
    return {"status": "success", "data": {"order": order}}


class TestRequests:

    def test_status_only_patch(self):
        adapter = StubAdapter(body=_order_body(orderStatus="processing"))
        store = _store(adapter, token="secret", timeout=120)

        order = store.update_order_status("o1", OrderStatus.PROCESSING)

        request, kwargs = adapter.sent[0]
        assert request.method == "PATCH"
        assert request.url == f"{BASE_URL}/admin/orders/o1/status"
        assert json.loads(request.body) == {"status": "processing"}
        assert request.headers["Authorization"] == "Bearer secret"
        assert kwargs["timeout"] == 120
        assert order.order_status == OrderStatus.PROCESSING

    def test_composite_patch_writes_order_status(self):
        adapter = StubAdapter(body=_order_body(orderStatus="delivered", paymentStatus="paid"))
        store = _store(adapter)

        order = store.update_order("o2", OrderStatus.DELIVERED, PaymentStatus.PAID)

        request, _ = adapter.sent[0]
        assert request.url == f"{BASE_URL}/admin/orders/o2"
        assert json.loads(request.body) == {"orderStatus": "delivered", "paymentStatus": "paid"}
        assert order.payment_status == PaymentStatus.PAID

    def test_list_orders_params(self):
        adapter = StubAdapter(body={
            "status": "success",
            "data": {
                "orders": [{"_id": "o1", "status": "shipped"}],
                "pagination": {"page": 1, "limit": 20, "total": 1, "pages": 1},
            },
        })
        store = _store(adapter)

        page = store.list_orders(1, 20, "new_arrival")

        request, _ = adapter.sent[0]
        assert request.url == f"{BASE_URL}/admin/orders?page=1&limit=20&sort=new_arrival"
        assert page.orders[0].order_status == OrderStatus.SHIPPED

    def test_dashboard_stats(self):
        adapter = StubAdapter(body={"data": {"stats": {"orders": {"total": 3, "pending": 1}}}})
        stats = _store(adapter).get_dashboard_stats()
        assert stats.orders.total == 3


class TestFailureMessages:

    def test_server_message_wins(self):
        adapter = StubAdapter(status_code=429, body={"message": "Slow down, please."})
        with pytest.raises(TransportFailure) as exc_info:
            _store(adapter).update_order_status("o1", OrderStatus.SHIPPED)

        assert exc_info.value.message == "Slow down, please."
        assert exc_info.value.reason == "rate_limited"
        assert exc_info.value.http_status == 429

    def test_error_field_used_when_no_message(self):
        adapter = StubAdapter(status_code=400, body={"error": "Invalid status"})
        with pytest.raises(TransportFailure) as exc_info:
            _store(adapter).update_order_status("o1", OrderStatus.SHIPPED)
        assert exc_info.value.message == "Invalid status"

    def test_rate_limited_status(self):
        adapter = StubAdapter(status_code=429, raw=b"Too Many Requests")
        with pytest.raises(TransportFailure) as exc_info:
            _store(adapter).update_order_status("o1", OrderStatus.SHIPPED)
        assert exc_info.value.message == "Too many requests. Please wait a moment and try again."

    def test_payload_too_large_status(self):
        adapter = StubAdapter(status_code=413, raw=b"")
        with pytest.raises(TransportFailure) as exc_info:
            _store(adapter).update_order_status("o1", OrderStatus.SHIPPED)
        assert exc_info.value.message == "Request payload too large."
        assert exc_info.value.reason == "payload_too_large"

    def test_not_found_maps_to_404(self):
        adapter = StubAdapter(status_code=404, raw=b"")
        with pytest.raises(TransportFailure) as exc_info:
            _store(adapter).get_order("nope")
        assert exc_info.value.status_code == 404
        assert exc_info.value.message == "Order not found."

    def test_generic_fallback_for_mutation(self):
        adapter = StubAdapter(status_code=500, raw=b"<html>stack trace</html>")
        with pytest.raises(TransportFailure) as exc_info:
            _store(adapter).update_order_status("o1", OrderStatus.SHIPPED)
        assert exc_info.value.message == MUTATION_FAILED
        assert "stack trace" not in exc_info.value.message
        assert exc_info.value.status_code == 502

    def test_generic_fallback_for_read(self):
        adapter = StubAdapter(status_code=503, raw=b"")
        with pytest.raises(TransportFailure) as exc_info:
            _store(adapter).list_orders(1, 20)
        assert exc_info.value.message == READ_FAILED

    def test_timeout(self):
        adapter = StubAdapter(exc=requests.Timeout("read timed out after 120s"))
        with pytest.raises(TransportFailure) as exc_info:
            _store(adapter).update_order_status("o1", OrderStatus.SHIPPED)
        assert exc_info.value.message == TIMED_OUT
        assert exc_info.value.reason == "timeout"
        assert len(adapter.sent) == 1

    def test_connection_error_hides_raw_error(self):
        adapter = StubAdapter(exc=requests.ConnectionError("[Errno 111] Connection refused"))
        with pytest.raises(TransportFailure) as exc_info:
            _store(adapter).update_order_status("o1", OrderStatus.SHIPPED)
        assert exc_info.value.message == MUTATION_FAILED
        assert exc_info.value.reason == "network"

    def test_non_json_success_body(self):
        adapter = StubAdapter(status_code=200, raw=b"OK")
        with pytest.raises(TransportFailure) as exc_info:
            _store(adapter).update_order_status("o1", OrderStatus.SHIPPED)
        assert exc_info.value.message == MUTATION_FAILED


class TestFromSettings:

    def test_base_url_gets_single_api_suffix(self):
        from app.core.settings import Settings

        settings = Settings(STORE_API_URL="http://store.test/api/v1/", STORE_TIMEOUT_SECONDS=30)
        store = HttpOrderStore.from_settings(settings)

        assert store.base_url == "http://store.test/api/v1"
        assert store.timeout == 30
