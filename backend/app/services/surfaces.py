"""
Order Status Surfaces

Three affordances over the same policy and gateway:

- InlineStatusSelector: the quick dropdown on each order list row
  (status only)
- StatusUpdateDialog: the explicit form with order status and, for COD
  delivery, payment status
- DetailStatusAction: the "Update Status" action in the order detail view,
  which opens the dialog

Each surface renders only what `legal_next_statuses` returns, solicits a
payment status only when `requires_payment_update` holds, and refuses a
second submission for an order while one is running on that surface.
"""
import threading
from contextlib import contextmanager
from typing import Iterator, List, Optional, Set

from app.core.status_config import (
    OrderStatus,
    PaymentStatus,
    is_terminal,
    parse_order_status,
    status_label,
)
from app.exceptions import TransitionError, TransitionInFlight
from app.schemas.order import AppliedTransition, CamelModel, Order
from app.services.order_gateway import OrderMutationGateway, require_order_id
from app.services.transition_policy import (
    is_legal_transition,
    legal_next_statuses,
    requires_payment_update,
)


# ============================================================================
# View models
# ============================================================================

class StatusOption(CamelModel):
    value: str
    label: str


class StatusControl(CamelModel):
    """Inline selector state for one order row."""
    order_id: str
    current_status: Optional[str] = None
    options: List[StatusOption]
    editable: bool
    disabled: bool


class StatusDialogForm(CamelModel):
    """Dialog state for one order and a selected target."""
    order_id: str
    current_status: Optional[str] = None
    selected_status: Optional[str] = None
    options: List[StatusOption]
    solicit_payment: bool
    current_payment_status: Optional[str] = None
    payment_options: List[StatusOption]
    disabled: bool


class DetailAction(CamelModel):
    """The detail view's update action."""
    available: bool
    busy: bool
    label: str


def _options(statuses) -> List[StatusOption]:
    return [StatusOption(value=s.value, label=status_label(s)) for s in statuses]


def _current_value(order: Order) -> Optional[str]:
    if order.order_status is not None:
        return order.order_status.value
    return order.raw_status


# ============================================================================
# Base surface
# ============================================================================

class StatusSurface:
    """Shared in-flight guard and submission path."""

    name = "surface"

    def __init__(self, gateway: OrderMutationGateway):
        self.gateway = gateway
        self._in_flight: Set[str] = set()
        self._lock = threading.Lock()

    def options_for(self, order: Order) -> List[OrderStatus]:
        return legal_next_statuses(order.order_status, include_cancel=self.gateway.include_cancel)

    def is_busy(self, order_id: str) -> bool:
        with self._lock:
            return order_id in self._in_flight

    @contextmanager
    def in_flight(self, order_id: str) -> Iterator[None]:
        with self._lock:
            if order_id in self._in_flight:
                raise TransitionInFlight(order_id, self.name)
            self._in_flight.add(order_id)
        try:
            yield
        finally:
            with self._lock:
                self._in_flight.discard(order_id)

    def _submit(
        self,
        order_id: Optional[str],
        target_status: str,
        target_payment_status: Optional[str] = None,
    ) -> AppliedTransition:
        order_id = require_order_id(order_id)
        with self.in_flight(order_id):
            order = self.gateway.current_order(order_id)
            try:
                return self.gateway.request_transition(
                    order_id,
                    target_status,
                    target_payment_status,
                    current=order,
                )
            except TransitionError as e:
                # the control falls back to the last known-good status
                e.details["revert_to"] = _current_value(order)
                e.details["surface"] = self.name
                raise


# ============================================================================
# Surfaces
# ============================================================================

class InlineStatusSelector(StatusSurface):
    name = "inline"

    def control_for(self, order: Order) -> StatusControl:
        options = self.options_for(order)
        # terminal orders render a badge only
        editable = bool(order.id) and not is_terminal(order.order_status)
        return StatusControl(
            order_id=order.id,
            current_status=_current_value(order),
            options=_options(options),
            editable=editable,
            disabled=not editable or self.is_busy(order.id),
        )

    def submit(self, order_id: Optional[str], target_status: str) -> AppliedTransition:
        return self._submit(order_id, target_status)


class StatusUpdateDialog(StatusSurface):
    name = "dialog"

    def form_for(self, order: Order, selected_status: Optional[str] = None) -> StatusDialogForm:
        options = self.options_for(order)
        selected = parse_order_status(selected_status) if selected_status else order.order_status
        solicit = (
            selected is not None
            and is_legal_transition(
                order.order_status, selected, include_cancel=self.gateway.include_cancel
            )
            and requires_payment_update(order, selected)
        )
        return StatusDialogForm(
            order_id=order.id,
            current_status=_current_value(order),
            selected_status=selected.value if selected else None,
            options=_options(options),
            solicit_payment=solicit,
            current_payment_status=order.payment_status.value if order.payment_status else None,
            payment_options=_options([PaymentStatus.UNPAID, PaymentStatus.PAID]) if solicit else [],
            disabled=not order.id or self.is_busy(order.id),
        )

    def submit(
        self,
        order_id: Optional[str],
        target_status: str,
        target_payment_status: Optional[str] = None,
    ) -> AppliedTransition:
        return self._submit(order_id, target_status, target_payment_status)


class DetailStatusAction:
    """Detail-view entry point; submissions go through its dialog."""

    name = "detail"

    def __init__(self, dialog: StatusUpdateDialog):
        self.dialog = dialog

    def action_for(self, order: Order) -> DetailAction:
        busy = bool(order.id) and self.dialog.is_busy(order.id)
        return DetailAction(
            available=bool(order.id) and not is_terminal(order.order_status),
            busy=busy,
            label="Updating..." if busy else "Update Status",
        )

    def open_dialog(self, order: Order) -> StatusDialogForm:
        return self.dialog.form_for(order)
