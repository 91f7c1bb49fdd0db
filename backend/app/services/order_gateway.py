"""
Order Mutation Gateway

The only path by which an order's status is changed. A request is
validated against the transition policy, turned into exactly one store
call (status-only, or status + payment for COD delivery), and, once the
store confirms, handed to the Consistency Propagator.

Failures never touch the cache:
- PreconditionFailure: no usable order id; nothing is contacted
- IllegalTransition: rejected by the policy; the store is not called
- TransportFailure: the store call failed; not retried
"""
from typing import Optional, Union

from app.core.status_config import OrderStatus, PaymentStatus, parse_order_status, parse_payment_status
from app.exceptions import IllegalTransition, PreconditionFailure, TransportFailure, ValidationError
from app.logging_config import get_logger
from app.schemas.order import AppliedTransition, Order
from app.services.consistency import ConsistencyPropagator
from app.services.order_cache import OrderCache, order_detail_key
from app.services.order_store import OrderStore
from app.services.transition_policy import legal_next_statuses, plan_transition

logger = get_logger(__name__)


def require_order_id(order_id: Optional[str]) -> str:
    """Trimmed order id, or PreconditionFailure if there is none."""
    order_id = (order_id or "").strip()
    if not order_id:
        raise PreconditionFailure()
    return order_id


def coerce_order_status(
    value: Union[str, OrderStatus],
    current: Optional[OrderStatus],
    *,
    include_cancel: bool = False,
) -> OrderStatus:
    status = parse_order_status(value)
    if status is None:
        raise IllegalTransition(
            current=current.value if current else None,
            requested=str(value),
            allowed=[s.value for s in legal_next_statuses(current, include_cancel=include_cancel)],
        )
    return status


def coerce_payment_status(value: Union[str, PaymentStatus, None]) -> Optional[PaymentStatus]:
    if value is None or value == "":
        return None
    status = parse_payment_status(value)
    if status is None:
        raise ValidationError(
            f"Invalid payment status '{value}'. Must be one of: "
            f"{', '.join(s.value for s in PaymentStatus)}",
            field="payment_status",
            value=value,
        )
    return status


class OrderMutationGateway:
    """Validates, persists and propagates order status transitions."""

    def __init__(
        self,
        store: OrderStore,
        cache: OrderCache,
        propagator: ConsistencyPropagator,
        *,
        include_cancel: bool = False,
    ):
        self.store = store
        self.cache = cache
        self.propagator = propagator
        self.include_cancel = include_cancel

    def current_order(self, order_id: str) -> Order:
        """The order as held by the shared cache (loaded on a miss)."""
        order_id = require_order_id(order_id)
        return self.cache.fetch(order_detail_key(order_id), lambda: self.store.get_order(order_id))

    def request_transition(
        self,
        order_id: Optional[str],
        target_status: Union[str, OrderStatus],
        target_payment_status: Union[str, PaymentStatus, None] = None,
        *,
        current: Optional[Order] = None,
    ) -> AppliedTransition:
        """
        Apply `target_status` (and, for COD delivery, `target_payment_status`).

        `current` is the caller's cached copy of the order; when omitted the
        order is read through the cache. Selecting the current status returns
        an unapplied result without calling the store.
        """
        order_id = require_order_id(order_id)
        order = current if current is not None else self.current_order(order_id)

        target = coerce_order_status(
            target_status, order.order_status, include_cancel=self.include_cancel
        )
        payment = coerce_payment_status(target_payment_status)

        try:
            plan = plan_transition(order, target, payment, include_cancel=self.include_cancel)
        except IllegalTransition as e:
            logger.warning(
                f"Rejected status change for order {order_id}: {e.message}",
                extra={"order_id": order_id, "requested": e.requested, "current": e.current},
            )
            raise

        if plan.noop:
            logger.debug(f"Order {order_id} already {target.value}; nothing to update")
            return AppliedTransition(
                order_id=order_id,
                applied=False,
                previous_status=order.order_status,
                order_status=target,
                previous_payment_status=order.payment_status,
                order=order,
            )

        if payment is not None and plan.payment_status is None:
            logger.debug(
                f"Ignoring payment status for order {order_id}; only COD delivery updates payment"
            )

        try:
            if plan.is_composite:
                updated = self.store.update_order(order_id, plan.order_status, plan.payment_status)
            else:
                updated = self.store.update_order_status(order_id, plan.order_status)
        except TransportFailure as e:
            logger.error(
                f"Status update failed for order {order_id}: {e.message}",
                extra={"order_id": order_id, "http_status": e.http_status, "reason": e.reason},
            )
            raise

        applied = AppliedTransition(
            order_id=order_id,
            applied=True,
            previous_status=order.order_status,
            order_status=plan.order_status,
            previous_payment_status=order.payment_status,
            payment_status=plan.payment_status,
            # a response without the order body: reconcile the copy we hold
            order=updated if updated.id else order.with_status(plan.order_status, plan.payment_status),
        )
        logger.info(
            f"Order {order_id}: {order.raw_status or 'unknown'} → {plan.order_status.value}",
            extra={
                "order_id": order_id,
                "composite": plan.is_composite,
                "payment_status": plan.payment_status.value if plan.payment_status else None,
            },
        )

        self.propagator.propagate(applied)
        return applied
