"""
Order Status Transition Policy

Pure rules for the order fulfillment workflow:
- which statuses an order may move to next
- when a payment status change must accompany a status change (COD delivery)
- whether a request is a no-op

Every surface that offers a status control asks this module for its options;
none of them encode transition rules of their own.
"""
from dataclasses import dataclass
from typing import List, Optional

from app.core.status_config import (
    FORWARD_FLOW,
    OrderStatus,
    PaymentStatus,
    TERMINAL_STATUSES,
)
from app.exceptions import IllegalTransition
from app.schemas.order import Order


def legal_next_statuses(
    current: Optional[OrderStatus],
    *,
    include_cancel: bool = False,
) -> List[OrderStatus]:
    """
    Statuses selectable from `current`, in display order.

    - forward-flow status at index i: the flow from i to the end (staying put
      is allowed, moving backward is not), plus `cancelled` when
      `include_cancel` is set
    - terminal status (delivered, cancelled): only itself
    - unknown/missing status: the whole flow plus `cancelled`, so an order
      with corrupt data still gets a usable control
    """
    if current in TERMINAL_STATUSES:
        return [current]

    if current in FORWARD_FLOW:
        allowed = list(FORWARD_FLOW[FORWARD_FLOW.index(current):])
        if include_cancel:
            allowed.append(OrderStatus.CANCELLED)
        return allowed

    return list(FORWARD_FLOW) + [OrderStatus.CANCELLED]


def is_legal_transition(
    current: Optional[OrderStatus],
    target: OrderStatus,
    *,
    include_cancel: bool = False,
) -> bool:
    return target in legal_next_statuses(current, include_cancel=include_cancel)


def validate_transition(
    current: Optional[OrderStatus],
    target: OrderStatus,
    *,
    include_cancel: bool = False,
) -> None:
    """Raise IllegalTransition if `target` is not reachable from `current`."""
    allowed = legal_next_statuses(current, include_cancel=include_cancel)
    if target not in allowed:
        raise IllegalTransition(
            current=current.value if current else None,
            requested=target.value,
            allowed=[s.value for s in allowed],
        )


def requires_payment_update(order: Order, target: OrderStatus) -> bool:
    """
    True when the payment status should be solicited for this target:
    a COD order being marked delivered that is not already paid.
    """
    return (
        order.is_cod
        and target == OrderStatus.DELIVERED
        and order.payment_status != PaymentStatus.PAID
    )


@dataclass(frozen=True)
class TransitionPlan:
    """The mutation a transition request resolves to."""
    order_id: str
    current_status: Optional[OrderStatus]
    order_status: OrderStatus
    payment_status: Optional[PaymentStatus] = None
    noop: bool = False

    @property
    def is_composite(self) -> bool:
        return self.payment_status is not None


def plan_transition(
    order: Order,
    target: OrderStatus,
    target_payment: Optional[PaymentStatus] = None,
    *,
    include_cancel: bool = False,
) -> TransitionPlan:
    """
    Resolve a request against the policy.

    Same-status requests short-circuit to a no-op plan. A payment status is
    carried only when `requires_payment_update` holds; otherwise it is
    dropped and the mutation is status-only.
    """
    current = order.order_status
    if target == current:
        return TransitionPlan(
            order_id=order.id,
            current_status=current,
            order_status=target,
            noop=True,
        )

    validate_transition(current, target, include_cancel=include_cancel)

    payment = target_payment if requires_payment_update(order, target) else None
    return TransitionPlan(
        order_id=order.id,
        current_status=current,
        order_status=target,
        payment_status=payment,
    )
