"""
Event Service

Records and lists the order status audit trail.
"""
from typing import List, Optional, Tuple

from sqlalchemy import desc
from sqlalchemy.orm import Session

from app.models.order_event import OrderStatusEvent
from app.schemas.order import AppliedTransition


def record_status_event(
    db: Session,
    applied: AppliedTransition,
    surface: str,
    order_number: Optional[str] = None,
) -> Optional[OrderStatusEvent]:
    """
    Record an applied transition. No-op results are not recorded.

    Args:
        db: Database session
        applied: Result returned by the mutation gateway
        surface: Name of the surface that submitted the change
        order_number: Display order number, for reading the trail

    Returns:
        The created OrderStatusEvent, or None for a no-op
    """
    if not applied.applied:
        return None

    event = OrderStatusEvent(
        order_id=applied.order_id,
        order_number=order_number,
        surface=surface,
        old_status=applied.previous_status.value if applied.previous_status else None,
        new_status=applied.order_status.value,
        old_payment_status=(
            applied.previous_payment_status.value
            if applied.payment_status and applied.previous_payment_status
            else None
        ),
        new_payment_status=applied.payment_status.value if applied.payment_status else None,
    )
    db.add(event)
    db.commit()
    db.refresh(event)
    return event


def list_status_events(
    db: Session,
    order_id: str,
    limit: int = 50,
    offset: int = 0,
) -> Tuple[List[OrderStatusEvent], int]:
    """Events for one order, most recent first, with the total count."""
    query = db.query(OrderStatusEvent).filter(OrderStatusEvent.order_id == order_id)
    total = query.count()
    events = (
        query
        .order_by(desc(OrderStatusEvent.created_at), desc(OrderStatusEvent.id))
        .offset(offset)
        .limit(limit)
        .all()
    )
    return events, total
