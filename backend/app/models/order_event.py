"""
Order Status Event Model

Audit trail of order status changes made through OrderDesk. Orders live in
the backing store, so events reference them by the store's stable id and
keep the display order number alongside for reading.
"""
from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String

from app.db.base import Base


class OrderStatusEvent(Base):
    """One applied status transition"""
    __tablename__ = "order_status_events"

    # Primary Key
    id = Column(Integer, primary_key=True, index=True)

    # Store identity (never the order number)
    order_id = Column(String(64), nullable=False, index=True)
    order_number = Column(String(64), nullable=True)

    # Which surface submitted the change: inline, dialog
    surface = Column(String(20), nullable=False)

    old_status = Column(String(32), nullable=True)
    new_status = Column(String(32), nullable=False)

    # Only set when the change also wrote the payment status (COD delivery)
    old_payment_status = Column(String(32), nullable=True)
    new_payment_status = Column(String(32), nullable=True)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    def __repr__(self):
        return f"<OrderStatusEvent {self.order_id}: {self.old_status} -> {self.new_status}>"
