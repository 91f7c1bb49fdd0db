"""
Order Status Event Schemas

Response schemas for the status-change audit trail.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import ConfigDict

from app.schemas.order import CamelModel


class OrderEventResponse(CamelModel):
    """A single recorded status change."""
    id: int
    order_id: str
    order_number: Optional[str] = None
    surface: str
    old_status: Optional[str] = None
    new_status: str
    old_payment_status: Optional[str] = None
    new_payment_status: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OrderEventListResponse(CamelModel):
    items: List[OrderEventResponse]
    total: int
