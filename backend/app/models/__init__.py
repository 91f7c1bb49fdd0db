"""Database models"""
from app.models.order_event import OrderStatusEvent

__all__ = ["OrderStatusEvent"]
