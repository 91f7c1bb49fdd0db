"""
Dashboard Pydantic Schemas

Only the order counters are typed; the remaining blocks (revenue,
customers, products) are passed through untouched for the charts.
"""
from typing import Any, Dict

from pydantic import Field, model_validator

from app.schemas.order import CamelModel, unwrap_envelope


class OrderCounters(CamelModel):
    """Order counters derived from order status."""
    total: int = 0
    today: int = 0
    monthly: int = 0
    pending: int = 0
    paid: int = 0


class DashboardStats(CamelModel):
    orders: OrderCounters = Field(default_factory=OrderCounters)
    revenue: Dict[str, Any] = Field(default_factory=dict)
    customers: Dict[str, Any] = Field(default_factory=dict)
    products: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def unwrap_stats(cls, data: Any) -> Any:
        return unwrap_envelope(data, "stats")
