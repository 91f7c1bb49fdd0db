"""
API v1 Router - OrderDesk
"""
from fastapi import APIRouter

from app.api.v1.endpoints import dashboard, orders

router = APIRouter()

# Orders (list, detail, status updates, audit trail)
router.include_router(orders.router)

# Dashboard counters
router.include_router(dashboard.router)
