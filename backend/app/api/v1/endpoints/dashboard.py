"""
Dashboard Endpoints

Order counters for the admin dashboard, served from the shared order cache
so they converge with the order views after every status change.
"""
from fastapi import APIRouter, Depends

from app.api.v1.deps import get_workflow
from app.schemas.dashboard import DashboardStats
from app.services.workflow import OrderWorkflow

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("/stats", response_model=DashboardStats)
def get_dashboard_stats(workflow: OrderWorkflow = Depends(get_workflow)):
    """Order, revenue, customer and product counters."""
    return workflow.dashboard_stats()
