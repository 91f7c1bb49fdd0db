"""
API Dependencies

Shared dependencies for the v1 endpoints: the audit database session and
the per-application order workflow.
"""
from fastapi import Request

from app.db.session import get_db
from app.services.workflow import OrderWorkflow

__all__ = ["get_db", "get_workflow"]


def get_workflow(request: Request) -> OrderWorkflow:
    """
    Dependency returning the workflow built at startup.

    Tests override this to run against an in-memory store.
    """
    return request.app.state.workflow
