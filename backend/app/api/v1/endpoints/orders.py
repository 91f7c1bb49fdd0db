"""
Order Status Endpoints

Order list and detail views with their status controls, the two
submission paths (inline quick update and status dialog), the transition
and payment catalogues, and the per-order audit trail.

Handlers are plain `def`: store calls block, so FastAPI runs them on its
threadpool and the surfaces' in-flight guards see concurrent submissions.
"""
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.api.v1.deps import get_db, get_workflow
from app.core.status_config import (
    FORWARD_FLOW,
    PAYMENT_STATUS_DESCRIPTIONS,
    OrderStatus,
    PaymentStatus,
    all_order_statuses,
    is_terminal,
    parse_order_status,
)
from app.logging_config import get_logger
from app.schemas.order import (
    AppliedTransition,
    CamelModel,
    Order,
    QuickStatusUpdate,
    StatusDialogSubmit,
    TransitionResponse,
)
from app.schemas.order_event import OrderEventListResponse, OrderEventResponse
from app.services.event_service import list_status_events, record_status_event
from app.services.surfaces import DetailAction, StatusControl, StatusDialogForm
from app.services.transition_policy import legal_next_statuses
from app.services.workflow import OrderWorkflow

logger = get_logger(__name__)

router = APIRouter(prefix="/orders", tags=["Orders"])


# ============================================================================
# SCHEMAS
# ============================================================================

class OrderRow(CamelModel):
    """An order list row with its inline status control."""
    order: Order
    control: StatusControl


class OrderListResponse(CamelModel):
    items: List[OrderRow]
    total: int
    page: int
    pages: int
    page_size: int


class OrderDetailResponse(CamelModel):
    order: Order
    action: DetailAction
    dialog: StatusDialogForm


# ============================================================================
# HELPERS
# ============================================================================

def _finish_transition(
    applied: AppliedTransition,
    surface: str,
    workflow: OrderWorkflow,
    db: Session,
) -> TransitionResponse:
    """
    Take the refreshed detail from the shared cache and record the change.

    The store has already accepted the change, so neither a detail that
    could not be refreshed nor a failed audit write fails the request.
    """
    order = applied.order
    if applied.applied:
        # None when the refetch failed; serve what the store returned
        order = workflow.cached_order(applied.order_id) or applied.order
        try:
            record_status_event(
                db,
                applied,
                surface,
                order_number=order.order_number if order else None,
            )
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(
                f"Failed to record status change for order {applied.order_id}: {e}",
                extra={"order_id": applied.order_id, "surface": surface},
            )

    return TransitionResponse(
        **applied.model_dump(exclude={"order"}),
        order=order,
        surface=surface,
    )


# ============================================================================
# ENDPOINT: Catalogues
# ============================================================================

@router.get("/status-transitions")
def get_order_status_transitions(
    current_status: Optional[str] = Query(None, description="Get transitions for a specific status"),
    workflow: OrderWorkflow = Depends(get_workflow),
):
    """
    Selectable next statuses.

    With `current_status`, returns the options for that status only; an
    unrecognized status gets the full flow so corrupt data stays editable.
    Without it, returns the options for every status.
    """
    include_cancel = workflow.gateway.include_cancel

    if current_status:
        current = parse_order_status(current_status)
        allowed = legal_next_statuses(current, include_cancel=include_cancel)
        return {
            "current_status": current_status,
            "allowed_transitions": [s.value for s in allowed],
            "is_terminal": is_terminal(current),
        }

    transitions: Dict[str, List[str]] = {
        status.value: [s.value for s in legal_next_statuses(status, include_cancel=include_cancel)]
        for status in OrderStatus
    }
    return {
        "statuses": all_order_statuses(),
        "forward_flow": [s.value for s in FORWARD_FLOW],
        "transitions": transitions,
        "terminal_statuses": [s.value for s in OrderStatus if is_terminal(s)],
    }


@router.get("/payment-statuses")
def get_payment_statuses():
    """Payment status values, for the dialog's payment input."""
    return {
        "statuses": [s.value for s in PaymentStatus],
        "descriptions": {
            status.value: description
            for status, description in PAYMENT_STATUS_DESCRIPTIONS.items()
        },
    }


# ============================================================================
# ENDPOINT: List / Detail
# ============================================================================

@router.get("/", response_model=OrderListResponse)
def list_orders(
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1, le=1000),
    status_filter: Optional[str] = Query(None, alias="status", description="Filter by status"),
    search: Optional[str] = Query(None, description="Search order number, customer or tracking"),
    workflow: OrderWorkflow = Depends(get_workflow),
):
    """One page of orders, each row with its inline status control."""
    page_size = page_size or workflow.page_size
    result = workflow.list_orders(page, page_size, status=status_filter, search=search)
    return OrderListResponse(
        items=[
            OrderRow(order=order, control=workflow.inline.control_for(order))
            for order in result.orders
        ],
        total=result.total,
        page=result.page,
        pages=result.pages,
        page_size=page_size,
    )


@router.get("/{order_id}", response_model=OrderDetailResponse)
def get_order(
    order_id: str,
    workflow: OrderWorkflow = Depends(get_workflow),
):
    """Order detail with the update action and its dialog state."""
    order = workflow.get_order(order_id)
    return OrderDetailResponse(
        order=order,
        action=workflow.detail.action_for(order),
        dialog=workflow.detail.open_dialog(order),
    )


# ============================================================================
# ENDPOINT: Status Updates
# ============================================================================

@router.get("/{order_id}/status-dialog", response_model=StatusDialogForm)
def get_status_dialog(
    order_id: str,
    target_status: Optional[str] = Query(None, description="Status selected in the dialog"),
    workflow: OrderWorkflow = Depends(get_workflow),
):
    """
    Dialog state for a selected target.

    `solicitPayment` is true only for a COD order being marked delivered
    that is not already paid.
    """
    order = workflow.get_order(order_id)
    return workflow.dialog.form_for(order, target_status)


@router.patch("/{order_id}/status", response_model=TransitionResponse)
def quick_update_status(
    order_id: str,
    request: QuickStatusUpdate,
    workflow: OrderWorkflow = Depends(get_workflow),
    db: Session = Depends(get_db),
):
    """
    Inline quick update from the order list (status only).

    Selecting the current status is a no-op and returns `applied: false`.
    """
    applied = workflow.inline.submit(order_id, request.status)
    return _finish_transition(applied, workflow.inline.name, workflow, db)


@router.post("/{order_id}/status-dialog", response_model=TransitionResponse)
def submit_status_dialog(
    order_id: str,
    request: StatusDialogSubmit,
    workflow: OrderWorkflow = Depends(get_workflow),
    db: Session = Depends(get_db),
):
    """
    Status dialog submission (also used by the detail view's action).

    For a COD order moving to delivered, `paymentStatus` is written in the
    same store call; otherwise it is ignored.
    """
    applied = workflow.dialog.submit(order_id, request.order_status, request.payment_status)
    return _finish_transition(applied, workflow.dialog.name, workflow, db)


# ============================================================================
# ENDPOINT: Audit Trail
# ============================================================================

@router.get("/{order_id}/events", response_model=OrderEventListResponse)
def list_order_events(
    order_id: str,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    """Status changes made through this service, most recent first."""
    events, total = list_status_events(db, order_id.strip(), limit=limit, offset=offset)
    return OrderEventListResponse(
        items=[OrderEventResponse.model_validate(event) for event in events],
        total=total,
    )
