# orderdesk/routers/order_requests.py
from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from orderdesk.core.auth import StaffUser, require_staff
from orderdesk.core.config import get_settings
from orderdesk.core.notifier import StatusNotifier
from orderdesk.database import BackendCapabilities, get_capabilities, get_session
from orderdesk.repositories.client_order_repo import ClientOrderRepository
from orderdesk.repositories.client_repo import ClientRepository
from orderdesk.repositories.history_repo import HistoryRepository
from orderdesk.repositories.order_request_repo import OrderRequestRepository
from orderdesk.schemas.history import HistoryEntryRead
from orderdesk.schemas.order_request import (
    NextCodeRead,
    OrderRequestCreate,
    OrderRequestRead,
    OrderRequestUpdate,
    StatusChangeRequest,
    StatusChangeResult,
)
from orderdesk.services.order_request_service import OrderRequestService
from orderdesk.services.status_reconciler import StatusReconciler

settings = get_settings()

router = APIRouter(
    prefix="/order-requests",
    tags=["Order Requests"],
    dependencies=[Depends(require_staff)],
)

request_repo = OrderRequestRepository()
order_repo = ClientOrderRepository()
history_repo = HistoryRepository()
client_repo = ClientRepository()
reconciler = StatusReconciler(
    request_repo,
    order_repo,
    history_repo,
    client_repo,
    notifier=StatusNotifier() if settings.NOTIFY_CLIENTS else None,
)
service = OrderRequestService(
    request_repo,
    order_repo,
    history_repo,
    client_repo,
    reconciler,
    max_code_attempts=settings.REQUEST_CODE_MAX_ATTEMPTS,
)


@router.get("", response_model=list[OrderRequestRead])
def list_pending_requests(session: Session = Depends(get_session)):
    """
    Pending/New order requests, newest first, with their items.
    """
    return service.list_pending_requests(session)


@router.get("/next-code", response_model=NextCodeRead)
def next_request_code(
    year: int | None = None,
    session: Session = Depends(get_session),
):
    """
    Preview of the next REQ-<year>-NNNNN code (not reserved).
    """
    return NextCodeRead(code=service.generate_request_code(session, year))


@router.get("/{request_id}", response_model=OrderRequestRead)
def get_request(request_id: int, session: Session = Depends(get_session)):
    return service.get_request(session, request_id)


@router.post("", response_model=OrderRequestRead, status_code=status.HTTP_201_CREATED)
def create_request(
    payload: OrderRequestCreate,
    session: Session = Depends(get_session),
    caps: BackendCapabilities = Depends(get_capabilities),
    staff: StaffUser = Depends(require_staff),
):
    """
    Submit a new order request (status 'Pending').

    Rejected with 400 when the client is inactive or already has an
    order in progress.
    """
    return service.create_request(session, payload, staff.display_name, caps)


@router.put("/{request_id}", response_model=OrderRequestRead)
def update_request(
    request_id: int,
    payload: OrderRequestUpdate,
    session: Session = Depends(get_session),
    caps: BackendCapabilities = Depends(get_capabilities),
):
    """
    Edit a Pending/New request; items are replaced.
    """
    return service.update_request(session, request_id, payload, caps)


@router.patch("/{request_id}/status", response_model=StatusChangeResult)
def change_request_status(
    request_id: int,
    payload: StatusChangeRequest,
    session: Session = Depends(get_session),
    caps: BackendCapabilities = Depends(get_capabilities),
    staff: StaffUser = Depends(require_staff),
):
    """
    Move a request through its lifecycle.

      Pending   -> client order removed (request editable again)

      Approved, Rejected, Completed -> client order created/updated

    Secondary write failures are listed in `warnings`.
    """
    return service.change_request_status(session, request_id, payload, staff.display_name, caps)


@router.delete("/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_request(
    request_id: int,
    session: Session = Depends(get_session),
    caps: BackendCapabilities = Depends(get_capabilities),
):
    service.delete_request(session, request_id, caps)


@router.get("/{request_id}/history", response_model=list[HistoryEntryRead])
def get_request_history(request_id: int, session: Session = Depends(get_session)):
    """
    Status history, newest first.
    """
    return service.get_history(session, request_id)
