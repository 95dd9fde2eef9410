# orderdesk/routers/client_orders.py
from typing import Literal

from fastapi import APIRouter, Depends
from sqlmodel import Session

from orderdesk.core.auth import StaffUser, require_staff
from orderdesk.core.config import get_settings
from orderdesk.core.notifier import StatusNotifier
from orderdesk.database import BackendCapabilities, get_capabilities, get_session
from orderdesk.repositories.client_order_repo import ClientOrderRepository
from orderdesk.repositories.client_repo import ClientRepository
from orderdesk.repositories.history_repo import HistoryRepository
from orderdesk.repositories.order_request_repo import OrderRequestRepository
from orderdesk.schemas.client_order import ClientOrderDetail, ClientOrderRead, OrderSource
from orderdesk.schemas.history import HistoryEntryRead
from orderdesk.schemas.order_request import (
    NextCodeRead,
    StatusChangeRequest,
    StatusChangeResult,
)
from orderdesk.services.client_order_service import ClientOrderService
from orderdesk.services.status_reconciler import StatusReconciler

settings = get_settings()

router = APIRouter(
    prefix="/client-orders",
    tags=["Client Orders"],
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
service = ClientOrderService(request_repo, order_repo, history_repo, client_repo, reconciler)


@router.get("", response_model=list[ClientOrderRead])
def list_client_orders(
    status: Literal["Approved", "Rejected", "Completed"] | None = None,
    client_id: int | None = None,
    session: Session = Depends(get_session),
    caps: BackendCapabilities = Depends(get_capabilities),
):
    """
    Approved/Rejected/Completed orders, one entry per order code.

    Rows from the client_orders table come first, followed by promoted
    order requests that have no client_orders row.
    """
    return service.list_client_orders(session, caps, status=status, client_id=client_id)


@router.get("/next-code", response_model=NextCodeRead)
def next_order_code(
    year: int | None = None,
    session: Session = Depends(get_session),
    caps: BackendCapabilities = Depends(get_capabilities),
):
    return NextCodeRead(code=service.generate_order_code(session, caps, year))


@router.get("/{order_id}", response_model=ClientOrderDetail)
def get_client_order(
    order_id: int,
    source: OrderSource | None = None,
    session: Session = Depends(get_session),
    caps: BackendCapabilities = Depends(get_capabilities),
):
    """
    One client order with items.

    `source` is the listed row's source and tells which table `order_id`
    belongs to. It is required while the client_orders table exists
    (422 without it).
    """
    return service.get_client_order(session, order_id, caps, source)


@router.patch("/{order_id}/status", response_model=StatusChangeResult)
def change_client_order_status(
    order_id: int,
    payload: StatusChangeRequest,
    source: OrderSource | None = None,
    session: Session = Depends(get_session),
    caps: BackendCapabilities = Depends(get_capabilities),
    staff: StaffUser = Depends(require_staff),
):
    """
    Change an order's status. Moving it to 'Pending' returns it to the
    order request list.
    """
    return service.change_client_order_status(
        session, order_id, payload, staff.display_name, caps, source
    )


@router.get("/{order_id}/history", response_model=list[HistoryEntryRead])
def get_client_order_history(
    order_id: int,
    source: OrderSource | None = None,
    session: Session = Depends(get_session),
    caps: BackendCapabilities = Depends(get_capabilities),
):
    return service.get_history(session, order_id, caps, source)
