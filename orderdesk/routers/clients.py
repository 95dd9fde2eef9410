# orderdesk/routers/clients.py
from fastapi import APIRouter, Depends
from sqlmodel import Session

from orderdesk.core.auth import require_staff
from orderdesk.database import BackendCapabilities, get_capabilities, get_session
from orderdesk.repositories.client_order_repo import ClientOrderRepository
from orderdesk.repositories.client_repo import ClientRepository
from orderdesk.repositories.order_request_repo import OrderRequestRepository
from orderdesk.schemas.client import ClientEligibility
from orderdesk.services.client_service import ClientService

router = APIRouter(
    prefix="/clients",
    tags=["Clients"],
    dependencies=[Depends(require_staff)],
)

service = ClientService(ClientRepository(), OrderRequestRepository(), ClientOrderRepository())


@router.get("/eligibility", response_model=list[ClientEligibility])
def list_client_eligibility(
    session: Session = Depends(get_session),
    caps: BackendCapabilities = Depends(get_capabilities),
):
    """
    Clients with whether they can receive a new order request.

    A client is blocked while it is Inactive, has a Pending/New/Approved
    request, or has an Approved client order.
    """
    return service.list_eligibility(session, caps)
