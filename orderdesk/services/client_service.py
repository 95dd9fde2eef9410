# orderdesk/services/client_service.py
from sqlmodel import Session

from orderdesk.database import BackendCapabilities
from orderdesk.repositories.client_order_repo import ClientOrderRepository
from orderdesk.repositories.client_repo import ClientRepository
from orderdesk.repositories.order_request_repo import OrderRequestRepository
from orderdesk.schemas.client import ClientEligibility
from orderdesk.schemas.status import PENDING_STATUSES, PROMOTED_STATUSES
from orderdesk.services import order_rules


class ClientService:
    """
    Which clients may receive a new order request.
    """

    def __init__(
        self,
        client_repo: ClientRepository,
        request_repo: OrderRequestRepository,
        order_repo: ClientOrderRepository,
    ):
        self.client_repo = client_repo
        self.request_repo = request_repo
        self.order_repo = order_repo

    def list_eligibility(
        self,
        session: Session,
        caps: BackendCapabilities,
    ) -> list[ClientEligibility]:
        """
        Every client with its standing, recomputed from current rows.

        eligible = Active and no in-flight order.
        """
        clients = self.client_repo.list_all(session)
        requests = self.request_repo.list_by_statuses(
            session, PENDING_STATUSES | PROMOTED_STATUSES
        )
        orders = self.order_repo.list_all(session) if caps.client_orders_table else []

        result: list[ClientEligibility] = []
        for client in clients:
            standing = order_rules.client_standing(client.id, requests, orders)
            result.append(
                ClientEligibility(
                    client_id=client.id,
                    name=client.name,
                    status=client.status,
                    eligible=client.status != "Inactive" and not standing.has_ongoing_orders,
                    has_ongoing_orders=standing.has_ongoing_orders,
                    status_text=standing.status_text,
                )
            )
        return result
