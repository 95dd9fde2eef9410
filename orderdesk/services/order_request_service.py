# orderdesk/services/order_request_service.py
import logging
from datetime import date, datetime, timezone

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session

from orderdesk.core.errors import BackendUnavailable, InvalidTransition, NotFound
from orderdesk.database import BackendCapabilities
from orderdesk.models.history import OrderHistory
from orderdesk.models.order_request import OrderRequest, OrderRequestItem
from orderdesk.repositories.client_order_repo import ClientOrderRepository
from orderdesk.repositories.client_repo import ClientRepository
from orderdesk.repositories.history_repo import HistoryRepository
from orderdesk.repositories.order_request_repo import OrderRequestRepository
from orderdesk.schemas.history import HistoryEntryRead
from orderdesk.schemas.order_request import (
    OrderRequestCreate,
    OrderRequestItemIn,
    OrderRequestRead,
    OrderRequestUpdate,
    StatusChangeRequest,
    StatusChangeResult,
)
from orderdesk.schemas.status import PENDING_STATUSES
from orderdesk.services import order_rules
from orderdesk.services.order_views import request_read
from orderdesk.services.status_reconciler import StatusReconciler

logger = logging.getLogger(__name__)

# Request statuses that can make a client in-flight
IN_FLIGHT_REQUEST_STATUSES = PENDING_STATUSES | {"Approved"}


class OrderRequestService:
    """
    Business logic for order requests.

    Responsibilities:
      - Submit requests (client gate, code allocation, totals)
      - Edit Pending/New requests (items replaced wholesale)
      - Status changes via StatusReconciler
      - Pending list with items, history, deletion
    """

    def __init__(
        self,
        request_repo: OrderRequestRepository,
        order_repo: ClientOrderRepository,
        history_repo: HistoryRepository,
        client_repo: ClientRepository,
        reconciler: StatusReconciler,
        max_code_attempts: int = 3,
    ):
        self.request_repo = request_repo
        self.order_repo = order_repo
        self.history_repo = history_repo
        self.client_repo = client_repo
        self.reconciler = reconciler
        self.max_code_attempts = max_code_attempts

    # -------- Reads --------

    def list_pending_requests(self, session: Session) -> list[OrderRequestRead]:
        """
        Pending/New requests with items attached.

        Items for all requests are loaded in one query and partitioned here.
        """
        requests = self.request_repo.list_by_statuses(session, PENDING_STATUSES)
        ids = [r.id for r in requests]

        items_by_request: dict[int, list[OrderRequestItem]] = {rid: [] for rid in ids}
        for item in self.request_repo.list_items_for_requests(session, ids):
            items_by_request[item.request_id].append(item)

        names = self.client_repo.names_by_id(session, {r.client_id for r in requests})
        return [
            request_read(r, items_by_request[r.id], names.get(r.client_id))
            for r in requests
        ]

    def get_request(self, session: Session, request_id: int) -> OrderRequestRead:
        """
        Get any order request with items.

        - 404 if not found.
        """
        request = self._get_or_404(session, request_id)
        items = self.request_repo.list_items(session, request.id)
        client = self.client_repo.get_by_id(session, request.client_id)
        return request_read(request, items, client.name if client else None)

    def generate_request_code(self, session: Session, year: int | None = None) -> str:
        """
        Next REQ-<year>-NNNNN code.

        Only a preview: nothing is reserved, so two callers may get the
        same value. create_request allocates the real code.
        """
        prefix = order_rules.code_prefix(
            order_rules.REQUEST_CODE_PREFIX, year or date.today().year
        )
        last = self.request_repo.last_code_with_prefix(session, prefix)
        return order_rules.next_code(prefix, last)

    def get_history(self, session: Session, request_id: int) -> list[HistoryEntryRead]:
        self._get_or_404(session, request_id)
        entries = self.history_repo.list_for_request(session, request_id)
        return [HistoryEntryRead.model_validate(e) for e in entries]

    # -------- Writes --------

    def create_request(
        self,
        session: Session,
        payload: OrderRequestCreate,
        actor: str,
        caps: BackendCapabilities,
    ) -> OrderRequestRead:
        """
        Submit a new order request.

        Steps:
          1. Client must exist, be Active and not in-flight.
          2. Build items (total_price = unit_price * quantity).
          3. Insert request (status='Pending') with a fresh code; retry
             with the next code if another request took it meanwhile.
          4. Insert items, commit.
          5. Record history (best-effort).
        """
        client = self._ensure_client_can_order(session, payload.client_id, caps)

        attempt = 0
        while True:
            attempt += 1
            items = self._build_items(payload.items)
            request = OrderRequest(
                request_code=self.generate_request_code(session),
                client_id=client.id,
                request_date=payload.request_date or date.today(),
                type=payload.type or items[0].product_name,
                status="Pending",
                total_amount=order_rules.compute_total(it.total_price for it in items),
                notes=payload.notes,
            )
            try:
                request = self.request_repo.create(session, request)
                items = self.request_repo.replace_items(session, request.id, items)
                session.commit()
                break
            except IntegrityError as exc:
                session.rollback()
                if attempt >= self.max_code_attempts:
                    raise BackendUnavailable("Could not allocate a request code") from exc
                logger.warning("Request code collision on attempt %s, retrying", attempt)
            except SQLAlchemyError as exc:
                session.rollback()
                logger.error("Creating order request failed: %s", exc)
                raise BackendUnavailable("Could not create order request") from exc

        logger.info(
            "Created order request %s (%s) for client %s",
            request.id, request.request_code, client.id,
        )
        self._record_history(session, request.id, "Pending", actor, "Request submitted")

        items = self.request_repo.list_items(session, request.id)
        return request_read(request, items, client.name)

    def update_request(
        self,
        session: Session,
        request_id: int,
        payload: OrderRequestUpdate,
        caps: BackendCapabilities,
    ) -> OrderRequestRead:
        """
        Edit a Pending/New request. Items are deleted and re-inserted and
        total_amount is recomputed.

        Raises:
            NotFound: unknown request or client.
            InvalidTransition: request already decided, client inactive,
                or the new client is in-flight elsewhere.
        """
        request = self._get_or_404(session, request_id)

        if not order_rules.is_pending(request.status):
            raise InvalidTransition(
                f"Order request {request.request_code or request.id} is {request.status}; "
                "only Pending requests can be edited"
            )

        client_id = payload.client_id or request.client_id
        client = self._ensure_client_can_order(
            session, client_id, caps, exclude_request_id=request.id
        )

        items = self._build_items(payload.items)
        request.client_id = client.id
        if payload.request_date is not None:
            request.request_date = payload.request_date
        request.type = payload.type or items[0].product_name
        request.notes = payload.notes
        request.total_amount = order_rules.compute_total(it.total_price for it in items)
        request.updated_at = datetime.now(timezone.utc)

        try:
            self.request_repo.update(session, request)
            self.request_repo.replace_items(session, request.id, items)
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("Updating order request %s failed: %s", request_id, exc)
            raise BackendUnavailable(f"Could not update order request {request_id}") from exc

        items = self.request_repo.list_items(session, request.id)
        return request_read(request, items, client.name)

    def change_request_status(
        self,
        session: Session,
        request_id: int,
        payload: StatusChangeRequest,
        actor: str,
        caps: BackendCapabilities,
    ) -> StatusChangeResult:
        request = self._get_or_404(session, request_id)
        return self.reconciler.apply(
            session,
            request,
            payload.status,
            payload.changed_by or actor,
            caps,
            notes=payload.notes,
        )

    def delete_request(
        self,
        session: Session,
        request_id: int,
        caps: BackendCapabilities,
    ) -> None:
        """
        Delete a request with its items, history and mirror row.
        """
        request = self._get_or_404(session, request_id)
        try:
            if caps.client_orders_table:
                mirror = self.order_repo.get_by_request_id(session, request.id)
                if mirror is not None:
                    self.order_repo.delete(session, mirror)
            self.history_repo.delete_for_request(session, request.id)
            self.request_repo.delete(session, request)
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("Deleting order request %s failed: %s", request_id, exc)
            raise BackendUnavailable(f"Could not delete order request {request_id}") from exc
        logger.info("Deleted order request %s", request_id)

    # -------- Helpers --------

    def _get_or_404(self, session: Session, request_id: int) -> OrderRequest:
        request = self.request_repo.get_by_id(session, request_id)
        if not request:
            raise NotFound(f"Order request {request_id} not found")
        return request

    def _ensure_client_can_order(
        self,
        session: Session,
        client_id: int,
        caps: BackendCapabilities,
        exclude_request_id: int | None = None,
    ):
        client = self.client_repo.get_by_id(session, client_id)
        if not client:
            raise NotFound(f"Client {client_id} not found")

        if client.status == "Inactive":
            raise InvalidTransition(f"Client {client.name} is inactive")

        requests = self.request_repo.list_by_statuses(
            session, IN_FLIGHT_REQUEST_STATUSES, client_id=client.id
        )
        orders = (
            self.order_repo.list_all(session, statuses=["Approved"], client_id=client.id)
            if caps.client_orders_table
            else []
        )
        if client.id in order_rules.in_flight_clients(requests, orders, exclude_request_id):
            raise InvalidTransition(f"Client {client.name} already has an order in progress")
        return client

    def _build_items(self, items: list[OrderRequestItemIn]) -> list[OrderRequestItem]:
        return [
            OrderRequestItem(
                request_id=0,  # set by replace_items
                product_id=it.product_id,
                product_name=it.product_name,
                quantity=it.quantity,
                unit_price=it.unit_price,
                total_price=order_rules.line_total(it.unit_price, it.quantity),
                serial_start=it.serial_start,
                serial_end=it.serial_end,
            )
            for it in items
        ]

    def _record_history(
        self,
        session: Session,
        request_id: int,
        status: str,
        actor: str,
        notes: str | None,
    ) -> None:
        try:
            self.history_repo.create(
                session,
                OrderHistory(request_id=request_id, status=status, changed_by=actor, notes=notes),
            )
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.warning("History entry for order request %s not written: %s", request_id, exc)
