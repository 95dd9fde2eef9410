# orderdesk/services/client_order_service.py
import logging
from datetime import date, datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from orderdesk.core.errors import (
    BackendUnavailable,
    InvalidTransition,
    NotFound,
    SourceRequired,
)
from orderdesk.database import BackendCapabilities
from orderdesk.models.client_order import ClientOrder
from orderdesk.models.history import OrderHistory
from orderdesk.repositories.client_order_repo import ClientOrderRepository
from orderdesk.repositories.client_repo import ClientRepository
from orderdesk.repositories.history_repo import HistoryRepository
from orderdesk.repositories.order_request_repo import OrderRequestRepository
from orderdesk.schemas.client_order import ClientOrderDetail, ClientOrderRead, OrderSource
from orderdesk.schemas.history import HistoryEntryRead
from orderdesk.schemas.order_request import (
    PartialWriteWarning,
    StatusChangeRequest,
    StatusChangeResult,
)
from orderdesk.schemas.status import PROMOTED_STATUSES
from orderdesk.services import order_rules
from orderdesk.services.order_views import (
    derived_order_read,
    mirror_order_read,
    order_detail,
)
from orderdesk.services.status_reconciler import StatusReconciler

logger = logging.getLogger(__name__)


class ClientOrderService:
    """
    Business logic for the client order view.

    The view merges the client_orders mirror table (when the backend has
    it) with promoted order requests. Mirror rows win over request rows
    for the same order code or originating request.
    """

    def __init__(
        self,
        request_repo: OrderRequestRepository,
        order_repo: ClientOrderRepository,
        history_repo: HistoryRepository,
        client_repo: ClientRepository,
        reconciler: StatusReconciler,
    ):
        self.request_repo = request_repo
        self.order_repo = order_repo
        self.history_repo = history_repo
        self.client_repo = client_repo
        self.reconciler = reconciler

    # -------- Reads --------

    def list_client_orders(
        self,
        session: Session,
        caps: BackendCapabilities,
        status: str | None = None,
        client_id: int | None = None,
    ) -> list[ClientOrderRead]:
        """
        Merged client order list, mirror rows first.

        Items are not loaded, only counted.
        """
        statuses = [status] if status else sorted(PROMOTED_STATUSES)

        mirror_rows = (
            self.order_repo.list_all(session, statuses=statuses, client_id=client_id)
            if caps.client_orders_table
            else []
        )
        requests = self.request_repo.list_by_statuses(session, statuses, client_id=client_id)

        request_ids = {r.id for r in requests}
        request_ids.update(o.request_id for o in mirror_rows if o.request_id is not None)
        counts = self.request_repo.count_items_for_requests(session, sorted(request_ids))

        client_ids = {r.client_id for r in requests} | {o.client_id for o in mirror_rows}
        names = self.client_repo.names_by_id(session, client_ids)

        mirror_views = [
            mirror_order_read(o, counts.get(o.request_id, 0), names.get(o.client_id))
            for o in mirror_rows
        ]
        derived_views = [
            derived_order_read(r, counts.get(r.id, 0), names.get(r.client_id))
            for r in requests
        ]
        return order_rules.merge_client_orders(mirror_views, derived_views)

    def get_client_order(
        self,
        session: Session,
        order_id: int,
        caps: BackendCapabilities,
        source: OrderSource | None = None,
    ) -> ClientOrderDetail:
        """
        Detail view with the originating request's items.

        - 404 if the id matches nothing in the chosen source.
        """
        if self._resolve_source(caps, source) == "mirror":
            order = self._get_mirror_or_404(session, order_id)
            items = (
                self.request_repo.list_items(session, order.request_id)
                if order.request_id is not None
                else []
            )
            client = self.client_repo.get_by_id(session, order.client_id)
            view = mirror_order_read(order, len(items), client.name if client else None)
            return order_detail(view, items)

        request = self.request_repo.get_by_id(session, order_id)
        if not request or not order_rules.is_promoted(request.status):
            raise NotFound(f"Client order {order_id} not found")
        items = self.request_repo.list_items(session, request.id)
        client = self.client_repo.get_by_id(session, request.client_id)
        view = derived_order_read(request, len(items), client.name if client else None)
        return order_detail(view, items)

    def generate_order_code(
        self,
        session: Session,
        caps: BackendCapabilities,
        year: int | None = None,
    ) -> str:
        """
        Next ORD-<year>-NNNNN code from the mirror table.
        """
        if not caps.client_orders_table:
            raise NotFound("Client orders table is not available")
        prefix = order_rules.code_prefix(order_rules.ORDER_CODE_PREFIX, year or date.today().year)
        return order_rules.next_code(prefix, self.order_repo.last_code_with_prefix(session, prefix))

    def get_history(
        self,
        session: Session,
        order_id: int,
        caps: BackendCapabilities,
        source: OrderSource | None = None,
    ) -> list[HistoryEntryRead]:
        if self._resolve_source(caps, source) == "mirror":
            order = self._get_mirror_or_404(session, order_id)
            entries = self.history_repo.list_for_order(session, order.id, order.request_id)
        else:
            if not self.request_repo.get_by_id(session, order_id):
                raise NotFound(f"Client order {order_id} not found")
            entries = self.history_repo.list_for_request(session, order_id)
        return [HistoryEntryRead.model_validate(e) for e in entries]

    # -------- Writes --------

    def change_client_order_status(
        self,
        session: Session,
        order_id: int,
        payload: StatusChangeRequest,
        actor: str,
        caps: BackendCapabilities,
        source: OrderSource | None = None,
    ) -> StatusChangeResult:
        """
        Change status from the client order side.

        Orders backed by a request go through StatusReconciler so both
        tables stay in line (moving to Pending hands the order back to the
        request list). Mirror rows without a request are updated in place
        and cannot go back to Pending.
        """
        actor = payload.changed_by or actor

        if self._resolve_source(caps, source) == "request":
            request = self.request_repo.get_by_id(session, order_id)
            if not request:
                raise NotFound(f"Client order {order_id} not found")
            return self.reconciler.apply(session, request, payload.status, actor, caps, payload.notes)

        order = self._get_mirror_or_404(session, order_id)
        if order.request_id is not None:
            request = self.request_repo.get_by_id(session, order.request_id)
            if request is not None:
                return self.reconciler.apply(
                    session, request, payload.status, actor, caps, payload.notes
                )

        return self._change_standalone(session, order, payload, actor)

    # -------- Helpers --------

    def _change_standalone(
        self,
        session: Session,
        order: ClientOrder,
        payload: StatusChangeRequest,
        actor: str,
    ) -> StatusChangeResult:
        if order_rules.is_pending(payload.status):
            raise InvalidTransition(
                f"Client order {order.order_code} has no order request to return to"
            )

        warnings: list[PartialWriteWarning] = []
        if order.status != payload.status:
            order.status = payload.status
            order.updated_at = datetime.now(timezone.utc)
            try:
                self.order_repo.update(session, order)
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                logger.error("Status write for client order %s failed: %s", order.id, exc)
                raise BackendUnavailable(
                    f"Could not update status of client order {order.id}"
                ) from exc

            try:
                self.history_repo.create(
                    session,
                    OrderHistory(
                        order_id=order.id,
                        status=payload.status,
                        changed_by=actor,
                        notes=payload.notes,
                    ),
                )
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                logger.warning("History entry for client order %s not written: %s", order.id, exc)
                warnings.append(PartialWriteWarning(step="history", detail=str(exc)))

        client = self.client_repo.get_by_id(session, order.client_id)
        return StatusChangeResult(
            request=None,
            order=mirror_order_read(order, 0, client.name if client else None),
            warnings=warnings,
        )

    def _get_mirror_or_404(self, session: Session, order_id: int) -> ClientOrder:
        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise NotFound(f"Client order {order_id} not found")
        return order

    @staticmethod
    def _resolve_source(caps: BackendCapabilities, source: OrderSource | None) -> OrderSource:
        """
        Which table `order_id` refers to.

        With the client_orders table, list rows carry ids from two tables,
        so callers must pass the row's `source`. Without it only
        request-derived orders exist.

        Raises:
            SourceRequired: table present and no source given.
            NotFound: source 'mirror' but the table is absent.
        """
        if not caps.client_orders_table:
            if source == "mirror":
                raise NotFound("Client orders table is not available")
            return "request"
        if source is None:
            raise SourceRequired()
        return source
