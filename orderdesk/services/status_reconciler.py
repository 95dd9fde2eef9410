# orderdesk/services/status_reconciler.py
import logging
from datetime import date, datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from orderdesk.core.errors import BackendUnavailable
from orderdesk.core.notifier import StatusNotifier
from orderdesk.database import BackendCapabilities
from orderdesk.models.client_order import ClientOrder
from orderdesk.models.history import OrderHistory
from orderdesk.models.order_request import OrderRequest
from orderdesk.repositories.client_order_repo import ClientOrderRepository
from orderdesk.repositories.client_repo import ClientRepository
from orderdesk.repositories.history_repo import HistoryRepository
from orderdesk.repositories.order_request_repo import OrderRequestRepository
from orderdesk.schemas.order_request import PartialWriteWarning, StatusChangeResult
from orderdesk.services import order_rules
from orderdesk.services.order_views import (
    derived_order_read,
    mirror_order_read,
    request_read,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StatusReconciler:
    """
    Applies a status change to an order request and keeps the
    client_orders mirror in line with it.

    A change runs as a sequence of independently committed steps:

      1. order_requests status write  (authoritative; failure aborts)
      2. client_orders upsert/delete  (best-effort)
      3. order_history entry          (best-effort)
      4. client SMS                   (best-effort, optional)

    Steps 2-4 never undo step 1. Their failures are returned as
    PartialWriteWarning entries and logged.

    Status mapping for step 2:
      Pending/New                    -> mirror row deleted
      Approved/Rejected/Completed    -> mirror row updated in place, or
                                        inserted from the request
    """

    def __init__(
        self,
        request_repo: OrderRequestRepository,
        order_repo: ClientOrderRepository,
        history_repo: HistoryRepository,
        client_repo: ClientRepository,
        notifier: StatusNotifier | None = None,
    ):
        self.request_repo = request_repo
        self.order_repo = order_repo
        self.history_repo = history_repo
        self.client_repo = client_repo
        self.notifier = notifier

    def apply(
        self,
        session: Session,
        request: OrderRequest,
        target: str,
        actor: str,
        caps: BackendCapabilities,
        notes: str | None = None,
    ) -> StatusChangeResult:
        """
        Move `request` to `target` and reconcile the mirror.

        Re-applying the current status (New and Pending count as equal)
        skips steps 1, 3 and 4 but still reconciles the mirror row.

        Raises:
            BackendUnavailable: if the order_requests write fails.
        """
        warnings: list[PartialWriteWarning] = []
        changed = not order_rules.same_status(request.status, target)

        # 1) Request Store
        if changed:
            previous = request.status
            request.status = target
            request.updated_at = _utcnow()
            try:
                self.request_repo.update(session, request)
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                logger.error("Status write for order request %s failed: %s", request.id, exc)
                raise BackendUnavailable(
                    f"Could not update status of order request {request.id}"
                ) from exc
            logger.info(
                "Order request %s: %s -> %s (by %s)", request.id, previous, target, actor
            )

        # 2) Order Mirror Store
        mirror: ClientOrder | None = None
        if caps.client_orders_table:
            try:
                mirror = self._sync_mirror(session, request)
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                mirror = None
                warnings.append(self._warn("mirror", request.id, exc))

        if changed:
            # 3) History
            try:
                self.history_repo.create(
                    session,
                    OrderHistory(
                        request_id=request.id,
                        order_id=mirror.id if mirror is not None else None,
                        status=request.status,
                        changed_by=actor,
                        notes=notes,
                    ),
                )
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                warnings.append(self._warn("history", request.id, exc))

            # 4) Client notification
            if self.notifier is not None:
                warning = self._notify(session, request, mirror)
                if warning is not None:
                    warnings.append(warning)

        return self._build_result(session, request, mirror, warnings)

    # -------- Steps --------

    def _sync_mirror(self, session: Session, request: OrderRequest) -> ClientOrder | None:
        """
        Make the mirror row match the request. Flushes, never commits.
        """
        existing = self.order_repo.get_by_request_id(session, request.id)

        if order_rules.is_pending(request.status):
            if existing is not None:
                self.order_repo.delete(session, existing)
                logger.info(
                    "Removed client order %s for demoted request %s", existing.id, request.id
                )
            return None

        if existing is not None:
            if existing.status != request.status:
                existing.status = request.status
                existing.updated_at = _utcnow()
                self.order_repo.update(session, existing)
            return existing

        order_code = request.request_code or self._next_order_code(session)
        mirror = self.order_repo.create(
            session,
            ClientOrder(
                order_code=order_code,
                client_id=request.client_id,
                order_date=request.request_date,
                amount=request.total_amount,
                status=request.status,
                notes=request.notes,
                request_id=request.id,
            ),
        )
        logger.info("Created client order %s for request %s", mirror.id, request.id)
        return mirror

    def _next_order_code(self, session: Session) -> str:
        """
        Only used when a request without a request_code (legacy rows) is
        promoted; order_code is required on client_orders.
        """
        prefix = order_rules.code_prefix(order_rules.ORDER_CODE_PREFIX, date.today().year)
        return order_rules.next_code(prefix, self.order_repo.last_code_with_prefix(session, prefix))

    def _notify(
        self,
        session: Session,
        request: OrderRequest,
        mirror: ClientOrder | None,
    ) -> PartialWriteWarning | None:
        client = self.client_repo.get_by_id(session, request.client_id)
        if client is None:
            return None
        code = request.request_code or (mirror.order_code if mirror is not None else str(request.id))
        try:
            self.notifier.notify_status_change(client, code, request.status)
        except Exception as exc:
            return self._warn("notification", request.id, exc)
        return None

    def _warn(self, step: str, request_id: int, exc: Exception) -> PartialWriteWarning:
        logger.warning(
            "Order request %s saved, but the %s step failed: %s", request_id, step, exc
        )
        return PartialWriteWarning(step=step, detail=str(exc))

    # -------- Result --------

    def _build_result(
        self,
        session: Session,
        request: OrderRequest,
        mirror: ClientOrder | None,
        warnings: list[PartialWriteWarning],
    ) -> StatusChangeResult:
        items = self.request_repo.list_items(session, request.id)
        client = self.client_repo.get_by_id(session, request.client_id)
        client_name = client.name if client is not None else None

        order_view = None
        if mirror is not None:
            order_view = mirror_order_read(mirror, len(items), client_name)
        elif order_rules.is_promoted(request.status):
            order_view = derived_order_read(request, len(items), client_name)

        return StatusChangeResult(
            request=request_read(request, items, client_name),
            order=order_view,
            warnings=warnings,
        )
