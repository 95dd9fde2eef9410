# orderdesk/repositories/order_request_repo.py
from collections.abc import Iterable

from sqlalchemy import func
from sqlmodel import Session, select

from orderdesk.models.order_request import OrderRequest, OrderRequestItem


class OrderRequestRepository:
    """
    Data access layer for order_requests and order_request_items.

    NOTE:
      - No commits here; a status change spans several writes and the
        service decides where each step is committed.
    """

    # ---- Requests ----

    def list_by_statuses(
        self,
        session: Session,
        statuses: Iterable[str],
        client_id: int | None = None,
    ) -> list[OrderRequest]:
        stmt = select(OrderRequest).where(OrderRequest.status.in_(list(statuses)))
        if client_id is not None:
            stmt = stmt.where(OrderRequest.client_id == client_id)
        stmt = stmt.order_by(OrderRequest.created_at.desc(), OrderRequest.id.desc())
        return list(session.exec(stmt).all())

    def get_by_id(self, session: Session, request_id: int) -> OrderRequest | None:
        return session.get(OrderRequest, request_id)

    def create(self, session: Session, request: OrderRequest) -> OrderRequest:
        """
        Insert a request without committing, but ensure id is populated.
        """
        session.add(request)
        session.flush()  # Assign PK
        session.refresh(request)
        return request

    def update(self, session: Session, request: OrderRequest) -> OrderRequest:
        session.add(request)
        session.flush()
        session.refresh(request)
        return request

    def delete(self, session: Session, request: OrderRequest) -> None:
        for item in self.list_items(session, request.id):
            session.delete(item)
        session.flush()
        session.delete(request)
        session.flush()

    def last_code_with_prefix(self, session: Session, prefix: str) -> str | None:
        """
        Highest request_code starting with `prefix`.

        Codes are zero-padded, so string order matches numeric order.
        """
        stmt = (
            select(OrderRequest.request_code)
            .where(OrderRequest.request_code.like(f"{prefix}%"))
            .order_by(OrderRequest.request_code.desc())
            .limit(1)
        )
        return session.exec(stmt).first()

    # ---- Items ----

    def list_items(self, session: Session, request_id: int) -> list[OrderRequestItem]:
        stmt = (
            select(OrderRequestItem)
            .where(OrderRequestItem.request_id == request_id)
            .order_by(OrderRequestItem.id)
        )
        return list(session.exec(stmt).all())

    def list_items_for_requests(
        self,
        session: Session,
        request_ids: list[int],
    ) -> list[OrderRequestItem]:
        """
        Items of several requests in one query; callers partition by
        request_id.
        """
        if not request_ids:
            return []
        stmt = (
            select(OrderRequestItem)
            .where(OrderRequestItem.request_id.in_(request_ids))
            .order_by(OrderRequestItem.request_id, OrderRequestItem.id)
        )
        return list(session.exec(stmt).all())

    def count_items_for_requests(
        self,
        session: Session,
        request_ids: list[int],
    ) -> dict[int, int]:
        if not request_ids:
            return {}
        stmt = (
            select(OrderRequestItem.request_id, func.count(OrderRequestItem.id))
            .where(OrderRequestItem.request_id.in_(request_ids))
            .group_by(OrderRequestItem.request_id)
        )
        return {request_id: int(count) for request_id, count in session.exec(stmt).all()}

    def replace_items(
        self,
        session: Session,
        request_id: int,
        items: list[OrderRequestItem],
    ) -> list[OrderRequestItem]:
        """
        Delete every item of the request, then insert `items`.
        """
        for old in self.list_items(session, request_id):
            session.delete(old)
        session.flush()

        for item in items:
            item.request_id = request_id
        session.add_all(items)
        session.flush()
        for item in items:
            session.refresh(item)
        return items
