# orderdesk/repositories/history_repo.py
from sqlalchemy import or_
from sqlmodel import Session, select

from orderdesk.models.history import OrderHistory


class HistoryRepository:
    """
    Append-only access to order_history. Results are newest first.
    """

    def create(self, session: Session, entry: OrderHistory) -> OrderHistory:
        session.add(entry)
        session.flush()
        session.refresh(entry)
        return entry

    def list_for_request(self, session: Session, request_id: int) -> list[OrderHistory]:
        stmt = (
            select(OrderHistory)
            .where(OrderHistory.request_id == request_id)
            .order_by(OrderHistory.changed_at.desc(), OrderHistory.id.desc())
        )
        return list(session.exec(stmt).all())

    def list_for_order(
        self,
        session: Session,
        order_id: int,
        request_id: int | None = None,
    ) -> list[OrderHistory]:
        """
        Entries of a mirror row, plus those of its originating request.
        """
        condition = OrderHistory.order_id == order_id
        if request_id is not None:
            condition = or_(condition, OrderHistory.request_id == request_id)
        stmt = (
            select(OrderHistory)
            .where(condition)
            .order_by(OrderHistory.changed_at.desc(), OrderHistory.id.desc())
        )
        return list(session.exec(stmt).all())

    def delete_for_request(self, session: Session, request_id: int) -> None:
        for entry in self.list_for_request(session, request_id):
            session.delete(entry)
        session.flush()
