# orderdesk/repositories/client_order_repo.py
from collections.abc import Iterable

from sqlmodel import Session, select

from orderdesk.models.client_order import ClientOrder


class ClientOrderRepository:
    """
    Data access layer for the optional client_orders mirror table.

    Callers must check BackendCapabilities.client_orders_table first;
    every method here assumes the table exists.
    """

    def list_all(
        self,
        session: Session,
        statuses: Iterable[str] | None = None,
        client_id: int | None = None,
    ) -> list[ClientOrder]:
        stmt = select(ClientOrder)
        if statuses is not None:
            stmt = stmt.where(ClientOrder.status.in_(list(statuses)))
        if client_id is not None:
            stmt = stmt.where(ClientOrder.client_id == client_id)
        stmt = stmt.order_by(ClientOrder.created_at.desc(), ClientOrder.id.desc())
        return list(session.exec(stmt).all())

    def get_by_id(self, session: Session, order_id: int) -> ClientOrder | None:
        return session.get(ClientOrder, order_id)

    def get_by_request_id(self, session: Session, request_id: int) -> ClientOrder | None:
        stmt = select(ClientOrder).where(ClientOrder.request_id == request_id)
        return session.exec(stmt).first()

    def create(self, session: Session, order: ClientOrder) -> ClientOrder:
        session.add(order)
        session.flush()
        session.refresh(order)
        return order

    def update(self, session: Session, order: ClientOrder) -> ClientOrder:
        session.add(order)
        session.flush()
        session.refresh(order)
        return order

    def delete(self, session: Session, order: ClientOrder) -> None:
        session.delete(order)
        session.flush()

    def last_code_with_prefix(self, session: Session, prefix: str) -> str | None:
        stmt = (
            select(ClientOrder.order_code)
            .where(ClientOrder.order_code.like(f"{prefix}%"))
            .order_by(ClientOrder.order_code.desc())
            .limit(1)
        )
        return session.exec(stmt).first()
