# orderdesk/repositories/client_repo.py
from sqlmodel import Session, select

from orderdesk.models.client import Client


class ClientRepository:
    """
    Read-only access to clients.
    """

    def get_by_id(self, session: Session, client_id: int) -> Client | None:
        return session.get(Client, client_id)

    def list_all(self, session: Session) -> list[Client]:
        stmt = select(Client).order_by(Client.name)
        return list(session.exec(stmt).all())

    def names_by_id(self, session: Session, client_ids: set[int]) -> dict[int, str]:
        if not client_ids:
            return {}
        stmt = select(Client.id, Client.name).where(Client.id.in_(list(client_ids)))
        return {client_id: name for client_id, name in session.exec(stmt).all()}
