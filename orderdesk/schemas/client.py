# orderdesk/schemas/client.py
from sqlmodel import SQLModel

from orderdesk.schemas.status import ClientStatus


class ClientStanding(SQLModel):
    """
    Whether a client may receive a new order request, with the label the
    request form shows next to the client's name.
    """

    has_ongoing_orders: bool
    status_text: str


class ClientEligibility(ClientStanding):
    client_id: int
    name: str
    status: ClientStatus
    eligible: bool
