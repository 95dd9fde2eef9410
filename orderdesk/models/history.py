# orderdesk/models/history.py
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class OrderHistory(SQLModel, table=True):
    """
    Append-only audit record of a status change.

    Linked to an order request, a client order, or both. order_id has no
    foreign key because the client_orders table is optional.
    """

    __tablename__ = "order_history"

    id: int | None = Field(default=None, primary_key=True)

    request_id: int | None = Field(default=None, index=True)
    order_id: int | None = Field(default=None, index=True)

    status: str
    changed_by: str = Field(default="System")
    notes: str | None = Field(default=None)

    changed_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        index=True,
        description="When the change happened (UTC)",
    )
