# orderdesk/models/client_order.py
from datetime import datetime, date, timezone

from sqlmodel import SQLModel, Field


class ClientOrder(SQLModel, table=True):
    """
    Promoted (Approved / Rejected / Completed) form of an order request.

    Optional mirror table: some deployments do not have it, in which case
    promoted order_requests rows are used as the client order view.

    request_id points back at the originating order request; at most one
    mirror row exists per request.
    """

    __tablename__ = "client_orders"

    id: int | None = Field(default=None, primary_key=True)

    order_code: str = Field(
        unique=True,
        index=True,
        description="Copied from the request code, or ORD-<year>-NNNNN",
    )

    client_id: int = Field(
        foreign_key="clients.id",
        index=True,
    )

    order_date: date = Field(description="Order date (copied from the request)")

    amount: float = Field(description="Order amount (copied from the request)")

    # Approved | Rejected | Completed
    status: str = Field(index=True)

    notes: str | None = Field(default=None)

    request_id: int | None = Field(
        default=None,
        foreign_key="order_requests.id",
        unique=True,
        index=True,
        description="Originating order request",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Last update timestamp (UTC)",
    )
