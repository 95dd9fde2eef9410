# orderdesk/models/client.py
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Client(SQLModel, table=True):
    """
    Printing client.

    Owned by the client management screens; this service only reads it
    to gate order submissions (status must be 'Active') and to address
    notifications.
    """

    __tablename__ = "clients"

    id: int | None = Field(default=None, primary_key=True)

    name: str = Field(index=True)
    contact_person: str | None = Field(default=None)
    email: str | None = Field(default=None)
    phone: str | None = Field(default=None)

    # Active | Inactive
    status: str = Field(
        default="Active",
        index=True,
        description="Inactive clients cannot receive new order requests",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
