# orderdesk/schemas/history.py
from datetime import datetime

from sqlmodel import SQLModel


class HistoryEntryRead(SQLModel):
    """
    One audit entry, returned newest first.
    """

    id: int
    request_id: int | None
    order_id: int | None
    status: str
    changed_by: str
    notes: str | None
    changed_at: datetime
