# orderdesk/schemas/order_request.py
from datetime import date, datetime
from typing import Literal

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

from orderdesk.schemas.client_order import ClientOrderRead
from orderdesk.schemas.status import OrderStatus, TargetStatus, normalize_status


class OrderRequestItemIn(SQLModel):
    """
    Line item as submitted by staff.

    total_price is always recomputed server-side, so anything the UI
    sends for it is ignored.
    """

    model_config = ConfigDict(extra="ignore")

    product_id: int
    product_name: str
    quantity: int = Field(ge=1)
    unit_price: float = Field(ge=0)
    serial_start: str | None = None
    serial_end: str | None = None

    @field_validator("product_name")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("product_name cannot be empty")
        return v

    @field_validator("product_id")
    @classmethod
    def not_zero(cls, v: int) -> int:
        # 0 is the UI's "nothing selected" placeholder
        if v == 0:
            raise ValueError("product_id is required")
        return v

    @field_validator("serial_start", "serial_end")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None


class OrderRequestCreate(SQLModel):
    """
    Payload for submitting a new order request.

    Backend derives:
      - request_code (REQ-<year>-NNNNN)
      - status = 'Pending'
      - total_amount from items
      - type from the first item when not given
    """

    model_config = ConfigDict(extra="forbid")

    client_id: int
    request_date: date | None = None
    type: str | None = None
    notes: str | None = None
    items: list[OrderRequestItemIn] = Field(min_length=1)

    @field_validator("notes", "type")
    @classmethod
    def normalize_text(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None


class OrderRequestUpdate(OrderRequestCreate):
    """
    Payload for editing a Pending/New request. Items replace the
    existing ones entirely.
    """

    client_id: int | None = None


class OrderRequestItemRead(SQLModel):
    id: int
    request_id: int
    product_id: int
    product_name: str
    quantity: int
    unit_price: float
    total_price: float
    serial_start: str | None = None
    serial_end: str | None = None


class OrderRequestRead(SQLModel):
    """
    Order request with its items and the client's name.
    """

    id: int
    request_code: str | None
    client_id: int
    client_name: str | None = None
    request_date: date
    type: str
    status: OrderStatus
    total_amount: float
    notes: str | None = None
    created_at: datetime
    updated_at: datetime
    items: list[OrderRequestItemRead] = []


class StatusChangeRequest(SQLModel):
    """
    Payload to move a request/order to another status.

    "New" is accepted and stored as "Pending".
    """

    model_config = ConfigDict(extra="forbid")

    status: TargetStatus
    changed_by: str | None = None
    notes: str | None = None

    @field_validator("status", mode="before")
    @classmethod
    def canonical_status(cls, v):
        return normalize_status(v)


class PartialWriteWarning(SQLModel):
    """
    A secondary write failed after the order request was saved.

    The status change itself is still considered successful.
    """

    step: Literal["mirror", "history", "notification"]
    detail: str


class StatusChangeResult(SQLModel):
    """
    Outcome of a status change.

    request: the order request after the change (None only for client
             orders that have no originating request).
    order:   the client order view when the status is promoted; the mirror
             row if present, else the request reshaped.
    """

    request: OrderRequestRead | None = None
    order: ClientOrderRead | None = None
    warnings: list[PartialWriteWarning] = []


class NextCodeRead(SQLModel):
    code: str
