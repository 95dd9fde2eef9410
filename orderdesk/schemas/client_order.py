# orderdesk/schemas/client_order.py
from datetime import date, datetime
from typing import Literal

from sqlmodel import SQLModel

from orderdesk.schemas.status import OrderStatus

# Where a client order view came from: the mirror table, or a promoted
# order request reshaped on the fly.
OrderSource = Literal["mirror", "request"]


class ClientOrderRead(SQLModel):
    """
    Client order as shown in list views.

    `id` is a client_orders id when source == "mirror" and an
    order_requests id when source == "request".
    """

    id: int
    source: OrderSource
    order_code: str | None
    client_id: int
    client_name: str | None = None
    order_date: date
    amount: float
    status: OrderStatus
    notes: str | None = None
    request_id: int | None = None
    item_count: int = 0
    created_at: datetime
    updated_at: datetime


class ClientOrderItemRead(SQLModel):
    product_id: int
    product_name: str
    quantity: int
    unit_price: float
    total_price: float
    serial_start: str | None = None
    serial_end: str | None = None


class ClientOrderDetail(ClientOrderRead):
    """
    Detail view including the originating request's items.
    """

    items: list[ClientOrderItemRead] = []
