# orderdesk/models/order_request.py
from datetime import datetime, date, timezone

from sqlmodel import SQLModel, Field


class OrderRequest(SQLModel, table=True):
    """
    A client's ask for printed goods, editable while Pending/New.

    Columns:
      - id, request_code (REQ-<year>-NNNNN), client_id, request_date, type,
        status, total_amount, notes, created_at, updated_at

    total_amount is always the sum of the items' total_price.
    """

    __tablename__ = "order_requests"

    id: int | None = Field(default=None, primary_key=True)

    request_code: str | None = Field(
        default=None,
        unique=True,
        index=True,
        description="Human readable code, REQ-<year>-NNNNN",
    )

    client_id: int = Field(
        foreign_key="clients.id",
        index=True,
    )

    request_date: date = Field(description="Request date")

    # Category label, usually the first item's product name
    type: str = Field(default="Other")

    # New | Pending | Approved | Rejected | Completed
    status: str = Field(
        default="Pending",
        index=True,
        description="Order request status lifecycle",
    )

    total_amount: float = Field(
        default=0.0,
        description="Sum of item total_price",
    )

    notes: str | None = Field(default=None)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Last update timestamp (UTC)",
    )


class OrderRequestItem(SQLModel, table=True):
    """
    Line item inside an order request.

    product_id is a catalog id, or a negative synthetic id for ad-hoc
    products typed in by staff.
    """

    __tablename__ = "order_request_items"

    id: int | None = Field(default=None, primary_key=True)

    request_id: int = Field(
        foreign_key="order_requests.id",
        index=True,
    )

    product_id: int = Field(description="Catalog id, negative for ad-hoc products")
    product_name: str = Field(description="Product name at time of request")

    quantity: int = Field(
        gt=0,
        description="Quantity requested (>=1)",
    )
    unit_price: float = Field(description="Unit price at time of request")
    total_price: float = Field(description="unit_price * quantity")

    serial_start: str | None = Field(default=None)
    serial_end: str | None = Field(default=None)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
