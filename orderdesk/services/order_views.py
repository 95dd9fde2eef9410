# orderdesk/services/order_views.py
"""
DTO builders shared by the order request and client order services.
"""
from orderdesk.models.client_order import ClientOrder
from orderdesk.models.order_request import OrderRequest, OrderRequestItem
from orderdesk.schemas.client_order import (
    ClientOrderDetail,
    ClientOrderItemRead,
    ClientOrderRead,
)
from orderdesk.schemas.order_request import OrderRequestItemRead, OrderRequestRead


def request_read(
    request: OrderRequest,
    items: list[OrderRequestItem],
    client_name: str | None = None,
) -> OrderRequestRead:
    return OrderRequestRead(
        id=request.id,
        request_code=request.request_code,
        client_id=request.client_id,
        client_name=client_name,
        request_date=request.request_date,
        type=request.type,
        status=request.status,
        total_amount=request.total_amount,
        notes=request.notes,
        created_at=request.created_at,
        updated_at=request.updated_at,
        items=[
            OrderRequestItemRead(
                id=it.id,
                request_id=it.request_id,
                product_id=it.product_id,
                product_name=it.product_name,
                quantity=it.quantity,
                unit_price=it.unit_price,
                total_price=it.total_price,
                serial_start=it.serial_start,
                serial_end=it.serial_end,
            )
            for it in items
        ],
    )


def mirror_order_read(
    order: ClientOrder,
    item_count: int = 0,
    client_name: str | None = None,
) -> ClientOrderRead:
    """
    Client order view of a client_orders row.
    """
    return ClientOrderRead(
        id=order.id,
        source="mirror",
        order_code=order.order_code,
        client_id=order.client_id,
        client_name=client_name,
        order_date=order.order_date,
        amount=order.amount,
        status=order.status,
        notes=order.notes,
        request_id=order.request_id,
        item_count=item_count,
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


def derived_order_read(
    request: OrderRequest,
    item_count: int = 0,
    client_name: str | None = None,
) -> ClientOrderRead:
    """
    Client order view synthesized from a promoted order request.
    """
    return ClientOrderRead(
        id=request.id,
        source="request",
        order_code=request.request_code,
        client_id=request.client_id,
        client_name=client_name,
        order_date=request.request_date,
        amount=request.total_amount,
        status=request.status,
        notes=request.notes,
        request_id=request.id,
        item_count=item_count,
        created_at=request.created_at,
        updated_at=request.updated_at,
    )


def order_detail(
    view: ClientOrderRead,
    items: list[OrderRequestItem],
) -> ClientOrderDetail:
    return ClientOrderDetail(
        **view.model_dump(exclude={"item_count"}),
        item_count=len(items),
        items=[
            ClientOrderItemRead(
                product_id=it.product_id,
                product_name=it.product_name,
                quantity=it.quantity,
                unit_price=it.unit_price,
                total_price=it.total_price,
                serial_start=it.serial_start,
                serial_end=it.serial_end,
            )
            for it in items
        ],
    )
