# orderdesk/services/order_rules.py
"""
Pure business rules for order requests and client orders.

Nothing in here touches the database; services fetch rows and pass them
in, which keeps these rules testable on plain objects.
"""
from collections.abc import Iterable
from typing import Protocol

from orderdesk.schemas.client import ClientStanding
from orderdesk.schemas.client_order import ClientOrderRead
from orderdesk.schemas.status import PENDING_STATUSES, PROMOTED_STATUSES

REQUEST_CODE_PREFIX = "REQ"
ORDER_CODE_PREFIX = "ORD"
CODE_DIGITS = 5


class _HasClientStatus(Protocol):
    client_id: int
    status: str


# -------- Status predicates --------


def is_pending(status: str) -> bool:
    """Pending and its legacy spelling New."""
    return status in PENDING_STATUSES


def is_promoted(status: str) -> bool:
    return status in PROMOTED_STATUSES


def same_status(current: str, target: str) -> bool:
    """
    Status equality where New and Pending count as the same value.
    """
    if is_pending(current) and is_pending(target):
        return True
    return current == target


# -------- Totals --------


def line_total(unit_price: float, quantity: int) -> float:
    return round(unit_price * quantity, 2)


def compute_total(line_totals: Iterable[float]) -> float:
    return round(sum(line_totals), 2)


# -------- Codes --------


def code_prefix(kind: str, year: int) -> str:
    """
    "REQ-2024-" / "ORD-2024-".
    """
    return f"{kind}-{year}-"


def next_code(prefix: str, last_code: str | None) -> str:
    """
    Increment the numeric suffix of the highest existing code.

    Not safe against concurrent callers: two callers reading the same
    last_code produce the same result.
    """
    next_number = 1
    if last_code:
        try:
            next_number = int(last_code[len(prefix):]) + 1
        except ValueError:
            next_number = 1
    return f"{prefix}{next_number:0{CODE_DIGITS}d}"


# -------- Client eligibility --------


def in_flight_clients(
    requests: Iterable[_HasClientStatus],
    orders: Iterable[_HasClientStatus],
    exclude_request_id: int | None = None,
) -> set[int]:
    """
    Clients that may not receive a new order request.

    In-flight means a request in Pending/New/Approved, or a client order
    in Approved. Completed and Rejected history does not block.
    """
    blocked: set[int] = set()
    for req in requests:
        if exclude_request_id is not None and getattr(req, "id", None) == exclude_request_id:
            continue
        if is_pending(req.status) or req.status == "Approved":
            blocked.add(req.client_id)
    for order in orders:
        if order.status == "Approved":
            blocked.add(order.client_id)
    return blocked


def client_standing(
    client_id: int,
    requests: Iterable[_HasClientStatus],
    orders: Iterable[_HasClientStatus],
) -> ClientStanding:
    """
    Standing of one client, with the label shown in the request form.
    """
    req_statuses = {r.status for r in requests if r.client_id == client_id}
    order_statuses = {o.status for o in orders if o.client_id == client_id}
    all_statuses = req_statuses | order_statuses

    if req_statuses & PENDING_STATUSES:
        return ClientStanding(has_ongoing_orders=True, status_text="Has pending request")
    if "Approved" in all_statuses:
        return ClientStanding(has_ongoing_orders=True, status_text="Has approved order")
    if "Completed" in all_statuses:
        return ClientStanding(
            has_ongoing_orders=False,
            status_text="Has completed orders (can place new orders)",
        )
    if "Rejected" in all_statuses:
        return ClientStanding(
            has_ongoing_orders=False,
            status_text="Has rejected orders (can place new orders)",
        )
    return ClientStanding(has_ongoing_orders=False, status_text="No active orders")


# -------- Client order view --------


def merge_client_orders(
    mirror_rows: Iterable[ClientOrderRead],
    derived_rows: Iterable[ClientOrderRead],
) -> list[ClientOrderRead]:
    """
    Mirror rows first, then request-derived rows not already present.

    A derived row is dropped when a kept row has the same order code or
    points back at the same request.
    """
    merged: list[ClientOrderRead] = []
    seen_codes: set[str] = set()
    seen_requests: set[int] = set()

    for row in list(mirror_rows) + list(derived_rows):
        if row.order_code and row.order_code in seen_codes:
            continue
        if row.request_id is not None and row.request_id in seen_requests:
            continue
        if row.order_code:
            seen_codes.add(row.order_code)
        if row.request_id is not None:
            seen_requests.add(row.request_id)
        merged.append(row)

    return merged
