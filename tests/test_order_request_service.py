"""
Order request lifecycle: submission, editing, codes, deletion.
"""
from datetime import date

import pytest
from sqlmodel import select

from orderdesk.core.errors import BackendUnavailable, InvalidTransition, NotFound
from orderdesk.models.history import OrderHistory
from orderdesk.models.order_request import OrderRequest
from orderdesk.schemas.order_request import OrderRequestUpdate
from tests.factories import MIRROR, Services, request_payload, to_status

YEAR = date.today().year


def test_create_request_computes_totals_and_code(session, services, make_client):
    """Submitting (3 x 1000, 1 x 500) yields 3500 and status Pending."""
    client = make_client()

    created = services.requests.create_request(session, request_payload(client.id), "Admin", MIRROR)

    assert created.status == "Pending"
    assert created.total_amount == 3500
    assert created.request_code == f"REQ-{YEAR}-00001"
    assert created.client_name == "Acme Printing Co."
    assert created.type == "Yearbooks"
    assert [it.total_price for it in created.items] == [3000, 500]
    assert created.items[1].product_id == -17

    history = services.requests.get_history(session, created.id)
    assert [(h.status, h.changed_by, h.notes) for h in history] == [
        ("Pending", "Admin", "Request submitted")
    ]


def test_created_request_is_listed_as_pending(session, services, make_client):
    client = make_client()
    created = services.requests.create_request(session, request_payload(client.id), "Admin", MIRROR)

    pending = services.requests.list_pending_requests(session)

    assert [r.id for r in pending] == [created.id]
    assert len(pending[0].items) == 2


def test_pending_list_includes_legacy_new_status(session, services, make_client):
    client = make_client()
    session.add(OrderRequest(client_id=client.id, request_date=date(2023, 5, 2), status="New"))
    session.commit()

    pending = services.requests.list_pending_requests(session)

    assert [r.status for r in pending] == ["New"]
    assert pending[0].items == []


def test_generate_request_code_is_not_reserved(session, services, make_client):
    """Two previews in a row return the same code."""
    client = make_client()
    for n in range(1, 7):
        session.add(
            OrderRequest(
                request_code=f"REQ-2024-{n:05d}",
                client_id=client.id,
                request_date=date(2024, 1, n),
                status="Completed",
            )
        )
    session.commit()

    first = services.requests.generate_request_code(session, 2024)
    second = services.requests.generate_request_code(session, 2024)

    assert first == second == "REQ-2024-00007"
    assert services.requests.generate_request_code(session, 2025) == "REQ-2025-00001"


def test_create_request_retries_on_code_collision(session, services, make_client, monkeypatch):
    first_client = make_client()
    second_client = make_client(name="Bayview School")
    services.requests.create_request(session, request_payload(first_client.id), "Admin", MIRROR)

    codes = iter([f"REQ-{YEAR}-00001", f"REQ-{YEAR}-00002"])
    monkeypatch.setattr(
        services.requests, "generate_request_code", lambda session, year=None: next(codes)
    )

    created = services.requests.create_request(
        session, request_payload(second_client.id), "Admin", MIRROR
    )

    assert created.request_code == f"REQ-{YEAR}-00002"


def test_create_request_gives_up_after_max_attempts(session, make_client, monkeypatch):
    services = Services(max_code_attempts=2)
    first_client = make_client()
    second_client = make_client(name="Bayview School")
    services.requests.create_request(session, request_payload(first_client.id), "Admin", MIRROR)

    taken = f"REQ-{YEAR}-00001"
    monkeypatch.setattr(
        services.requests, "generate_request_code", lambda session, year=None: taken
    )

    with pytest.raises(BackendUnavailable):
        services.requests.create_request(
            session, request_payload(second_client.id), "Admin", MIRROR
        )
    assert len(services.requests.list_pending_requests(session)) == 1


def test_create_request_rejects_inactive_client(session, services, make_client):
    client = make_client(status="Inactive")

    with pytest.raises(InvalidTransition):
        services.requests.create_request(session, request_payload(client.id), "Admin", MIRROR)


def test_create_request_rejects_unknown_client(session, services):
    with pytest.raises(NotFound):
        services.requests.create_request(session, request_payload(999), "Admin", MIRROR)


def test_create_request_rejects_in_flight_client(session, services, make_client):
    client = make_client()
    services.requests.create_request(session, request_payload(client.id), "Admin", MIRROR)

    with pytest.raises(InvalidTransition):
        services.requests.create_request(session, request_payload(client.id), "Admin", MIRROR)


def test_completed_order_does_not_block_new_request(session, services, make_client):
    client = make_client()
    first = services.requests.create_request(session, request_payload(client.id), "Admin", MIRROR)
    services.requests.change_request_status(
        session, first.id, to_status("Completed"), "Admin", MIRROR
    )

    second = services.requests.create_request(session, request_payload(client.id), "Admin", MIRROR)

    assert second.request_code == f"REQ-{YEAR}-00002"


def test_update_request_replaces_items(session, services, make_client):
    client = make_client()
    created = services.requests.create_request(session, request_payload(client.id), "Admin", MIRROR)

    payload = OrderRequestUpdate.model_validate(
        {
            "notes": "Changed to ID cards",
            "items": [
                {"product_id": 9, "product_name": "ID Cards", "quantity": 200, "unit_price": 12.5},
            ],
        }
    )
    updated = services.requests.update_request(session, created.id, payload, MIRROR)

    assert updated.client_id == client.id
    assert updated.total_amount == 2500
    assert updated.type == "ID Cards"
    assert updated.notes == "Changed to ID cards"
    assert [it.product_name for it in updated.items] == ["ID Cards"]
    assert updated.request_code == created.request_code


def test_update_request_only_while_pending(session, services, make_client):
    client = make_client()
    created = services.requests.create_request(session, request_payload(client.id), "Admin", MIRROR)
    services.requests.change_request_status(
        session, created.id, to_status("Approved"), "Admin", MIRROR
    )

    payload = OrderRequestUpdate.model_validate(
        {"items": [{"product_id": 5, "product_name": "Yearbooks", "quantity": 1, "unit_price": 1}]}
    )
    with pytest.raises(InvalidTransition):
        services.requests.update_request(session, created.id, payload, MIRROR)


def test_update_request_to_busy_client_is_rejected(session, services, make_client):
    first_client = make_client()
    busy_client = make_client(name="Bayview School")
    created = services.requests.create_request(
        session, request_payload(first_client.id), "Admin", MIRROR
    )
    services.requests.create_request(session, request_payload(busy_client.id), "Admin", MIRROR)

    payload = OrderRequestUpdate.model_validate(
        {
            "client_id": busy_client.id,
            "items": [{"product_id": 5, "product_name": "Yearbooks", "quantity": 1, "unit_price": 1}],
        }
    )
    with pytest.raises(InvalidTransition):
        services.requests.update_request(session, created.id, payload, MIRROR)


def test_get_request_unknown_id(session, services):
    with pytest.raises(NotFound):
        services.requests.get_request(session, 424242)


def test_change_status_unknown_id(session, services):
    with pytest.raises(NotFound):
        services.requests.change_request_status(
            session, 424242, to_status("Approved"), "Admin", MIRROR
        )
    assert session.exec(select(OrderHistory)).all() == []


def test_delete_request_removes_everything(session, services, make_client):
    client = make_client()
    created = services.requests.create_request(session, request_payload(client.id), "Admin", MIRROR)
    services.requests.change_request_status(
        session, created.id, to_status("Approved"), "Admin", MIRROR
    )

    services.requests.delete_request(session, created.id, MIRROR)

    assert services.order_repo.get_by_request_id(session, created.id) is None
    assert services.request_repo.list_items(session, created.id) == []
    assert session.exec(select(OrderHistory)).all() == []
    with pytest.raises(NotFound):
        services.requests.get_request(session, created.id)


def test_invalid_item_payloads():
    with pytest.raises(ValueError):
        request_payload(1, items=[])
    with pytest.raises(ValueError):
        request_payload(
            1, items=[{"product_id": 0, "product_name": "X", "quantity": 1, "unit_price": 1}]
        )
    with pytest.raises(ValueError):
        request_payload(
            1, items=[{"product_id": 1, "product_name": "X", "quantity": 0, "unit_price": 1}]
        )
    with pytest.raises(ValueError):
        request_payload(
            1, items=[{"product_id": 1, "product_name": "  ", "quantity": 1, "unit_price": 1}]
        )
