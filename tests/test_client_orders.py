"""
Client order view, order codes and client eligibility.
"""
from datetime import date

import pytest

from orderdesk.core.errors import InvalidTransition, NotFound, SourceRequired
from orderdesk.models.client_order import ClientOrder
from tests.factories import DEGRADED, MIRROR, Services, request_payload, to_status


def _approved_request(session, services, client, caps=MIRROR):
    created = services.requests.create_request(session, request_payload(client.id), "Admin", caps)
    services.requests.change_request_status(
        session, created.id, to_status("Approved"), "Admin", caps
    )
    return created


def _standalone_order(session, client, code="ORD-2024-00003", status="Approved"):
    order = ClientOrder(
        order_code=code,
        client_id=client.id,
        order_date=date(2024, 2, 14),
        amount=1200.0,
        status=status,
    )
    session.add(order)
    session.commit()
    session.refresh(order)
    return order


def test_list_merges_mirror_and_orphan_requests(session, services, make_client):
    """A promoted request without a mirror row still shows up, after mirror rows."""
    acme = make_client()
    bayview = make_client(name="Bayview School")
    mirrored = _approved_request(session, services, acme)

    orphan = services.requests.create_request(
        session, request_payload(bayview.id), "Admin", MIRROR
    )
    services.reconciler.apply(
        session,
        services.request_repo.get_by_id(session, orphan.id),
        "Completed",
        "Admin",
        DEGRADED,
    )

    orders = services.orders.list_client_orders(session, MIRROR)

    assert [(o.source, o.order_code) for o in orders] == [
        ("mirror", mirrored.request_code),
        ("request", orphan.request_code),
    ]
    assert orders[1].client_name == "Bayview School"
    assert orders[1].item_count == 2


def test_list_filters(session, services, make_client):
    acme = make_client()
    bayview = make_client(name="Bayview School")
    _approved_request(session, services, acme)
    done = _approved_request(session, services, bayview)
    services.requests.change_request_status(
        session, done.id, to_status("Completed"), "Admin", MIRROR
    )

    completed = services.orders.list_client_orders(session, MIRROR, status="Completed")
    acme_only = services.orders.list_client_orders(session, MIRROR, client_id=acme.id)

    assert [o.order_code for o in completed] == [done.request_code]
    assert [o.client_id for o in acme_only] == [acme.id]


def test_get_client_order_detail(session, services, make_client):
    client = make_client()
    created = _approved_request(session, services, client)
    mirror = services.order_repo.get_by_request_id(session, created.id)

    detail = services.orders.get_client_order(session, mirror.id, MIRROR, source="mirror")
    by_request = services.orders.get_client_order(session, created.id, MIRROR, source="request")

    assert detail.source == "mirror"
    assert [it.product_name for it in detail.items] == ["Yearbooks", "Custom Lanyards"]
    assert detail.item_count == 2
    assert by_request.source == "request"
    assert by_request.order_code == detail.order_code


def test_get_client_order_not_found(session, services, make_client):
    client = make_client()
    pending = services.requests.create_request(session, request_payload(client.id), "Admin", MIRROR)

    with pytest.raises(NotFound):
        services.orders.get_client_order(session, 424242, MIRROR, source="mirror")
    # Pending requests are not client orders
    with pytest.raises(NotFound):
        services.orders.get_client_order(session, pending.id, MIRROR, source="request")


def test_demote_from_client_order_side(session, services, make_client):
    client = make_client()
    created = _approved_request(session, services, client)
    mirror = services.order_repo.get_by_request_id(session, created.id)

    result = services.orders.change_client_order_status(
        session, mirror.id, to_status("Pending"), "Admin", MIRROR, source="mirror"
    )

    assert result.request.status == "Pending"
    assert result.order is None
    assert services.orders.list_client_orders(session, MIRROR) == []
    assert [r.id for r in services.requests.list_pending_requests(session)] == [created.id]


def test_client_order_history_includes_request_entries(session, services, make_client):
    client = make_client()
    created = _approved_request(session, services, client)
    mirror = services.order_repo.get_by_request_id(session, created.id)
    services.orders.change_client_order_status(
        session,
        mirror.id,
        to_status("Completed", notes="Picked up"),
        "Admin",
        MIRROR,
        source="mirror",
    )

    history = services.orders.get_history(session, mirror.id, MIRROR, source="mirror")

    assert [h.status for h in history] == ["Completed", "Approved", "Pending"]
    assert history[0].notes == "Picked up"


def test_standalone_order_status_change(session, services, make_client):
    client = make_client()
    order = _standalone_order(session, client)

    result = services.orders.change_client_order_status(
        session, order.id, to_status("Completed"), "Admin", MIRROR, source="mirror"
    )

    assert result.request is None
    assert result.order.status == "Completed"
    history = services.orders.get_history(session, order.id, MIRROR, source="mirror")
    assert [(h.status, h.order_id, h.request_id) for h in history] == [
        ("Completed", order.id, None)
    ]


def test_standalone_order_cannot_go_back_to_pending(session, services, make_client):
    client = make_client()
    order = _standalone_order(session, client)

    with pytest.raises(InvalidTransition):
        services.orders.change_client_order_status(
            session, order.id, to_status("Pending"), "Admin", MIRROR, source="mirror"
        )


def _promote_without_mirror(session, services, client, status="Approved"):
    """A promoted request whose client_orders write never happened."""
    created = services.requests.create_request(session, request_payload(client.id), "Admin", MIRROR)
    request = services.request_repo.get_by_id(session, created.id)
    services.reconciler.apply(session, request, status, "Admin", DEGRADED)
    return created


def test_listed_row_is_changed_by_its_own_source(session, services, make_client):
    """
    Request ids and client_orders ids overlap; the listed (id, source)
    pair must reach the listed order and nothing else.
    """
    acme = make_client(name="Acme Printing Co.")
    bayview = make_client(name="Bayview School")
    cedar = make_client(name="Cedar Bakery")
    _approved_request(session, services, acme)
    orphan = _promote_without_mirror(session, services, bayview)
    other = _approved_request(session, services, cedar)
    other_mirror = services.order_repo.get_by_request_id(session, other.id)
    # Same number, different tables
    assert other_mirror.id == orphan.id

    listed = next(
        o for o in services.orders.list_client_orders(session, MIRROR) if o.client_id == bayview.id
    )
    assert (listed.source, listed.id) == ("request", orphan.id)

    result = services.orders.change_client_order_status(
        session, listed.id, to_status("Rejected"), "Admin", MIRROR, source=listed.source
    )

    assert result.request.id == orphan.id
    assert result.request.status == "Rejected"
    assert services.requests.get_request(session, orphan.id).status == "Rejected"
    assert services.requests.get_request(session, other.id).status == "Approved"
    assert services.order_repo.get_by_id(session, other_mirror.id).status == "Approved"


def test_listed_orphan_row_can_be_read(session, services, make_client):
    bayview = make_client(name="Bayview School")
    orphan = _promote_without_mirror(session, services, bayview, status="Completed")

    [listed] = services.orders.list_client_orders(session, MIRROR)
    detail = services.orders.get_client_order(session, listed.id, MIRROR, source=listed.source)
    history = services.orders.get_history(session, listed.id, MIRROR, source=listed.source)

    assert detail.order_code == orphan.request_code
    assert [h.status for h in history] == ["Completed", "Pending"]


def test_source_is_required_with_client_orders_table(session, services, make_client):
    client = make_client()
    created = _approved_request(session, services, client)
    mirror = services.order_repo.get_by_request_id(session, created.id)

    with pytest.raises(SourceRequired) as exc_info:
        services.orders.change_client_order_status(
            session, mirror.id, to_status("Completed"), "Admin", MIRROR
        )
    assert exc_info.value.status_code == 422
    with pytest.raises(SourceRequired):
        services.orders.get_client_order(session, mirror.id, MIRROR)
    with pytest.raises(SourceRequired):
        services.orders.get_history(session, mirror.id, MIRROR)

    assert services.requests.get_request(session, created.id).status == "Approved"


@pytest.mark.parametrize("source", ["mirror", "request"])
def test_change_unknown_client_order(session, services, source):
    with pytest.raises(NotFound):
        services.orders.change_client_order_status(
            session, 424242, to_status("Completed"), "Admin", MIRROR, source=source
        )


def test_generate_order_code(session, services, make_client):
    client = make_client()
    _standalone_order(session, client, code="ORD-2024-00003")

    assert services.orders.generate_order_code(session, MIRROR, 2024) == "ORD-2024-00004"
    assert services.orders.generate_order_code(session, MIRROR, 2024) == "ORD-2024-00004"
    assert services.orders.generate_order_code(session, MIRROR, 2026) == "ORD-2026-00001"


def test_mirror_row_for_codeless_request_gets_order_code(session, services, make_client):
    client = make_client()
    services.requests.create_request(session, request_payload(client.id), "Admin", MIRROR)
    request = services.request_repo.list_by_statuses(session, ["Pending"])[0]
    request.request_code = None
    session.add(request)
    session.commit()

    result = services.reconciler.apply(session, request, "Approved", "Admin", MIRROR)

    assert result.order.source == "mirror"
    assert result.order.order_code == f"ORD-{date.today().year}-00001"


# -------- Without client_orders --------


def test_degraded_reads_and_writes(degraded_session, make_degraded_client):
    services = Services()
    client = make_degraded_client()
    created = _approved_request(degraded_session, services, client, caps=DEGRADED)

    detail = services.orders.get_client_order(degraded_session, created.id, DEGRADED)
    assert detail.source == "request"
    assert len(detail.items) == 2

    with pytest.raises(NotFound):
        services.orders.generate_order_code(degraded_session, DEGRADED)

    result = services.orders.change_client_order_status(
        degraded_session, created.id, to_status("Pending"), "Admin", DEGRADED
    )
    assert result.warnings == []
    assert services.orders.list_client_orders(degraded_session, DEGRADED) == []
    assert [r.id for r in services.requests.list_pending_requests(degraded_session)] == [
        created.id
    ]


def test_degraded_unknown_client_order(degraded_session):
    services = Services()
    with pytest.raises(NotFound):
        services.orders.change_client_order_status(
            degraded_session, 424242, to_status("Completed"), "Admin", DEGRADED
        )
    with pytest.raises(NotFound):
        services.orders.get_client_order(degraded_session, 1, DEGRADED, source="mirror")


# -------- Eligibility --------


def test_eligibility(session, services, make_client):
    pending_client = make_client(name="Acme Printing Co.")
    approved_client = make_client(name="Bayview School")
    done_client = make_client(name="Cedar Bakery")
    make_client(name="Dunmore Hardware")
    make_client(name="Evergreen Church", status="Inactive")

    services.requests.create_request(
        session, request_payload(pending_client.id), "Admin", MIRROR
    )
    _approved_request(session, services, approved_client)
    done = _approved_request(session, services, done_client)
    services.requests.change_request_status(
        session, done.id, to_status("Completed"), "Admin", MIRROR
    )

    rows = {row.name: row for row in services.clients.list_eligibility(session, MIRROR)}

    assert (rows["Acme Printing Co."].eligible, rows["Acme Printing Co."].status_text) == (
        False,
        "Has pending request",
    )
    assert (rows["Bayview School"].eligible, rows["Bayview School"].status_text) == (
        False,
        "Has approved order",
    )
    assert rows["Cedar Bakery"].eligible is True
    assert rows["Cedar Bakery"].status_text == "Has completed orders (can place new orders)"
    assert rows["Dunmore Hardware"].eligible is True
    assert rows["Dunmore Hardware"].status_text == "No active orders"
    assert rows["Evergreen Church"].eligible is False
    assert rows["Evergreen Church"].has_ongoing_orders is False


def test_eligibility_matches_submission_gate(session, services, make_client):
    """Every client reported eligible can actually be given a request."""
    make_client(name="Acme Printing Co.")
    busy = make_client(name="Bayview School")
    _approved_request(session, services, busy)

    for row in services.clients.list_eligibility(session, MIRROR):
        if row.eligible:
            services.requests.create_request(
                session, request_payload(row.client_id), "Admin", MIRROR
            )
        else:
            with pytest.raises(InvalidTransition):
                services.requests.create_request(
                    session, request_payload(row.client_id), "Admin", MIRROR
                )
