"""
Pytest configuration and fixtures.

Runs services and routers against an in-memory SQLite database. The
`degraded_*` fixtures build the schema without the client_orders table.
"""
import os

# Settings are read on first import of orderdesk; make them deterministic.
os.environ["SUPABASE_URL"] = "http://localhost:54321"
os.environ["SUPABASE_KEY"] = "test-anon-key"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret"
os.environ["NOTIFY_CLIENTS"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from orderdesk.core.auth import require_staff
from orderdesk.database import create_db_and_tables, get_capabilities, get_session
from orderdesk.main import app
from orderdesk.models.client import Client
from tests.factories import MIRROR, STAFF, Services


def _memory_engine():
    return create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


@pytest.fixture
def engine():
    test_engine = _memory_engine()
    create_db_and_tables(test_engine)
    yield test_engine
    SQLModel.metadata.drop_all(test_engine)
    test_engine.dispose()


@pytest.fixture
def degraded_engine():
    test_engine = _memory_engine()
    tables = [t for name, t in SQLModel.metadata.tables.items() if name != "client_orders"]
    SQLModel.metadata.create_all(test_engine, tables=tables)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as s:
        yield s


@pytest.fixture
def degraded_session(degraded_engine):
    with Session(degraded_engine) as s:
        yield s


@pytest.fixture
def services():
    return Services()


def _add_client(db, name, status, phone):
    client = Client(
        name=name,
        status=status,
        phone=phone,
        email=f"{name.split()[0].lower()}@example.com",
    )
    db.add(client)
    db.commit()
    db.refresh(client)
    return client


@pytest.fixture
def make_client(session):
    def _make(name="Acme Printing Co.", status="Active", phone=None):
        return _add_client(session, name, status, phone)

    return _make


@pytest.fixture
def make_degraded_client(degraded_session):
    def _make(name="Acme Printing Co.", status="Active", phone=None):
        return _add_client(degraded_session, name, status, phone)

    return _make


@pytest.fixture
def api(session):
    """
    TestClient with DB session, capabilities and auth overridden.

    Requests share the test's session so seeded rows are visible.
    """

    def _session_override():
        return session

    app.dependency_overrides[get_session] = _session_override
    app.dependency_overrides[get_capabilities] = lambda: MIRROR
    app.dependency_overrides[require_staff] = lambda: STAFF
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()
