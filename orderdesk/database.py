# orderdesk/database.py
import logging
from dataclasses import dataclass
from functools import lru_cache

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine, Session

from orderdesk.core.config import get_settings

logger = logging.getLogger(__name__)

CLIENT_ORDERS_TABLE = "client_orders"

# ---------------------------------------------------------
# Supabase Postgres connection (via pooler)
#
# - sslmode=require   : enforce SSL when running in the cloud
# - pool_size=1       : keep only 1 connection to the Supabase pooler
# - max_overflow=0    : do not open extra connections beyond the pool
# - pool_pre_ping=True: validate connections before using them
#
# Supabase Session mode limits the number of clients. If each backend
# process opens many connections (SQLAlchemy default pool_size 5+),
# you can easily hit:
#   "MaxClientsInSessionMode: max clients reached"
# ---------------------------------------------------------


def _postgres_url(db_url: str) -> str:
    """Append sslmode=require if it is not already present."""
    if "sslmode=" in db_url:
        return db_url
    if "?" in db_url:
        return db_url + "&sslmode=require"
    return db_url + "?sslmode=require"


@lru_cache
def get_engine() -> Engine:
    """
    Build the process-wide engine on first use.

    Pooler settings only apply to Postgres URLs; anything else (e.g. a
    local SQLite file) gets SQLAlchemy defaults.
    """
    db_url = get_settings().DATABASE_URL

    if db_url.startswith("postgres"):
        return create_engine(
            _postgres_url(db_url),
            echo=False,        # set to True if you want to debug SQL queries
            pool_pre_ping=True,
            pool_size=1,
            max_overflow=0,
        )
    return create_engine(db_url, echo=False)


def create_db_and_tables(engine: Engine | None = None) -> None:
    """
    Create all tables defined in SQLModel metadata if they do not exist.

    Only used for local databases; the hosted schema is managed in Supabase.
    """
    SQLModel.metadata.create_all(engine or get_engine())


def check_connection(engine: Engine | None = None) -> None:
    """Run a trivial query so startup fails fast on a bad DATABASE_URL."""
    with (engine or get_engine()).connect() as conn:
        conn.execute(text("SELECT 1"))


@dataclass(frozen=True)
class BackendCapabilities:
    """
    Optional features of the hosted backend, resolved once per process.

    client_orders_table:
        True when the `client_orders` mirror table exists. When False,
        promoted order requests are reshaped into the client order view.
    """

    client_orders_table: bool


def detect_capabilities(engine: Engine) -> BackendCapabilities:
    """
    Resolve capabilities from settings, falling back to schema inspection.
    """
    forced = get_settings().CLIENT_ORDERS_TABLE
    if forced is not None:
        return BackendCapabilities(client_orders_table=forced)

    has_mirror = inspect(engine).has_table(CLIENT_ORDERS_TABLE)
    logger.info("Backend capability probe: client_orders table present=%s", has_mirror)
    return BackendCapabilities(client_orders_table=has_mirror)


@lru_cache
def get_capabilities() -> BackendCapabilities:
    """
    FastAPI dependency returning the cached BackendCapabilities.

    Warmed up in the application lifespan so the probe never runs
    inside a request.
    """
    return detect_capabilities(get_engine())


def get_session():
    """
    One Session per request. Services commit each step themselves, so
    nothing is committed here.
    """
    with Session(get_engine()) as session:
        yield session
