# orderdesk/main.py
from contextlib import asynccontextmanager
import logging

from fastapi.middleware.cors import CORSMiddleware
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from orderdesk.core.config import get_settings
from orderdesk.database import check_connection, get_capabilities

# Import models so SQLModel metadata is populated
from orderdesk.models import client as _client_models  # noqa: F401
from orderdesk.models import order_request as _order_request_models  # noqa: F401
from orderdesk.models import client_order as _client_order_models  # noqa: F401
from orderdesk.models import history as _history_models  # noqa: F401

# Routers
from orderdesk.routers.order_requests import router as order_requests_router
from orderdesk.routers.client_orders import router as client_orders_router
from orderdesk.routers.clients import router as clients_router

settings = get_settings()

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger("uvicorn")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - Verify DB connectivity.
      - Resolve backend capabilities once (is client_orders there?).
    """
    logger.info("🔄 Startup: Connecting to Supabase Postgres...")
    try:
        check_connection()
        caps = get_capabilities()
        logger.info(
            "✅ Startup: DB connection OK, client_orders table %s.",
            "enabled" if caps.client_orders_table else "absent (deriving from order_requests)",
        )
    except Exception as e:
        logger.error(f"❌ Startup: DB connection FAILED: {e}")
        raise
    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SQLAlchemyError)
async def backend_error_handler(request: Request, exc: SQLAlchemyError):
    """Any store failure not handled by a service becomes a 503."""
    logger.error(f"Backend error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Backend unavailable"},
    )


# Versioned API prefix, e.g. /api/v1
app.include_router(order_requests_router, prefix=settings.API_V1_STR)
app.include_router(client_orders_router, prefix=settings.API_V1_STR)
app.include_router(clients_router, prefix=settings.API_V1_STR)


@app.get("/")
def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "orderdesk-backend"}
