# orderdesk/core/config.py
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Order desk settings, read from the environment or a local .env file.

    Must be set:
      - SUPABASE_URL, SUPABASE_KEY   project URL and anon key
      - DATABASE_URL                 Postgres DSN (Supabase pooler)
      - SUPABASE_JWT_SECRET          verifies staff access tokens

    Order workflow switches:
      - CLIENT_ORDERS_TABLE        true/false forces the client_orders
                                   mirror on/off; unset means "look at the
                                   schema once at startup"
      - NOTIFY_CLIENTS             SMS the client after each status change
      - REQUEST_CODE_MAX_ATTEMPTS  how often create retries a taken code
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    PROJECT_NAME: str = "Order Desk Backend"
    API_V1_STR: str = "/api/v1"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Supabase project
    SUPABASE_URL: str
    SUPABASE_KEY: str
    # Backend only; edge function calls fall back to SUPABASE_KEY
    SUPABASE_SERVICE_ROLE_KEY: str | None = None

    # Postgres
    DATABASE_URL: str

    # Staff tokens are issued by Supabase Auth
    SUPABASE_JWT_SECRET: str
    SUPABASE_JWT_ALG: str = "HS256"

    # Order workflow
    CLIENT_ORDERS_TABLE: bool | None = None
    NOTIFY_CLIENTS: bool = False
    REQUEST_CODE_MAX_ATTEMPTS: int = 3


@lru_cache
def get_settings() -> Settings:
    """
    Settings are parsed once per process.
    """
    return Settings()
