# orderdesk/core/supabase_client.py
from functools import lru_cache
from supabase import create_client, Client

from orderdesk.core.config import get_settings


@lru_cache
def supabase_admin() -> Client:
    """
    Create a Supabase client for backend-only calls (edge functions).

    Uses the service role key when configured, otherwise the anon key.

    WARNING:
      - Never expose service role key to frontend.
      - Only backend should call this.
    """
    settings = get_settings()
    key = settings.SUPABASE_SERVICE_ROLE_KEY or settings.SUPABASE_KEY
    return create_client(settings.SUPABASE_URL, key)
