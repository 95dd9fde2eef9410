# orderdesk/core/notifier.py
"""
Client notifications through the Supabase `send-sms` edge function.

The edge function expects a JSON body:

    {"to": "<phone>", "message": "<text>", "type": "order_status"}

and logs the message instead of sending it when Twilio is not configured.
"""
import logging
from collections.abc import Callable

from supabase import Client as SupabaseClient

from orderdesk.core.supabase_client import supabase_admin
from orderdesk.models.client import Client

logger = logging.getLogger(__name__)

SMS_FUNCTION = "send-sms"

_STATUS_MESSAGES = {
    "Pending": "is back under review",
    "Approved": "has been approved",
    "Rejected": "has been rejected",
    "Completed": "is complete and ready",
}


def build_status_message(client_name: str, code: str, status: str) -> str:
    phrase = _STATUS_MESSAGES.get(status, f"is now {status}")
    return f"Hi {client_name}, your printing order {code} {phrase}."


class StatusNotifier:
    """
    Sends a short SMS to the client after a status change.

    Raises whatever the Supabase client raises; the caller decides
    whether a failure matters.
    """

    def __init__(self, client_factory: Callable[[], SupabaseClient] = supabase_admin):
        self.client_factory = client_factory

    def notify_status_change(self, client: Client, code: str, status: str) -> bool:
        """
        Returns False when the client has no phone number on file.
        """
        if not client.phone:
            logger.info("Client %s has no phone number; skipping SMS", client.id)
            return False

        body = {
            "to": client.phone,
            "message": build_status_message(client.name, code, status),
            "type": "order_status",
        }
        self.client_factory().functions.invoke(SMS_FUNCTION, invoke_options={"body": body})
        logger.info("Sent %s SMS for %s to client %s", status, code, client.id)
        return True
