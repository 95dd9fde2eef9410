# orderdesk/schemas/status.py
from typing import Literal

# Values that may be found in storage. "New" is the legacy spelling of
# "Pending" and is still present in older rows.
OrderStatus = Literal["New", "Pending", "Approved", "Rejected", "Completed"]

# Values accepted as a transition target. "New" is mapped to "Pending"
# before validation (see normalize_status).
TargetStatus = Literal["Pending", "Approved", "Rejected", "Completed"]

ClientStatus = Literal["Active", "Inactive"]

PENDING_STATUSES: frozenset[str] = frozenset({"Pending", "New"})
PROMOTED_STATUSES: frozenset[str] = frozenset({"Approved", "Rejected", "Completed"})

_CANONICAL = {
    "new": "Pending",
    "pending": "Pending",
    "approved": "Approved",
    "rejected": "Rejected",
    "completed": "Completed",
}


def normalize_status(value):
    """
    Map user input onto the canonical spelling.

    Case-insensitive; "New" becomes "Pending". Unknown values are returned
    unchanged so the Literal check reports them.
    """
    if not isinstance(value, str):
        return value
    return _CANONICAL.get(value.strip().lower(), value)
