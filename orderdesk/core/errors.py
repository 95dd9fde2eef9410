# orderdesk/core/errors.py
"""
Domain errors raised by services.

They subclass HTTPException so routers can let them propagate untouched,
the same way services raise HTTPException directly elsewhere.
"""
from fastapi import HTTPException, status


class NotFound(HTTPException):
    """Referenced request/order id does not exist in any store."""

    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class BackendUnavailable(HTTPException):
    """The underlying store rejected a call (network, auth, schema)."""

    def __init__(self, detail: str = "Backend unavailable"):
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)


class InvalidTransition(HTTPException):
    """Edit or submission not allowed in the current state."""

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class SourceRequired(HTTPException):
    """
    A client order id was given without saying which table it belongs to.

    Merged listings mix client_orders ids and order_requests ids, so the
    same number can name two different orders.
    """

    def __init__(self, detail: str = "source is required: 'mirror' or 'request'"):
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)
