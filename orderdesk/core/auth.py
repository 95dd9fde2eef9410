# orderdesk/core/auth.py
from typing import Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from pydantic import BaseModel

from orderdesk.core.config import get_settings

# HTTP Bearer scheme:
# - auto_error=False => a missing Authorization header reaches
#   require_staff, which answers 401 instead of FastAPI's 403.
bearer_scheme = HTTPBearer(auto_error=False)


class StaffUser(BaseModel):
    """
    Authenticated staff member, taken from Supabase JWT claims.

    Tokens are issued by Supabase Auth; this service only verifies them.
    """

    id: str
    email: str
    name: str

    @property
    def display_name(self) -> str:
        """Name recorded as the actor of status changes."""
        return self.name or self.email


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and verify a Supabase access token (JWT).

    Verification:
      - signature (HS256 using SUPABASE_JWT_SECRET)
      - expiration time (exp)
      - audience is NOT verified (Supabase 'aud' may vary)

    Raises:
        HTTPException(401): if token is invalid/expired.
    """
    settings = get_settings()
    try:
        return jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=[settings.SUPABASE_JWT_ALG],
            options={"verify_aud": False},
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )


def _default_name_from_email(email: str) -> str:
    """
    Derive a display name from email when user_metadata has none.
    """
    if "@" in email:
        return email.split("@", 1)[0]
    return email


def staff_from_claims(payload: dict[str, Any]) -> StaffUser:
    """
    Build a StaffUser from decoded claims.

    Name lookup order: user_metadata.full_name, user_metadata.name,
    then the local part of the email.

    Raises:
        HTTPException(401): if 'sub' or 'email' is missing.
    """
    sub = payload.get("sub")
    email = payload.get("email")
    if not sub or not email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token missing sub/email",
        )

    metadata = payload.get("user_metadata") or {}
    name = metadata.get("full_name") or metadata.get("name") or _default_name_from_email(email)
    return StaffUser(id=sub, email=email, name=name)


def require_staff(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> StaffUser:
    """
    Enforce authentication for every order endpoint.

    Returns:
        The authenticated StaffUser.

    Raises:
        HTTPException(401): if the header is missing or the token invalid.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return staff_from_claims(decode_access_token(credentials.credentials))
