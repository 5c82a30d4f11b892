# flashcart/core/auth.py
import uuid
from dataclasses import dataclass
from typing import Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError

from flashcart.core.config import get_settings

settings = get_settings()

# HTTP Bearer scheme:
# - auto_error=False => we raise our own 401 with a consistent message.
bearer_scheme = HTTPBearer(auto_error=False)

SELLER_ROLES = {"seller", "hotel"}


@dataclass(frozen=True)
class Principal:
    """Caller identity taken from the access token."""

    id: uuid.UUID
    role: str


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and verify an access token (JWT) issued by the auth service.

    Verification:
      - signature (JWT_ALG using JWT_SECRET)
      - expiration time (exp)
      - audience is NOT verified

    Raises:
        HTTPException(401): if token is invalid/expired.
    """
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALG],
            options={"verify_aud": False},
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )


def require_auth(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Principal:
    """
    Resolve the caller from the bearer token.

    Flow:
      1. Missing Authorization header => 401.
      2. Decode JWT => extract 'sub' and optional 'role' (default 'user').
      3. Convert 'sub' to UUID; it is the cart owner / seller id.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )

    payload = decode_access_token(credentials.credentials)
    sub = payload.get("sub")
    if not sub:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token missing sub",
        )

    try:
        principal_id = uuid.UUID(str(sub))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid sub in token",
        )

    return Principal(id=principal_id, role=str(payload.get("role") or "user"))


def require_seller(principal: Principal = Depends(require_auth)) -> Principal:
    """
    Enforce a seller/hotel role (ledger reports).

    Raises:
        HTTPException(403): for buyers and admins.
    """
    if principal.role not in SELLER_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Seller access required",
        )
    return principal
