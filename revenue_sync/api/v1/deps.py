# revenue_sync/api/v1/deps.py
"""
FastAPI dependencies for the v1 API layer.

Primary dependency: ``get_current_tenant`` extracts and validates a Bearer JWT
from the Authorization header and returns the tenant (owning user) id. Tokens
are issued by the surrounding invoicing app.
"""

from __future__ import annotations

import logging
import uuid

from fastapi import HTTPException, Header, status
from jose import JWTError, jwt

from revenue_sync.core.config import settings

logger = logging.getLogger("api.v1.deps")


async def get_current_tenant(
    authorization: str | None = Header(None),
) -> uuid.UUID:
    """
    FastAPI dependency: validates the ``Authorization: Bearer <jwt>`` header
    and returns the tenant id carried in its ``sub`` claim.

    Raises HTTP 401 if the token is missing, invalid, expired, or has no
    usable subject.
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid Authorization header. Expected: Bearer <token>",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = authorization[7:]  # strip "Bearer "

    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except JWTError as exc:
        logger.debug("JWT decode failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    subject = payload.get("sub")
    if not subject:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token missing subject",
        )

    try:
        return uuid.UUID(str(subject))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token subject is not a valid tenant id",
        )
