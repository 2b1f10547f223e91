"""Bearer token guard for admin and chat routes"""

from __future__ import annotations
import os, secrets
from typing import Optional
from fastapi import Header, HTTPException, status


def require_bearer(authorization: Optional[str] = Header(default=None)) -> None:
    """Reject the request unless it carries the configured admin token

    The token is read on every call so it can be rotated without a restart
    """
    expected = os.environ.get("ADMIN_API_TOKEN", "")
    if not expected:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin token is not configured.",
        )

    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not secrets.compare_digest(token.strip().encode(), expected.encode()):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized to access this route",
            headers={"WWW-Authenticate": "Bearer"},
        )
