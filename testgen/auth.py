"""Caller identity from bearer access tokens."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from testgen.config import settings
from testgen.exceptions import UnauthorizedException

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def decode_token(token: str) -> Optional[dict]:
    """Decode a JWT. Returns the payload, or None if invalid or expired."""
    options = {"verify_aud": settings.jwt_audience is not None}
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            options=options,
        )
    except (JWTError, ValueError, TypeError):
        return None


def create_access_token(owner_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """Issue a token for owner_id. Used by tooling and tests; login lives elsewhere."""
    claims = {
        "sub": owner_id,
        "exp": datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=30)),
    }
    if settings.jwt_audience is not None:
        claims["aud"] = settings.jwt_audience
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


async def get_current_owner(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """
    Dependency resolving the authenticated owner id.

    Raises:
        UnauthorizedException: If the token is missing, invalid or has no subject
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise UnauthorizedException("Missing bearer token")

    payload = decode_token(credentials.credentials)
    owner_id = payload.get("sub") if payload else None
    if not owner_id:
        request_id = getattr(request.state, "request_id", "unknown")
        logger.warning(f"Rejected access token [{request_id}]")
        raise UnauthorizedException("Invalid or expired token")
    return str(owner_id)
