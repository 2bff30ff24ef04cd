"""
OptSolv Backend — Session Authentication
==========================================

What:  Resolves the acting user of a request from its session token.
How:   The identity provider mints HS256 JWTs whose `sub` claim is the user's
       UUID. The token arrives in the session cookie (browser) or in an
       `Authorization: Bearer` header (API clients). This module only
       verifies tokens; it never issues them.
Who:   Route dependencies (`get_current_user`), and the pipeline orchestrator
       through the CurrentUser it receives.

Failure modes:
    no token / bad signature / expired / malformed sub → UnauthorizedError (401)
    AUTH_JWT_SECRET not configured                     → ConfigurationError (500)
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Optional

import jwt
from fastapi import Request

from optsolv.config import settings
from optsolv.exceptions import ConfigurationError, UnauthorizedError

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


@dataclass(frozen=True)
class CurrentUser:
    id: uuid.UUID
    email: Optional[str] = None


def decode_session_token(token: str) -> Dict[str, Any]:
    """
    Verify signature, expiry, audience and (when configured) issuer.

    Raises:
        ConfigurationError: No JWT secret configured.
        UnauthorizedError:  Token is expired or invalid.
    """
    if not settings.auth_jwt_secret:
        raise ConfigurationError("Authentication is not configured")

    try:
        return jwt.decode(
            token,
            settings.auth_jwt_secret,
            algorithms=[ALGORITHM],
            audience=settings.auth_jwt_audience or None,
            issuer=settings.auth_jwt_issuer or None,
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Session expired")
    except jwt.InvalidTokenError as e:
        logger.info("Rejected session token: %s", str(e))
        raise UnauthorizedError()


def _extract_token(request: Request) -> Optional[str]:
    cookie = request.cookies.get(settings.session_cookie_name)
    if cookie:
        return cookie
    header = request.headers.get("Authorization", "")
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return None


def user_from_token(token: str) -> CurrentUser:
    claims = decode_session_token(token)
    try:
        user_id = uuid.UUID(str(claims["sub"]))
    except ValueError:
        raise UnauthorizedError()
    return CurrentUser(id=user_id, email=claims.get("email"))


async def get_optional_user(request: Request) -> Optional[CurrentUser]:
    """FastAPI dependency: the session's user, or None when no token was sent."""
    token = _extract_token(request)
    if token is None:
        return None
    return user_from_token(token)


async def get_current_user(request: Request) -> CurrentUser:
    """FastAPI dependency: the session's user; 401 when there is none."""
    user = await get_optional_user(request)
    if user is None:
        raise UnauthorizedError()
    return user
