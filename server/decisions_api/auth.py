"""Bearer-token authentication dependencies."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .services.supabase_gateway import AuthenticatedUser, InvalidTokenError, SupabaseGateway

logger = logging.getLogger(__name__)

_bearer = HTTPBearer(auto_error=False)


def get_supabase_gateway(request: Request) -> SupabaseGateway:
    return request.app.state.supabase


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or missing authentication token",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    gateway: SupabaseGateway = Depends(get_supabase_gateway),
) -> AuthenticatedUser:
    """Verify the ``Authorization: Bearer`` token and return its user."""

    if credentials is None or not credentials.credentials:
        raise _unauthorized()

    try:
        return await gateway.verify_token(credentials.credentials)
    except InvalidTokenError as exc:
        logger.debug("JWT verification failed: %s", exc)
        raise _unauthorized() from exc
    except RuntimeError as exc:
        logger.warning("Authentication unavailable: %s", exc)
        raise _unauthorized() from exc
