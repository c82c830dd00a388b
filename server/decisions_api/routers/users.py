"""User endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from ..auth import get_current_user
from ..models import schemas
from ..services.supabase_gateway import AuthenticatedUser

router = APIRouter(prefix="/api", tags=["users"])


@router.get("/me", response_model=schemas.UserInfoResponse)
async def read_me(user: AuthenticatedUser = Depends(get_current_user)) -> schemas.UserInfoResponse:
    """Return the identity carried by the caller's bearer token."""

    return schemas.UserInfoResponse(
        id=user.id,
        email=user.email,
        phone=user.phone,
        role=user.role,
        app_metadata=user.app_metadata,
        user_metadata=user.user_metadata,
    )
