"""
BookReview Backend: Authentication & Authorization Dependencies
=================================================================

What:  FastAPI dependencies that resolve the caller from a bearer token and
       gate admin-only routes.
How:   Two gates, always in this order:

    get_current_user
        no/malformed Authorization header   → 401 "Access token required"
        bad signature / expired / bad claims → 401 "Invalid token"
        user row no longer exists            → 401 "User not found"
        otherwise                            → CurrentUser on request.state.user

    require_admin (depends on get_current_user)
        role != admin                        → 403 "Admin access required"

Every authenticated request re-reads the user row: deleting a user
invalidates their token on the next call, but a valid token for an existing
user cannot be revoked early.
"""

import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import APIKeyHeader
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bookreview.config import Settings
from bookreview.constants import Messages, Roles
from bookreview.database import get_db_session
from bookreview.exceptions import AuthenticationError, AuthorizationError
from bookreview.models.user import User
from bookreview.schemas.user import UserOut
from bookreview.security import extract_bearer, user_id_from_claims, verify_token

logger = logging.getLogger(__name__)

# Reads the raw header; parsing is left to extract_bearer()
authorization_header = APIKeyHeader(
    name="Authorization",
    auto_error=False,
    description="Bearer <token>",
)


class CurrentUser(UserOut):
    """Identity attached to the request by get_current_user."""

    @property
    def is_admin(self) -> bool:
        return self.role == Roles.ADMIN


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_current_user(
    request: Request,
    authorization: Optional[str] = Depends(authorization_header),
    db: AsyncSession = Depends(get_db_session),
    app_settings: Settings = Depends(get_settings),
) -> CurrentUser:
    token = extract_bearer(authorization)
    if token is None:
        raise AuthenticationError(message=Messages.ACCESS_TOKEN_REQUIRED)

    claims = verify_token(token, app_settings.jwt_secret, app_settings.jwt_algorithm)
    user_id = user_id_from_claims(claims)

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        logger.info("Token presented for missing user id=%s", user_id)
        raise AuthenticationError(message=Messages.USER_NOT_FOUND, context={"user_id": user_id})

    current = CurrentUser.model_validate(user)
    request.state.user = current
    return current


async def require_admin(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not current_user.is_admin:
        raise AuthorizationError(context={"user_id": current_user.id, "role": current_user.role})
    return current_user
