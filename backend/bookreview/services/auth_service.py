"""
BookReview Backend: Auth Service
==================================

What:  Registration and login.
Who:   Called by the /auth route handlers.

Register:  email taken? → 409 | hash password → insert (role 'user') → token
Login:     unknown email or wrong password → the same 400 "Invalid credentials"
           (both paths run exactly one bcrypt verification)
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bookreview.config import Settings
from bookreview.constants import Messages, Roles
from bookreview.database import DatastoreFailure, Err, commit_changes
from bookreview.exceptions import BadRequestError, ConflictError
from bookreview.models.user import User
from bookreview.schemas.user import AuthData, LoginRequest, RegisterRequest, UserOut
from bookreview.security import (
    hash_password_async,
    issue_user_token,
    verify_against_dummy,
    verify_password_async,
)

logger = logging.getLogger(__name__)


class AuthService:
    """Stateless; every call receives its session and settings."""

    def _auth_data(self, user: User, app_settings: Settings) -> AuthData:
        token = issue_user_token(
            user.id,
            app_settings.jwt_secret,
            app_settings.jwt_ttl,
            app_settings.jwt_algorithm,
        )
        return AuthData(user=UserOut.model_validate(user), token=token)

    async def register(
        self,
        db: AsyncSession,
        payload: RegisterRequest,
        app_settings: Settings,
    ) -> AuthData:
        existing = await db.execute(select(User.id).where(User.email == payload.email))
        if existing.scalar_one_or_none() is not None:
            raise ConflictError(message=Messages.USER_EXISTS)

        hashed = await hash_password_async(payload.password, app_settings.bcrypt_rounds)
        user = User(
            name=payload.name,
            email=payload.email,
            password=hashed,
            role=Roles.USER,
        )
        db.add(user)

        # The unique constraint still decides when two registrations race
        outcome = await commit_changes(db)
        if isinstance(outcome, Err):
            if outcome.kind is DatastoreFailure.UNIQUE_VIOLATION:
                raise ConflictError(message=Messages.USER_EXISTS)
            raise outcome.to_exception()

        logger.info("User registered: id=%s", user.id)
        return self._auth_data(user, app_settings)

    async def login(
        self,
        db: AsyncSession,
        payload: LoginRequest,
        app_settings: Settings,
    ) -> AuthData:
        result = await db.execute(select(User).where(User.email == payload.email))
        user = result.scalar_one_or_none()

        if user is None:
            await verify_against_dummy(payload.password, app_settings.bcrypt_rounds)
            raise BadRequestError(message=Messages.INVALID_CREDENTIALS)

        if not await verify_password_async(payload.password, user.password):
            raise BadRequestError(message=Messages.INVALID_CREDENTIALS, context={"user_id": user.id})

        logger.info("User logged in: id=%s", user.id)
        return self._auth_data(user, app_settings)


auth_service = AuthService()
