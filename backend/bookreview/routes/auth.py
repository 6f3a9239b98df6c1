"""
BookReview Backend: Auth Route Handlers
=========================================

What:  POST /auth/register and POST /auth/login.
Who:   Public endpoints; both return the user and a fresh bearer token.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from bookreview.config import Settings
from bookreview.constants import Messages
from bookreview.database import get_db_session
from bookreview.dependencies import get_settings
from bookreview.schemas.common import ApiResponse, ErrorResponse
from bookreview.schemas.user import AuthData, LoginRequest, RegisterRequest
from bookreview.services.auth_service import auth_service

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[AuthData],
    responses={
        400: {"description": "Validation failed", "model": ErrorResponse},
        409: {"description": "Email already registered", "model": ErrorResponse},
    },
    summary="Register a new user",
    description="Creates a user with role 'user' and returns it together with an access token.",
)
async def register(
    payload: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
    app_settings: Settings = Depends(get_settings),
) -> ApiResponse[AuthData]:
    data = await auth_service.register(db, payload, app_settings)
    return ApiResponse[AuthData](message=Messages.USER_REGISTERED, data=data)


@router.post(
    "/login",
    response_model=ApiResponse[AuthData],
    responses={
        400: {"description": "Validation failed or invalid credentials", "model": ErrorResponse},
    },
    summary="Log in",
    description=(
        "Exchanges email and password for an access token. Unknown emails and wrong "
        "passwords produce the same 400 response."
    ),
)
async def login(
    payload: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
    app_settings: Settings = Depends(get_settings),
) -> ApiResponse[AuthData]:
    data = await auth_service.login(db, payload, app_settings)
    return ApiResponse[AuthData](message=Messages.LOGIN_SUCCESSFUL, data=data)
