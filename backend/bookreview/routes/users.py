"""
BookReview Backend: User Route Handlers
=========================================
"""

from fastapi import APIRouter, Depends

from bookreview.constants import Messages
from bookreview.dependencies import CurrentUser, get_current_user
from bookreview.schemas.common import ApiResponse, ErrorResponse
from bookreview.schemas.user import UserData, UserOut

router = APIRouter(prefix="/users", tags=["Users"])


@router.get(
    "/me",
    response_model=ApiResponse[UserData],
    responses={401: {"description": "Missing or invalid token", "model": ErrorResponse}},
    summary="Current user",
    description="Returns the identity resolved from the bearer token.",
)
async def get_me(current_user: CurrentUser = Depends(get_current_user)) -> ApiResponse[UserData]:
    return ApiResponse[UserData](
        message=Messages.USER_RETRIEVED,
        data=UserData(user=UserOut.model_validate(current_user.model_dump())),
    )
