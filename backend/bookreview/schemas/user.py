"""
BookReview Backend: User & Auth Schemas
=========================================

Request bodies for /auth/register and /auth/login with their field rules,
and the public user representation (the password hash is never included).
"""

from typing import Annotated

from pydantic import BaseModel, Field

from bookreview.constants import Messages
from bookreview.validation import (
    email,
    escape,
    length,
    normalize_email,
    not_empty,
    required_field,
    rules,
    trim,
)

# ── Field rules ───────────────────────────────────────────────────────────
NameRule = Annotated[str, rules(trim, length(3, None, Messages.NAME_MIN_LENGTH), escape)]
EmailRule = Annotated[str, rules(email(Messages.EMAIL_INVALID), normalize_email)]
NewPasswordRule = Annotated[str, rules(length(6, None, Messages.PASSWORD_MIN_LENGTH))]
PasswordRule = Annotated[str, rules(not_empty(Messages.PASSWORD_REQUIRED))]


class RegisterRequest(BaseModel):
    name: NameRule = required_field(description="Display name (min 3 characters)")
    email: EmailRule = required_field(description="Unique email address")
    password: NewPasswordRule = required_field(description="Password (min 6 characters)")


class LoginRequest(BaseModel):
    email: EmailRule = required_field()
    password: PasswordRule = required_field()


class UserOut(BaseModel):
    id: int
    name: str
    email: str
    role: str = Field(description="user or admin")

    model_config = {"from_attributes": True}


class UserData(BaseModel):
    user: UserOut


class AuthData(BaseModel):
    user: UserOut
    token: str = Field(description="Bearer token for the Authorization header")
