"""Authentication schemas."""

import re
from datetime import datetime

from pydantic import Field, field_validator

from app.schemas.common import BaseSchema

PASSWORD_MIN_LENGTH = 8
_SPECIAL_SYMBOL = re.compile(r"""[!@#$%^&*()_+\-=\[\]{};':"\\|,.<>/?]""")


def password_problems(password: str) -> list[str]:
    """Every password rule the value breaks, in a fixed order."""
    problems = []
    if len(password) < PASSWORD_MIN_LENGTH:
        problems.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    if not re.search(r"\d", password):
        problems.append("Password must contain at least 1 number")
    if not re.search(r"[a-zA-Z]", password):
        problems.append("Password must contain at least 1 letter")
    if not _SPECIAL_SYMBOL.search(password):
        problems.append("Password must contain at least 1 special symbol")
    return problems


class LoginRequest(BaseSchema):
    """Login request schema."""

    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=6)


class TokenResponse(BaseSchema):
    """Token response schema."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class RefreshTokenRequest(BaseSchema):
    """Refresh token request schema."""

    refresh_token: str


class UserCreate(BaseSchema):
    """Professor registration schema."""

    name: str = Field(..., min_length=2, max_length=255)
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(..., max_length=128)

    @field_validator("password")
    @classmethod
    def check_password_rules(cls, v: str) -> str:
        problems = password_problems(v)
        if problems:
            raise ValueError("; ".join(problems))
        return v


class UserResponse(BaseSchema):
    """User response schema."""

    id: int
    name: str
    email: str
    is_active: bool
    last_login_at: datetime | None
    created_at: datetime
    updated_at: datetime
