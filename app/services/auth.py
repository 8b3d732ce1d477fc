"""Authentication service."""

from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import AuthenticationError, ValidationError
from app.core.security import (
    create_access_token,
    create_refresh_token,
    hash_password,
    verify_password,
    verify_refresh_token,
)
from app.models.user import User
from app.schemas.auth import LoginRequest, TokenResponse, UserCreate


class AuthService:
    """Authentication service."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _tokens_for(self, user: User) -> TokenResponse:
        return TokenResponse(
            access_token=create_access_token(user.id, user.email),
            refresh_token=create_refresh_token(user.id),
            token_type="bearer",
            expires_in=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        )

    async def _find_by_email(self, email: str) -> User | None:
        result = await self.db.execute(
            select(User).where(func.lower(User.email) == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def register(self, request: UserCreate) -> User:
        """Register a new professor."""
        if await self._find_by_email(request.email):
            raise ValidationError(
                "Email already registered",
                details={"field": "email", "value": request.email},
            )

        user = User(
            name=request.name,
            email=request.email.lower(),
            password_hash=hash_password(request.password),
            is_active=True,
        )
        self.db.add(user)
        await self.db.flush()
        await self.db.refresh(user)
        return user

    async def login(self, request: LoginRequest) -> TokenResponse:
        """Authenticate user and return tokens."""
        user = await self._find_by_email(request.email)

        if not user:
            raise AuthenticationError("Invalid email or password")

        if not verify_password(request.password, user.password_hash):
            raise AuthenticationError("Invalid email or password")

        if not user.is_active:
            raise AuthenticationError("User account is deactivated")

        # Update last login
        user.last_login_at = datetime.now(timezone.utc)
        await self.db.flush()

        return self._tokens_for(user)

    async def refresh_tokens(self, refresh_token: str) -> TokenResponse:
        """Refresh access token using refresh token."""
        payload = verify_refresh_token(refresh_token)

        if not payload:
            raise AuthenticationError("Invalid or expired refresh token")

        user_id = payload.get("sub")
        if not user_id:
            raise AuthenticationError("Invalid token payload")

        try:
            user_pk = int(user_id)
        except ValueError:
            raise AuthenticationError("Invalid user ID in token")

        result = await self.db.execute(select(User).where(User.id == user_pk))
        user = result.scalar_one_or_none()

        if not user or not user.is_active:
            raise AuthenticationError("User not found or deactivated")

        return self._tokens_for(user)
