import re
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.auth.models.user import User
from app.features.auth.schemas.auth import AuthResponse, LoginRequest, RegisterRequest, UserResponse
from app.features.auth.utils.security import create_access_token, hash_password, verify_password
from app.platform.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from app.platform.logger import get_logger

logger = get_logger("auth_service")

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def normalize_email(email: str) -> str:
    return email.strip().lower()


def build_auth_response(user: User) -> AuthResponse:
    token = create_access_token(data={"sub": str(user.id), "email": user.email})
    return AuthResponse(user=UserResponse.model_validate(user), token=token)


class AuthService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def register_user(self, request: RegisterRequest) -> AuthResponse:
        if not request.email or not request.password or not request.name:
            raise ValidationError("All fields are required")

        email = normalize_email(request.email)
        if not EMAIL_PATTERN.match(email):
            raise ValidationError("Invalid email format")

        if await self.get_user_by_email(email):
            raise ConflictError("User already exists")

        new_user = User(
            email=email,
            name=request.name.strip(),
            password_hash=hash_password(request.password),
            auth_provider="email",
        )

        try:
            self.db.add(new_user)
            await self.db.commit()
            await self.db.refresh(new_user)
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("User already exists")

        logger.info(f"Registered user {new_user.id}")
        return build_auth_response(new_user)

    async def login_user(self, request: LoginRequest) -> AuthResponse:
        """
        Password login.

        `login_type` lets the admin console and the storefront refuse each
        other's accounts: "admin" requires the admin flag, "regular" rejects it.
        """
        if not request.email or not request.password:
            raise ValidationError("Email and password are required")

        user = await self.get_user_by_email(request.email)
        if not user:
            raise ValidationError("Invalid credentials")

        if not user.password_hash:
            raise ValidationError(
                "Invalid credentials. Please use social login if you registered via Google or Facebook"
            )

        if not verify_password(request.password, user.password_hash):
            raise ValidationError("Invalid credentials")

        if request.login_type == "admin" and not user.is_admin:
            raise ForbiddenError("Access denied. You do not have administrator privileges.")
        if request.login_type == "regular" and user.is_admin:
            raise ForbiddenError("Administrators must sign in through the admin page.")

        user.last_login = datetime.now(timezone.utc)
        await self.db.commit()
        await self.db.refresh(user)

        return build_auth_response(user)

    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Get user by email"""
        result = await self.db.execute(select(User).where(User.email == normalize_email(email)))
        return result.scalar_one_or_none()

    async def get_profile(self, user_id: str) -> UserResponse:
        user = await self.get_user_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        return UserResponse.model_validate(user)
