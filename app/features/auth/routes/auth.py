from typing import Optional

from fastapi import APIRouter, Depends, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.auth.models.user import User
from app.features.auth.schemas.auth import LoginRequest, RegisterRequest
from app.features.auth.services.auth_service import AuthService
from app.features.auth.utils.security import decode_access_token
from app.platform.db.session import get_db
from app.platform.exceptions import ForbiddenError, UnauthorizedError
from app.platform.response import api_response

router = APIRouter(prefix="/auth", tags=["Authentication"])
security = HTTPBearer(auto_error=False)


@router.post(
    "/register",
    response_model=dict,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
async def register(request: RegisterRequest, db: AsyncSession = Depends(get_db)):
    """
    Create an account with email, password and display name.
    Returns the user and an access token.
    """
    auth_service = AuthService(db)
    auth_response = await auth_service.register_user(request)

    return api_response(
        data=auth_response,
        message="User registered successfully",
        status_code=status.HTTP_201_CREATED,
    )


@router.post("/login", response_model=dict, summary="Login user")
async def login(request: LoginRequest, db: AsyncSession = Depends(get_db)):
    auth_service = AuthService(db)
    auth_response = await auth_service.login_user(request)

    return api_response(data=auth_response, message="Login successful")


async def _user_from_credentials(
    credentials: Optional[HTTPAuthorizationCredentials], db: AsyncSession
) -> Optional[User]:
    if credentials is None:
        return None
    try:
        payload = decode_access_token(credentials.credentials)
    except ValueError as e:
        raise UnauthorizedError(str(e))

    user_id = payload.get("sub")
    if user_id is None:
        raise UnauthorizedError("Invalid authentication credentials")

    user = await AuthService(db).get_user_by_id(user_id)
    if user is None:
        raise UnauthorizedError("User not found")
    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Dependency to get the current authenticated user.
    """
    user = await _user_from_credentials(credentials, db)
    if user is None:
        raise UnauthorizedError("Access token required")
    return user


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """Like get_current_user, but anonymous requests get None."""
    return await _user_from_credentials(credentials, db)


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_admin:
        raise ForbiddenError("Admin access required")
    return current_user


@router.get("/me", response_model=dict, summary="Get current user")
async def me(current_user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    profile = await AuthService(db).get_profile(current_user.id)
    return api_response(data={"user": profile}, message="User retrieved successfully")
