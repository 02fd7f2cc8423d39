from app.features.auth.schemas.auth import (
    AuthResponse,
    LoginRequest,
    OAuthTokenRequest,
    RegisterRequest,
    UserResponse,
)

__all__ = ["AuthResponse", "LoginRequest", "OAuthTokenRequest", "RegisterRequest", "UserResponse"]
