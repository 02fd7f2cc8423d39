from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_serializer


class RegisterRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    login_type: Optional[Literal["admin", "regular"]] = Field(None, alias="loginType")

    class Config:
        populate_by_name = True


class OAuthTokenRequest(BaseModel):
    access_token: Optional[str] = Field(None, alias="accessToken")

    class Config:
        populate_by_name = True


class UserResponse(BaseModel):
    id: str
    email: str
    name: str
    avatar_url: Optional[str] = None
    auth_provider: str
    is_admin: bool = False
    created_at: datetime

    @field_serializer("created_at")
    def serialize_datetime(self, value, _info):
        """Convert datetime to ISO format string"""
        if isinstance(value, datetime):
            return value.isoformat()
        return value

    class Config:
        from_attributes = True


class AuthResponse(BaseModel):
    user: UserResponse
    token: str
    token_type: str = "bearer"
