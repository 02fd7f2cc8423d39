from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class ReviewCreate(BaseModel):
    product_id: Optional[str] = Field(None, alias="productId")
    rating: Optional[Any] = None
    comment: Optional[str] = None

    class Config:
        populate_by_name = True


class ReviewResponse(BaseModel):
    id: str
    product_id: str = Field(alias="productId")
    user_id: str = Field(alias="userId")
    user_name: str = Field(alias="userName")
    user_avatar: str = Field(alias="userAvatar")
    user_initials: str = Field(alias="userInitials")
    rating: int
    comment: str
    created_at: datetime = Field(alias="createdAt")

    class Config:
        populate_by_name = True
