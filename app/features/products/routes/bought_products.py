from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.auth.models.user import User
from app.features.auth.routes.auth import get_current_user
from app.features.products.services import library
from app.platform.db.session import get_db
from app.platform.response import api_response

router = APIRouter(prefix="/bought-products", tags=["Bought Products"])


@router.get("", response_model=dict, summary="List purchased products")
async def bought_products(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Products granted to the current user by settled payments."""
    items = await library.get_bought_products(db, current_user.id)
    return api_response(data=items, message="Bought products retrieved")
