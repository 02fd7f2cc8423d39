from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.auth.models.user import User
from app.features.auth.routes.auth import get_current_user
from app.features.products.schemas.product import SaveProductRequest
from app.features.products.services import library
from app.platform.db.session import get_db
from app.platform.response import api_response

router = APIRouter(prefix="/saved-products", tags=["Saved Products"])


@router.get("/ids", response_model=dict, summary="List saved product ids")
async def saved_product_ids(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    product_ids = await library.get_saved_product_ids(db, current_user.id)
    return api_response(data=product_ids, message="Saved products retrieved")


@router.post("", response_model=dict, status_code=status.HTTP_201_CREATED, summary="Save a product")
async def save_product(
    request: SaveProductRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    await library.save_product(db, current_user.id, request.product_id)
    return api_response(
        data={"product_id": request.product_id},
        message="Product saved",
        status_code=status.HTTP_201_CREATED,
    )


@router.delete("/{product_id}", response_model=dict, summary="Remove a saved product")
async def unsave_product(
    product_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    await library.unsave_product(db, current_user.id, product_id)
    return api_response(message="Product removed from saved")
