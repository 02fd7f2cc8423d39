from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.auth.models.user import User
from app.features.auth.routes.auth import get_current_user
from app.features.reviews.schemas.review import ReviewCreate
from app.features.reviews.services.review_service import ReviewService
from app.platform.db.session import get_db
from app.platform.response import api_response

router = APIRouter(prefix="/reviews", tags=["Reviews"])


@router.get("/product/{product_id}", response_model=dict, summary="Reviews of a product")
async def product_reviews(product_id: str, db: AsyncSession = Depends(get_db)):
    reviews = await ReviewService(db).list_product_reviews(product_id)
    return api_response(data=reviews, message="Reviews retrieved successfully")


@router.get("/user/{user_id}", response_model=dict, summary="Reviews written by a user")
async def user_reviews(user_id: str, db: AsyncSession = Depends(get_db)):
    reviews = await ReviewService(db).list_user_reviews(user_id)
    return api_response(data=reviews, message="Reviews retrieved successfully")


@router.post("", response_model=dict, status_code=status.HTTP_201_CREATED, summary="Submit a review")
async def submit_review(
    request: ReviewCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    One review per user and product; the product's rating is updated in the
    same transaction. 400 invalid input, 404 unknown product, 409 already reviewed.
    """
    review = await ReviewService(db).submit_review(
        current_user, request.product_id, request.rating, request.comment
    )
    return api_response(data=review, message="Review submitted successfully", status_code=status.HTTP_201_CREATED)


@router.delete("/{review_id}", response_model=dict, summary="Delete own review")
async def delete_review(
    review_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    await ReviewService(db).delete_review(current_user.id, review_id)
    return api_response(message="Review deleted successfully")
