"""
Review writes and the product rating they maintain.

Every insert or delete runs in one transaction that also recomputes
products.rating as the mean of the product's review ratings (0 without
reviews). The product row is locked first so concurrent writers for the same
product serialize on it.
"""
from typing import List
from urllib.parse import quote_plus

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.auth.models.user import User
from app.features.products.models.product import Product
from app.features.reviews.models.review import ProductReview, Review
from app.features.reviews.schemas.review import ReviewResponse
from app.platform.exceptions import ConflictError, NotFoundError, ValidationError
from app.platform.logger import get_logger

logger = get_logger("review_service")


def avatar_for(user: User) -> str:
    if user.avatar_url:
        return user.avatar_url
    return f"https://ui-avatars.com/api/?name={quote_plus(user.name)}&background=random"


def to_response(review: Review, link: ProductReview, user: User) -> ReviewResponse:
    return ReviewResponse(
        id=review.id,
        product_id=link.product_id,
        user_id=user.id,
        user_name=user.name,
        user_avatar=avatar_for(user),
        user_initials=user.name[:2],
        rating=review.rating,
        comment=review.comment,
        created_at=link.created_at,
    )


def parse_rating(rating) -> int:
    if isinstance(rating, bool):
        raise ValidationError("Rating must be between 1 and 5")
    try:
        value = float(rating)
    except (TypeError, ValueError):
        raise ValidationError("Rating must be between 1 and 5")
    if not value.is_integer() or not 1 <= value <= 5:
        raise ValidationError("Rating must be between 1 and 5")
    return int(value)


class ReviewService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def submit_review(self, user: User, product_id: str, rating, comment: str) -> ReviewResponse:
        if not product_id or rating in (None, "") or not comment or not comment.strip():
            raise ValidationError("Product ID, rating, and comment are required")
        rating = parse_rating(rating)

        try:
            await self._lock_product(product_id)

            if await self._already_reviewed(user.id, product_id):
                raise ConflictError("You have already reviewed this product")

            review = Review(rating=rating, comment=comment.strip())
            self.db.add(review)
            await self.db.flush()

            link = ProductReview(review_id=review.id, user_id=user.id, product_id=product_id)
            self.db.add(link)
            await self.db.flush()

            await self._recompute_rating(product_id)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("You have already reviewed this product")
        except Exception:
            await self.db.rollback()
            raise

        logger.info(f"Review {review.id} added to product {product_id}")
        return to_response(review, link, user)

    async def delete_review(self, user_id: str, review_id: str) -> None:
        """Delete a review owned by `user_id`. Others' reviews look the same as missing ones."""
        try:
            result = await self.db.execute(
                select(ProductReview.product_id).where(
                    ProductReview.review_id == review_id, ProductReview.user_id == user_id
                )
            )
            product_id = result.scalar_one_or_none()
            if product_id is None:
                raise NotFoundError("Review not found or access denied")

            await self._lock_product(product_id)
            await self.db.execute(delete(ProductReview).where(ProductReview.review_id == review_id))
            await self.db.execute(delete(Review).where(Review.id == review_id))
            await self._recompute_rating(product_id)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(f"Review {review_id} deleted from product {product_id}")

    async def list_product_reviews(self, product_id: str) -> List[ReviewResponse]:
        return await self._list(ProductReview.product_id == product_id)

    async def list_user_reviews(self, user_id: str) -> List[ReviewResponse]:
        return await self._list(ProductReview.user_id == user_id)

    async def _list(self, condition) -> List[ReviewResponse]:
        result = await self.db.execute(
            select(Review, ProductReview, User)
            .join(ProductReview, ProductReview.review_id == Review.id)
            .join(User, User.id == ProductReview.user_id)
            .where(condition)
            .order_by(ProductReview.created_at.desc())
        )
        return [to_response(review, link, user) for review, link, user in result.all()]

    async def _already_reviewed(self, user_id: str, product_id: str) -> bool:
        result = await self.db.execute(
            select(ProductReview.id).where(ProductReview.user_id == user_id, ProductReview.product_id == product_id)
        )
        return result.scalar_one_or_none() is not None

    async def _lock_product(self, product_id: str) -> None:
        # FOR UPDATE is a no-op on SQLite, which serializes writers itself
        result = await self.db.execute(
            select(Product.id).where(Product.id == product_id).with_for_update()
        )
        if result.scalar_one_or_none() is None:
            raise NotFoundError("Product not found")

    async def _recompute_rating(self, product_id: str) -> None:
        mean_rating = (
            select(func.coalesce(func.avg(Review.rating), 0))
            .join(ProductReview, ProductReview.review_id == Review.id)
            .where(ProductReview.product_id == product_id)
            .scalar_subquery()
        )
        await self.db.execute(
            update(Product)
            .where(Product.id == product_id)
            .values(rating=mean_rating)
            .execution_options(synchronize_session=False)
        )
