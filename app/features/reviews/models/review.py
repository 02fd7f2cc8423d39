from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from app.platform.db.base import BaseModel


class Review(BaseModel):
    __tablename__ = "reviews"
    __table_args__ = (CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"),)

    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=False)

    product_review = relationship("ProductReview", back_populates="review", uselist=False, passive_deletes=True)


class ProductReview(BaseModel):
    """Ties a review to the product it rates and the account that wrote it."""

    __tablename__ = "product_reviews"
    __table_args__ = (UniqueConstraint("user_id", "product_id", name="uq_product_reviews_user_product"),)

    review_id = Column(String(36), ForeignKey("reviews.id", ondelete="CASCADE"), nullable=False, unique=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(String(36), ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)

    review = relationship("Review", back_populates="product_review")
