from app.features.reviews.models.review import ProductReview, Review

__all__ = ["Review", "ProductReview"]
