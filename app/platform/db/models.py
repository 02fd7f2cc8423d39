"""Imports every model so Base.metadata knows all tables (Alembic, tests)."""
from app.features.auth.models.oauth import OAuthAccount
from app.features.auth.models.user import User
from app.features.payments.models.settlement import PaymentSettlement
from app.features.polls.models.poll import Poll, PollOption, PollVote
from app.features.products.models.library import BoughtProduct, SavedProduct
from app.features.products.models.product import Product
from app.features.reviews.models.review import ProductReview, Review
from app.platform.db.base import Base

__all__ = [
    "Base",
    "User",
    "OAuthAccount",
    "Product",
    "SavedProduct",
    "BoughtProduct",
    "PaymentSettlement",
    "Review",
    "ProductReview",
    "Poll",
    "PollOption",
    "PollVote",
]
