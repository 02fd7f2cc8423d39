from app.features.products.models.library import BoughtProduct, SavedProduct
from app.features.products.models.product import Product

__all__ = ["Product", "SavedProduct", "BoughtProduct"]
