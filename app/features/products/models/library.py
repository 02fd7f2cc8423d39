from sqlalchemy import Column, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import relationship

from app.platform.db.base import BaseModel


class SavedProduct(BaseModel):
    __tablename__ = "saved_products"
    __table_args__ = (UniqueConstraint("user_id", "product_id", name="uq_saved_products_user_product"),)

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(String(36), ForeignKey("products.id", ondelete="CASCADE"), nullable=False)


class BoughtProduct(BaseModel):
    __tablename__ = "bought_products"
    __table_args__ = (UniqueConstraint("user_id", "product_id", name="uq_bought_products_user_product"),)

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(String(36), ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    # payment order that granted the product
    order_id = Column(String(64), nullable=True, index=True)

    product = relationship("Product", lazy="joined")
