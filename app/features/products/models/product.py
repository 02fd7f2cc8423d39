from sqlalchemy import Boolean, Column, Float, Numeric, String, Text

from app.platform.db.base import BaseModel


class Product(BaseModel):
    __tablename__ = "products"

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    main_img_url = Column(String(500), nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    # mean review rating, recomputed together with every review write
    rating = Column(Float, nullable=False, default=0, server_default="0")
    hidden = Column(Boolean, nullable=False, default=False, server_default="0")

    def __repr__(self):
        return f"<Product(id={self.id}, title={self.title})>"
