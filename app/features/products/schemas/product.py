from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class SaveProductRequest(BaseModel):
    product_id: Optional[str] = Field(None, alias="productId")

    class Config:
        populate_by_name = True


class BoughtProductResponse(BaseModel):
    id: str
    product_id: str
    product_title: str
    product_description: str
    price: Decimal
    order_id: Optional[str] = None
    bought_at: datetime
