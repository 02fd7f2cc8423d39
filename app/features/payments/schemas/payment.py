from typing import Any, List, Optional, Union

from pydantic import BaseModel, Field


class CartItem(BaseModel):
    id: Optional[Union[str, int]] = None
    product_id: Optional[Union[str, int]] = Field(None, alias="productId")
    quantity: Optional[int] = 1

    class Config:
        populate_by_name = True
        extra = "allow"

    @property
    def resolved_product_id(self) -> Optional[str]:
        value = self.product_id if self.product_id is not None else self.id
        return str(value) if value is not None else None


class InitiatePaymentRequest(BaseModel):
    email: Optional[str] = None
    cart_items: Optional[List[CartItem]] = Field(None, alias="cartItems")
    total_amount: Optional[Union[float, str]] = Field(None, alias="totalAmount")
    product_names: Optional[Any] = Field(None, alias="productNames")

    class Config:
        populate_by_name = True


class VerifyPaymentRequest(BaseModel):
    email: Optional[str] = None
    code: Optional[Union[str, int]] = None


class WebhookNotification(BaseModel):
    data: Optional[str] = None
    signature: Optional[str] = None
