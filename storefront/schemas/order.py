# storefront/schemas/order.py
from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from storefront.models.order import OrderStatus, PaymentStatus


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# A cart line as sent by the client; extra display fields (title, price...) are ignored.
# Prices are never taken from the client.
class CheckoutItem(BaseModel):
    id: int
    quantity: int = Field(le=2**31 - 1)


class CheckoutRequest(BaseModel):
    items: List[CheckoutItem] = []
    address: str = ""


class CheckoutResponse(BaseModel):
    url: str


class OrderItemOut(CamelModel):
    product_name: str
    quantity: int
    unit_price: int


class OrderOut(CamelModel):
    id: int
    total_price: int
    status: OrderStatus
    payment_status: PaymentStatus
    created_at: datetime
    items: List[OrderItemOut]


class OrdersResponse(BaseModel):
    orders: List[OrderOut]
