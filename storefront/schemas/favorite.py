# storefront/schemas/favorite.py
from typing import Optional

from pydantic import BaseModel, ConfigDict

from storefront.schemas.order import CamelModel


class FavoriteAdd(CamelModel):
    product_id: int


class FavoriteStatus(CamelModel):
    is_favorite: bool


class FavoriteProduct(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    price: int
    image_url: Optional[str] = None
