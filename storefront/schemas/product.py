# storefront/schemas/product.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from storefront.schemas.order import CamelModel


# Base configuration for ORM/row compatibility
class ORMBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class PaginationOut(CamelModel):
    current_page: int
    per_page: int
    total_items: int
    total_pages: int


# Row of the product listing, with review aggregates
class ProductListItem(ORMBase):
    id: int
    name: str
    price: int
    stock: Optional[int] = None
    image_url: Optional[str] = None
    review_avg: float = 0.0
    review_count: int = 0
    updated_at: Optional[datetime] = None


class ProductsPage(BaseModel):
    products: List[ProductListItem]
    pagination: PaginationOut


# Full product detail
class ProductOut(ORMBase):
    id: int
    name: str
    description: Optional[str] = None
    price: int
    stock: int
    image_url: Optional[str] = None
    sales_count: int
    is_featured: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class HomePageProduct(ORMBase):
    id: int
    name: str
    price: int
    image_url: Optional[str] = None
    review_avg: float = 0.0
    review_count: int = 0


class HomePageOut(CamelModel):
    featured: List[HomePageProduct]
    new_arrivals: List[HomePageProduct]
    best_sellers: List[HomePageProduct]
