# storefront/schemas/review.py
from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict, Field

from storefront.schemas.product import PaginationOut


class ReviewOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    user_id: int
    score: int
    content: str
    created_at: datetime
    user_name: str


class ReviewsPage(BaseModel):
    reviews: List[ReviewOut]
    review_avg: float
    pagination: PaginationOut


class ReviewCreate(BaseModel):
    rating: int = Field(ge=1, le=5)
    content: str
