# storefront/schemas/inquiry.py
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr


class InquiryCreate(BaseModel):
    name: str
    email: EmailStr
    message: str


class InquiryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    message: str
    created_at: datetime
