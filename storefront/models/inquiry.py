# storefront/models/inquiry.py
from sqlalchemy import Column, DateTime, Integer, String, Text, func
from storefront.database import Base


# Contact form submission
class Inquiry(Base):
    __tablename__ = "inquiries"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
