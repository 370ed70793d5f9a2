# storefront/models/product.py
from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, String, Text, func
from storefront.database import Base


# Represents a single catalog product.
# Prices are integer minor-currency units; stock can never go below zero,
# which settlement relies on for its conditional decrement.
class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)

    price = Column(Integer, CheckConstraint("price >= 0"), nullable=False)
    stock = Column(Integer, CheckConstraint("stock >= 0"), nullable=False, default=0)
    sales_count = Column(Integer, nullable=False, default=0, server_default="0")

    # File name inside the upload directory, served under /uploads
    image_url = Column(String(255), nullable=True)
    is_featured = Column(Boolean, nullable=False, default=False, server_default="0")

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
