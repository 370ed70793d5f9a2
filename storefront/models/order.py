# storefront/models/order.py
import enum

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import relationship
from storefront.database import Base


class OrderStatus(str, enum.Enum):
    PENDING = "Pending"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    COMPLETED = "Completed"
    CANCELED = "Canceled"
    REFUNDED = "Refunded"


class PaymentStatus(str, enum.Enum):
    UNPAID = "Unpaid"
    PROCESSING = "Payment Processing"
    PAID = "Payment Successful"
    FAILED = "Payment Failed"
    REFUND_PROCESSING = "Refund Processing"
    REFUNDED = "Refunded"


def _enum_values(enum_cls):
    # Persist the human-readable values rather than the member names
    return [member.value for member in enum_cls]


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    total_price = Column(Integer, nullable=False)
    status = Column(
        Enum(OrderStatus, native_enum=False, values_callable=_enum_values, name="order_status"),
        nullable=False,
        default=OrderStatus.PENDING,
    )
    payment_status = Column(
        Enum(PaymentStatus, native_enum=False, values_callable=_enum_values, name="payment_status"),
        nullable=False,
        default=PaymentStatus.UNPAID,
    )
    shipping_address = Column(Text, nullable=False)

    # Payment processor session, kept for manual reconciliation
    payment_session_id = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    items = relationship(
        "OrderItem", back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.id"
    )


# A line of an order. Name and price are snapshots taken at checkout, and
# product_id is a plain value so the line survives product deletion.
class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, nullable=False)
    product_name = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Integer, nullable=False)

    order = relationship("Order", back_populates="items")
