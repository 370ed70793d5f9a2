# storefront/services/ledger.py
"""Order and order-line persistence."""
from dataclasses import dataclass
from typing import List, Sequence

from sqlalchemy.orm import Session, selectinload

from storefront.models.order import Order, OrderItem, OrderStatus, PaymentStatus


@dataclass(frozen=True)
class LineSnapshot:
    product_id: int
    product_name: str
    quantity: int
    unit_price: int


def create_pending_order(
    db: Session, *, user_id: int, total_price: int, shipping_address: str, lines: Sequence[LineSnapshot]
) -> Order:
    """Adds a Pending/Unpaid order with its lines and flushes to assign an id.

    Does not commit; the caller owns the transaction.
    """
    order = Order(
        user_id=user_id,
        total_price=total_price,
        status=OrderStatus.PENDING,
        payment_status=PaymentStatus.UNPAID,
        shipping_address=shipping_address,
    )
    order.items = [
        OrderItem(
            product_id=line.product_id,
            product_name=line.product_name,
            quantity=line.quantity,
            unit_price=line.unit_price,
        )
        for line in lines
    ]
    db.add(order)
    db.flush()
    return order


def order_lines(db: Session, order_id: int) -> List[tuple]:
    return (
        db.query(OrderItem.product_id, OrderItem.quantity)
        .filter(OrderItem.order_id == order_id)
        .order_by(OrderItem.id.asc())
        .all()
    )


def orders_for_user(db: Session, user_id: int) -> List[Order]:
    # Newest first; lines keep their insertion order
    return (
        db.query(Order)
        .options(selectinload(Order.items))
        .filter(Order.user_id == user_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )
