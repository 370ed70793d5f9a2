# storefront/services/settlement.py
"""Settlement of paid orders from payment processor webhook events."""
import enum
import json
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.exceptions import MalformedEvent, PersistenceFailure, StockReconciliationFailed, StorefrontError
from storefront.models.order import Order, OrderStatus, PaymentStatus
from storefront.models.product import Product
from storefront.services import ledger
from storefront.utils.webhook_signature import verify_signature

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"


class SettlementOutcome(str, enum.Enum):
    SETTLED = "settled"
    ALREADY_SETTLED = "already_settled"
    IGNORED = "ignored"


@dataclass(frozen=True)
class SettlementResult:
    outcome: SettlementOutcome
    order_id: Optional[int] = None
    user_id: Optional[int] = None


def parse_event(payload: bytes) -> dict:
    try:
        event = json.loads(payload)
    except (UnicodeDecodeError, ValueError) as e:
        raise MalformedEvent("Webhook payload is not valid JSON") from e
    if not isinstance(event, dict):
        raise MalformedEvent("Webhook payload is not an object")
    return event


def _parse_id(value) -> int:
    if isinstance(value, bool):
        raise ValueError(value)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return int(value.strip())
    raise ValueError(value)


def extract_order_reference(event: dict) -> Tuple[int, int]:
    """Returns (order_id, user_id) from the checkout session metadata."""
    data = event.get("data")
    session = data.get("object") if isinstance(data, dict) else None
    metadata = session.get("metadata") if isinstance(session, dict) else None
    if not isinstance(metadata, dict):
        raise MalformedEvent("Webhook event has no metadata")

    raw_order_id, raw_user_id = metadata.get("orderId"), metadata.get("userId")
    if raw_order_id is None or raw_user_id is None:
        logger.warning("Webhook metadata missing: orderId=%s, userId=%s", raw_order_id, raw_user_id)
        raise MalformedEvent("Webhook metadata missing orderId or userId")
    try:
        return _parse_id(raw_order_id), _parse_id(raw_user_id)
    except ValueError:
        logger.warning("Webhook metadata format error: orderId=%s, userId=%s", raw_order_id, raw_user_id)
        raise MalformedEvent("Webhook metadata orderId/userId must be numeric")


def _debit_stock(db: Session, product_id: int, quantity: int) -> bool:
    # Compare-and-swap: only succeeds while enough stock remains
    result = db.execute(
        update(Product)
        .where(Product.id == product_id, Product.stock >= quantity)
        .values(stock=Product.stock - quantity, sales_count=Product.sales_count + quantity)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount > 0


def settle_order(db: Session, order_id: int, user_id: int) -> SettlementOutcome:
    """Marks the order paid and debits stock for every line, all or nothing.

    The paid transition is guarded on the current payment status, so a
    replayed event finds nothing to update and returns ALREADY_SETTLED.
    """
    try:
        result = db.execute(
            update(Order)
            .where(
                Order.id == order_id,
                Order.user_id == user_id,
                Order.payment_status != PaymentStatus.PAID,
            )
            .values(status=OrderStatus.PROCESSING, payment_status=PaymentStatus.PAID)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            db.rollback()
            logger.info("Webhook: no order status to update (OrderID=%s, UserID=%s)", order_id, user_id)
            return SettlementOutcome.ALREADY_SETTLED

        for product_id, quantity in ledger.order_lines(db, order_id):
            if not _debit_stock(db, product_id, quantity):
                raise StockReconciliationFailed(order_id, product_id)

        db.commit()
    except StockReconciliationFailed as e:
        db.rollback()
        logger.error(
            "Webhook: insufficient stock or product not found (OrderID=%s, ProductID=%s); "
            "order left unpaid, manual reconciliation required",
            e.order_id, e.product_id,
        )
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Webhook: settlement failed (OrderID=%s)", order_id)
        raise PersistenceFailure() from e

    logger.info("Webhook processing successful (OrderID=%s)", order_id)
    return SettlementOutcome.SETTLED


def reconcile_event(db: Session, payload: bytes, signature: str, secret: str, tolerance: int = 300) -> SettlementResult:
    """Verifies, parses and applies one webhook delivery."""
    if not secret:
        logger.error("STRIPE_WEBHOOK_SECRET is not set; refusing webhook")
        raise StorefrontError()

    verify_signature(payload, signature, secret, tolerance=tolerance)
    event = parse_event(payload)

    event_type = event.get("type")
    if event_type != CHECKOUT_COMPLETED:
        logger.info("Webhook received (ignoring event): %s", event_type)
        return SettlementResult(SettlementOutcome.IGNORED)

    order_id, user_id = extract_order_reference(event)
    logger.info("Webhook received (%s): OrderID=%s, UserID=%s", event_type, order_id, user_id)
    return SettlementResult(settle_order(db, order_id, user_id), order_id, user_id)
