# storefront/services/checkout.py
"""Checkout: turns a client cart into a pending order plus a payment session."""
import logging
from dataclasses import dataclass
from functools import partial
from typing import Dict, Iterable, List

import anyio
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.config import Settings
from storefront.exceptions import (
    CartProductNotFound,
    InsufficientStock,
    InvalidCart,
    PersistenceFailure,
    StorefrontError,
)
from storefront.services import catalog, ledger
from storefront.services.catalog import CatalogEntry
from storefront.utils.stripe_client import LineItem
from storefront.utils.tokenJWT import Principal

logger = logging.getLogger(__name__)

SHIPPING_LINE_NAME = "Shipping"


@dataclass(frozen=True)
class CartLine:
    product_id: int
    quantity: int


@dataclass(frozen=True)
class CheckoutResult:
    order_id: int
    total_price: int
    url: str


def merge_cart(cart: Iterable[CartLine]) -> Dict[int, int]:
    """Collapses the cart into {product_id: quantity}, keeping first-seen order."""
    quantities: Dict[int, int] = {}
    for line in cart:
        if line.quantity <= 0:
            raise InvalidCart("Quantity must be at least 1")
        quantities[line.product_id] = quantities.get(line.product_id, 0) + line.quantity
    if not quantities:
        raise InvalidCart()
    return quantities


def check_stock(quantities: Dict[int, int], products: Dict[int, CatalogEntry]):
    """Advisory stock check; settlement re-checks authoritatively."""
    missing = set(quantities) - set(products)
    if missing:
        logger.info("Cart products not found: %s", sorted(missing))
        raise CartProductNotFound(missing)

    shortages = [products[pid].name for pid, qty in quantities.items() if products[pid].stock < qty]
    if shortages:
        raise InsufficientStock(shortages)


def compute_total(quantities: Dict[int, int], products: Dict[int, CatalogEntry], shipping_cost: int) -> int:
    return sum(products[pid].price * qty for pid, qty in quantities.items()) + shipping_cost


def _line_items(quantities: Dict[int, int], products: Dict[int, CatalogEntry], shipping_cost: int) -> List[LineItem]:
    items = [
        LineItem(name=products[pid].name, unit_amount=products[pid].price, quantity=qty)
        for pid, qty in quantities.items()
    ]
    items.append(LineItem(name=SHIPPING_LINE_NAME, unit_amount=shipping_cost, quantity=1))
    return items


def _open_pending_order(db: Session, principal: Principal, quantities: Dict[int, int],
                        shipping_address: str, shipping_cost: int):
    products = catalog.lookup_by_ids(db, quantities.keys())
    check_stock(quantities, products)
    total = compute_total(quantities, products, shipping_cost)

    order = ledger.create_pending_order(
        db,
        user_id=principal.user_id,
        total_price=total,
        shipping_address=shipping_address,
        lines=[
            ledger.LineSnapshot(
                product_id=pid,
                product_name=products[pid].name,
                quantity=qty,
                unit_price=products[pid].price,
            )
            for pid, qty in quantities.items()
        ],
    )
    return order, products, total


def _confirm_order(db: Session, order, session_id: str):
    order.payment_session_id = session_id
    db.commit()


async def checkout(
    db: Session,
    gateway,
    settings: Settings,
    principal: Principal,
    cart: Iterable[CartLine],
    shipping_address: str,
) -> CheckoutResult:
    """Validates the cart, opens a Pending/Unpaid order and a payment session.

    The order is committed only once the payment session exists. If the
    session cannot be created, nothing is persisted.
    """
    quantities = merge_cart(cart)
    shipping_address = (shipping_address or "").strip()
    if not shipping_address:
        raise InvalidCart("Shipping address is required")

    session = None
    try:
        # Blocking database work runs in a worker thread; only the gateway call stays on the loop
        order, products, total = await anyio.to_thread.run_sync(
            partial(_open_pending_order, db, principal, quantities, shipping_address, settings.SHIPPING_COST)
        )
        order_id = order.id

        base_url = settings.FRONTEND_BASE_URL.rstrip("/")
        session = await gateway.create_session(
            line_items=_line_items(quantities, products, settings.SHIPPING_COST),
            success_url=f"{base_url}/account?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{base_url}/order-confirm",
            customer_email=principal.email,
            metadata={"orderId": str(order_id), "userId": str(principal.user_id)},
        )

        await anyio.to_thread.run_sync(_confirm_order, db, order, session.id)
    except StorefrontError:
        await anyio.to_thread.run_sync(db.rollback)
        raise
    except SQLAlchemyError as e:
        await anyio.to_thread.run_sync(db.rollback)
        if session is not None:
            # The processor already holds a session for an order we failed to keep
            logger.error(
                "Checkout commit failed after payment session %s was created (user %s): %s",
                session.id, principal.user_id, e,
            )
        else:
            logger.exception("Checkout persistence error (user %s)", principal.user_id)
        raise PersistenceFailure("Failed to register order") from e

    logger.info("Checkout opened: order=%s user=%s total=%s session=%s",
                order_id, principal.user_id, total, session.id)
    return CheckoutResult(order_id=order_id, total_price=total, url=session.url)
