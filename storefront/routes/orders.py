# storefront/routes/orders.py
import logging
from functools import partial
from typing import Optional

import anyio
from fastapi import APIRouter, Depends, Header, Request, Response
from sqlalchemy.orm import Session

from storefront.config import Settings, get_app_settings
from storefront.database import get_db
from storefront.exceptions import InvalidSignature, StorefrontError
from storefront.schemas import order as schemas
from storefront.services import ledger, settlement
from storefront.services.checkout import CartLine, checkout
from storefront.utils.audit import client_ip, write_log
from storefront.utils.tokenJWT import Principal, get_current_principal

router = APIRouter(prefix="/orders", tags=["Orders"])
logger = logging.getLogger(__name__)


def get_payment_gateway(request: Request):
    return request.app.state.payment_gateway


# Validate the cart, open a pending order and return the hosted payment page URL
@router.post("/checkout", response_model=schemas.CheckoutResponse)
async def create_checkout(
    payload: schemas.CheckoutRequest,
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    principal: Principal = Depends(get_current_principal),
    gateway=Depends(get_payment_gateway),
):
    cart = [CartLine(product_id=item.id, quantity=item.quantity) for item in payload.items]
    try:
        result = await checkout(db, gateway, settings, principal, cart, payload.address)
    except StorefrontError as e:
        await anyio.to_thread.run_sync(partial(
            write_log, db, user_id=principal.user_id, action="CHECKOUT", resource="orders", status="FAIL",
            ip=client_ip(request), meta={"reason": e.message},
        ))
        raise

    await anyio.to_thread.run_sync(partial(
        write_log, db, user_id=principal.user_id, action="CHECKOUT", resource="orders", status="SUCCESS",
        ip=client_ip(request), meta={"order_id": result.order_id, "total_price": result.total_price},
    ))
    return {"url": result.url}


# Payment processor callback; always answers with an empty body
@router.post("/webhook")
async def payment_webhook(
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
):
    payload = await request.body()
    try:
        result = await anyio.to_thread.run_sync(partial(
            settlement.reconcile_event, db, payload, stripe_signature, settings.STRIPE_WEBHOOK_SECRET,
            tolerance=settings.WEBHOOK_TOLERANCE_SECONDS,
        ))
    except InvalidSignature as e:
        logger.warning("Webhook signature verification failed: %s", e.message)
        return Response(status_code=400)
    except StorefrontError as e:
        logger.warning("Webhook rejected: %s (status %s)", e.message, e.status_code)
        return Response(status_code=e.status_code)

    if result.outcome == settlement.SettlementOutcome.SETTLED:
        await anyio.to_thread.run_sync(partial(
            write_log, db, user_id=result.user_id, action="PAYMENT_SETTLED", resource="orders", status="SUCCESS",
            ip=client_ip(request), meta={"order_id": result.order_id},
        ))
    return Response(status_code=200)


# Order history of the current user, newest first
@router.get("", response_model=schemas.OrdersResponse)
def list_orders(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return {"orders": ledger.orders_for_user(db, principal.user_id)}
