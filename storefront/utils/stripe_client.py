# storefront/utils/stripe_client.py
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional
from urllib.parse import urljoin

import httpx

from storefront.config import Settings
from storefront.exceptions import PaymentSessionCreationFailed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LineItem:
    name: str
    unit_amount: int
    quantity: int


@dataclass(frozen=True)
class PaymentSession:
    id: str
    url: str


def encode_session_form(
    line_items: List[LineItem],
    currency: str,
    success_url: str,
    cancel_url: str,
    customer_email: Optional[str],
    metadata: Dict[str, str],
) -> Dict[str, str]:
    """Flattens session parameters into Stripe's bracketed form encoding."""
    form = {
        "mode": "payment",
        "success_url": success_url,
        "cancel_url": cancel_url,
    }
    if customer_email:
        form["customer_email"] = customer_email

    for i, item in enumerate(line_items):
        prefix = f"line_items[{i}]"
        form[f"{prefix}[price_data][currency]"] = currency
        form[f"{prefix}[price_data][product_data][name]"] = item.name
        form[f"{prefix}[price_data][unit_amount]"] = str(item.unit_amount)
        form[f"{prefix}[quantity]"] = str(item.quantity)

    for key, value in metadata.items():
        form[f"metadata[{key}]"] = str(value)
    return form


class StripeClient:
    """Creates hosted Checkout sessions through the Stripe REST API."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport = None):
        self.api_url = settings.STRIPE_API_URL
        self.secret_key = settings.STRIPE_SECRET_KEY
        self.currency = settings.PAYMENT_CURRENCY
        self.timeout = httpx.Timeout(settings.PAYMENT_TIMEOUT_SECONDS)
        self._transport = transport

        if not self.secret_key:
            logger.warning("STRIPE_SECRET_KEY is not set; payment session creation will fail")

    async def create_session(
        self,
        line_items: List[LineItem],
        success_url: str,
        cancel_url: str,
        customer_email: Optional[str],
        metadata: Dict[str, str],
    ) -> PaymentSession:
        session_url = urljoin(self.api_url, "/v1/checkout/sessions")
        form = encode_session_form(line_items, self.currency, success_url, cancel_url, customer_email, metadata)
        headers = {"Authorization": f"Bearer {self.secret_key}"}

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.post(session_url, data=form, headers=headers)
                response.raise_for_status()
                body = response.json()
            except httpx.TimeoutException as e:
                logger.error("Stripe checkout session request timed out: %s", e)
                raise PaymentSessionCreationFailed() from e
            except httpx.HTTPStatusError as e:
                logger.error("Stripe checkout session error: status=%s body=%s",
                             e.response.status_code, e.response.text[:1000])
                raise PaymentSessionCreationFailed() from e
            except (httpx.RequestError, ValueError) as e:
                logger.error("Stripe checkout session request failed: %s", e)
                raise PaymentSessionCreationFailed() from e

        if not body.get("id") or not body.get("url"):
            logger.error("Stripe checkout session response missing id/url: %s", body)
            raise PaymentSessionCreationFailed()

        return PaymentSession(id=body["id"], url=body["url"])
