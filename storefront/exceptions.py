# storefront/exceptions.py
"""Error taxonomy shared by services and routes.

Every error carries the HTTP status it maps to and the message that is safe to
show to the caller. Infra errors keep a generic public message; the detail
goes to the logs only.
"""
from typing import Iterable

from fastapi import status

SERVER_ERROR_MESSAGE = "Server error occurred"


class StorefrontError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = SERVER_ERROR_MESSAGE

    def __init__(self, message: str = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


# Validation (400)
class ValidationFailed(StorefrontError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid input"


class InvalidCart(ValidationFailed):
    message = "Cart is empty"


class CartProductNotFound(ValidationFailed):
    message = "Some cart products were not found"

    def __init__(self, missing_ids: Iterable[int] = ()):
        self.missing_ids = sorted(missing_ids)
        super().__init__()


class MalformedEvent(ValidationFailed):
    message = "Malformed webhook event"


class EmailAlreadyRegistered(ValidationFailed):
    message = "This email address is already registered"


# Security
class InvalidSignature(StorefrontError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid signature"


# AuthZ
class Unauthenticated(StorefrontError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Authentication required"


class Forbidden(StorefrontError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "Access denied"


class NotFound(StorefrontError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Not found"


# Conflict
class InsufficientStock(StorefrontError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, product_names: Iterable[str]):
        self.product_names = list(product_names)
        super().__init__(f"Out of stock products: {', '.join(self.product_names)}")


class StockReconciliationFailed(StorefrontError):
    """Stock ran out between checkout and settlement; needs manual refund."""

    def __init__(self, order_id: int, product_id: int):
        self.order_id = order_id
        self.product_id = product_id
        super().__init__()


# Transient / infra (500)
class PersistenceFailure(StorefrontError):
    pass


class PaymentSessionCreationFailed(StorefrontError):
    message = "Failed to generate payment page"
