from storefront.models.favorite import Favorite
from storefront.models.inquiry import Inquiry
from storefront.models.log import Log
from storefront.models.order import Order, OrderItem, OrderStatus, PaymentStatus
from storefront.models.product import Product
from storefront.models.review import Review
from storefront.models.users import User

__all__ = [
    "Favorite",
    "Inquiry",
    "Log",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentStatus",
    "Product",
    "Review",
    "User",
]
