"""
Order Service Clients Module

HTTP clients for synchronous communication with other services
"""

from .product_client import ProductClient, create_product_client
from .payment_client import PaymentClient, create_payment_client

__all__ = [
    "ProductClient",
    "PaymentClient",
    "create_product_client",
    "create_payment_client",
]
