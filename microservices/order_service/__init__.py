"""
Order Service

Order lifecycle orchestrator for isA platform.

Features:
- Order creation priced from the product catalog
- Paged order listing filtered by status
- Status transitions over a configured status set
- Payment session requests to the payment service
- Payment confirmation consumed from the event bus
"""

__version__ = "1.0.0"
