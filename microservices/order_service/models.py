"""
Order Service Data Models

Pydantic models for orders, line items, receipts, paging and the
payloads exchanged with the product and payment services.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime
from decimal import Decimal


# Core Order Models

class OrderItem(BaseModel):
    """Line item with the price snapshotted at order creation"""
    product_id: str
    quantity: int
    price: Decimal
    # Resolved from the catalog on read, never persisted
    name: Optional[str] = None


class Receipt(BaseModel):
    """Receipt created when an order is paid"""
    receipt_id: str
    order_id: str
    receipt_url: str
    created_at: datetime


class Order(BaseModel):
    """Core order model"""
    order_id: str
    total_amount: Decimal
    total_items: int
    status: str
    paid: bool = False
    paid_at: Optional[datetime] = None
    charge_reference: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class OrderWithItems(Order):
    """Order together with its line items and optional receipt"""
    items: List[OrderItem] = Field(default_factory=list)
    receipt: Optional[Receipt] = None


# Request Models

class OrderItemRequest(BaseModel):
    """One requested line"""
    product_id: str = Field(..., min_length=1, description="Catalog product ID")
    quantity: int = Field(..., gt=0, description="Units requested")


class OrderCreateRequest(BaseModel):
    """Create order request"""
    items: List[OrderItemRequest] = Field(..., min_length=1, description="Requested lines")


class OrderPaginationParams(BaseModel):
    """Order paging parameters"""
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, gt=0)
    status: Optional[str] = None

    @field_validator('status')
    @classmethod
    def normalize_status(cls, v):
        return v.upper() if v else v


class OrderStatusChangeRequest(BaseModel):
    """Change order status request"""
    status: str = Field(..., min_length=1)

    @field_validator('status')
    @classmethod
    def normalize_status(cls, v):
        return v.upper()


class PaidOrderRequest(BaseModel):
    """Payment confirmation delivered by the payment service"""
    order_id: str = Field(..., min_length=1)
    charge_reference: str = Field(..., min_length=1, description="Charge ID at the payment provider")
    receipt_url: str = Field(..., min_length=1)


# Response Models

class PaginationMeta(BaseModel):
    """Paging metadata"""
    total: int
    page: int
    last_page: int


class OrderListResponse(BaseModel):
    """Order page"""
    data: List[Order]
    meta: PaginationMeta


# Service Integration Models

class ProductRecord(BaseModel):
    """Authoritative product record returned by the product service"""
    id: str
    name: str
    price: Decimal


class PaymentSessionItem(BaseModel):
    """Display line sent to the payment provider"""
    name: Optional[str] = None
    price: Decimal
    quantity: int


class PaymentSessionRequest(BaseModel):
    """Request to payment service"""
    order_id: str
    currency: str
    items: List[PaymentSessionItem]


class OrderServiceStatus(BaseModel):
    """Order service status response"""
    service: str = "order_service"
    status: str = "operational"
    port: int = 8210
    version: str = "1.0.0"
    database_connected: bool
    event_bus_connected: bool = False
    timestamp: Optional[datetime] = None
