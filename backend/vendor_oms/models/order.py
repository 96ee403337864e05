"""SQLModel models for orders, order lines and vendors.

These tables are owned by the order-management side of the back office; the
reconciliation engine only reads them when building vendor-order views.
"""
import enum
import uuid
from typing import Optional
from datetime import datetime, timezone
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    """Naive UTC timestamp.

    Every datetime column is declared ``sa_type=DateTime`` (no timezone) so
    the value is stored and read back as-is on any backend.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


class OrderStatus(str, enum.Enum):
    RECEIVED = "RECEIVED"
    ASSIGNED = "ASSIGNED"
    PROCESSING = "PROCESSING"
    FULFILLED = "FULFILLED"
    PARTIALLY_FULFILLED = "PARTIALLY_FULFILLED"
    CLOSED = "CLOSED"
    CANCELLED = "CANCELLED"


class Order(SQLModel, table=True):
    """A customer order; one order has many order items."""

    __tablename__ = "orders"

    id: str = Field(default_factory=new_id, primary_key=True)
    order_number: str = Field(index=True, unique=True)
    # External reference shown to accounts as "order id"
    client_order_id: Optional[str] = Field(default=None, index=True)
    status: OrderStatus = Field(default=OrderStatus.RECEIVED, index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)


class OrderItem(SQLModel, table=True):
    """A single product line within an order."""

    __tablename__ = "order_items"

    id: str = Field(default_factory=new_id, primary_key=True)
    order_id: str = Field(foreign_key="orders.id", index=True)
    sku: Optional[str] = Field(default=None, index=True)
    product_name: str
    quantity: int
    price_per_unit: Optional[float] = None  # None until pricing is finalised


class Vendor(SQLModel, table=True):
    __tablename__ = "vendors"

    id: str = Field(default_factory=new_id, primary_key=True)
    company_name: str = Field(index=True)
    contact_person_name: Optional[str] = None
