"""Pydantic request/response schemas for API endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict


class HealthResponse(BaseModel):
    status: str
    db: str
    version: str = "1.0.0"


# ── Assignments ───────────────────────────────────────────────────────────────


class AssignmentStatusUpdate(BaseModel):
    """
    Body of PATCH /api/assignments/{id}/status.

    Kept loose on purpose: status and quantity rules are enforced by the
    status engine so the caller gets one per-field error map.
    """

    status: str
    confirmed_quantity: Optional[Any] = None  # type-checked by the engine
    vendor_remarks: Optional[str] = None


class OrderSummary(BaseModel):
    id: str
    order_number: str
    status: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OrderItemSummary(BaseModel):
    id: str
    product_name: str
    sku: Optional[str]
    quantity: int
    order: OrderSummary


class AssignmentRead(BaseModel):
    id: str
    vendor_id: str
    assigned_quantity: int
    confirmed_quantity: Optional[int]
    status: str
    vendor_remarks: Optional[str]
    assigned_at: datetime
    vendor_action_at: Optional[datetime]
    order_item: OrderItemSummary


class AssignmentStatusUpdateResult(BaseModel):
    assignment: AssignmentRead
    order_status_updated: bool
    new_order_status: Optional[str] = None


# ── Vendor orders ─────────────────────────────────────────────────────────────


class VendorOrderItem(BaseModel):
    sku: str
    product: str
    qty: int            # assigned (requested) quantity
    confirmed_qty: int
    # Vendor view only
    assignment_id: Optional[str] = None
    status: Optional[str] = None
    backorder_qty: Optional[int] = None


class VendorOrder(BaseModel):
    """A logical vendor order: the assignments of one order for one vendor."""

    id: str  # "{order_number}-{vendor_id}"
    vendor_id: str
    vendor_name: str
    items: list[VendorOrderItem]
    order_status: str
    po_status: str
    invoice_status: str
    order_date: datetime
    confirmation_date: Optional[datetime]
    order_number: str
    order_id: str
    total_amount: float
    total_items: int
    total_confirmed: int


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class VendorOrderListResponse(BaseModel):
    orders: list[VendorOrder]
    pagination: Pagination
