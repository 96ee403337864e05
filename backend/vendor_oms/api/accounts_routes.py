"""
Accounts routes – confirmed vendor orders awaiting PO / invoicing.

Endpoints:
  GET /api/assignments/accounts/vendor-orders
  GET /api/assignments/accounts/vendor-orders/{vendor_order_id}      – "{order_number}-{vendor_id}"
  GET /api/assignments/accounts/orders/{order_number}/vendors/{vendor_id}
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from loguru import logger
from sqlmodel import Session

from vendor_oms.api.deps import get_vendor_order_service, to_http_error
from vendor_oms.core.config import settings
from vendor_oms.core.database import get_session
from vendor_oms.core.exceptions import VendorOrderError
from vendor_oms.schemas.filters import (
    AccountsOrderStatus,
    ConfirmedVendorOrderFilters,
    InvoiceStatus,
    POStatus,
)
from vendor_oms.schemas.responses import VendorOrder, VendorOrderListResponse
from vendor_oms.services.aggregation import VendorOrderKey
from vendor_oms.services.vendor_orders import VendorOrderService

accounts_router = APIRouter(prefix="/api/assignments/accounts", tags=["accounts"])


@accounts_router.get("/vendor-orders", response_model=VendorOrderListResponse)
def list_confirmed_vendor_orders(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    vendor_id: Optional[str] = Query(default=None),
    vendor_name: Optional[str] = Query(default=None),
    order_number: Optional[str] = Query(default=None),
    start_date: Optional[datetime] = Query(default=None, description="Vendor action on or after"),
    end_date: Optional[datetime] = Query(default=None, description="Vendor action on or before"),
    order_status: Optional[AccountsOrderStatus] = Query(default=None),
    po_status: Optional[POStatus] = Query(default=None),
    invoice_status: Optional[InvoiceStatus] = Query(default=None),
    service: VendorOrderService = Depends(get_vendor_order_service),
    session: Session = Depends(get_session),
):
    filters = ConfirmedVendorOrderFilters(
        vendor_id=vendor_id,
        vendor_name=vendor_name,
        order_number=order_number,
        start_date=start_date,
        end_date=end_date,
        order_status=order_status,
        po_status=po_status,
        invoice_status=invoice_status,
    )
    try:
        return service.list_confirmed_vendor_orders(session, filters, page, limit)
    except VendorOrderError as exc:
        logger.error(f"List confirmed vendor orders failed: {exc}")
        raise to_http_error(exc)


@accounts_router.get("/vendor-orders/{vendor_order_id}", response_model=VendorOrder)
def get_vendor_order_by_id(
    vendor_order_id: str,
    service: VendorOrderService = Depends(get_vendor_order_service),
    session: Session = Depends(get_session),
):
    try:
        order = service.get_vendor_order_by_id(session, vendor_order_id)
    except VendorOrderError as exc:
        raise to_http_error(exc)
    if order is None:
        raise HTTPException(status_code=404, detail="Vendor order not found")
    return order


@accounts_router.get("/orders/{order_number}/vendors/{vendor_id}", response_model=VendorOrder)
def get_vendor_order(
    order_number: str,
    vendor_id: str,
    service: VendorOrderService = Depends(get_vendor_order_service),
    session: Session = Depends(get_session),
):
    """Unambiguous lookup for order numbers that contain hyphens."""
    try:
        order = service.get_vendor_order(session, VendorOrderKey(order_number, vendor_id))
    except VendorOrderError as exc:
        raise to_http_error(exc)
    if order is None:
        raise HTTPException(status_code=404, detail="Vendor order not found")
    return order
