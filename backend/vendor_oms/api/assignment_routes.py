"""
Vendor assignment routes.

Endpoints:
  GET   /api/assignments/my                  – the vendor's assignments grouped by order
  GET   /api/assignments/{id}                – one assignment
  PATCH /api/assignments/{id}/status         – confirm (full/partial) or decline
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from loguru import logger
from sqlmodel import Session

from vendor_oms.api.deps import (
    get_actor_id,
    get_assignment_service,
    get_vendor_id,
    get_vendor_order_service,
    to_http_error,
)
from vendor_oms.core.config import settings
from vendor_oms.core.database import get_session
from vendor_oms.core.exceptions import VendorOrderError
from vendor_oms.models.assignment import AssignmentStatus
from vendor_oms.schemas.filters import VendorAssignmentFilters, VendorOrderStatus
from vendor_oms.schemas.responses import (
    AssignmentRead,
    AssignmentStatusUpdate,
    AssignmentStatusUpdateResult,
    VendorOrderListResponse,
)
from vendor_oms.services.assignment_status import AssignmentStatusService
from vendor_oms.services.vendor_orders import VendorOrderService

assignment_router = APIRouter(prefix="/api/assignments", tags=["assignments"])


@assignment_router.get("/my", response_model=VendorOrderListResponse)
def list_my_assignments(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    status: Optional[AssignmentStatus] = Query(default=None),
    order_id: Optional[str] = Query(default=None),
    order_number: Optional[str] = Query(default=None, max_length=100),
    start_date: Optional[datetime] = Query(default=None, description="Assigned on or after"),
    end_date: Optional[datetime] = Query(default=None, description="Assigned on or before"),
    order_status: Optional[VendorOrderStatus] = Query(default=None, description="Rollup status, e.g. Mixed"),
    vendor_id: str = Depends(get_vendor_id),
    service: VendorOrderService = Depends(get_vendor_order_service),
    session: Session = Depends(get_session),
):
    filters = VendorAssignmentFilters(
        status=status,
        order_id=order_id,
        order_number=order_number,
        start_date=start_date,
        end_date=end_date,
        order_status=order_status,
    )
    try:
        return service.list_my_assignments(session, vendor_id, filters, page, limit)
    except VendorOrderError as exc:
        logger.error(f"List assignments failed for vendor {vendor_id}: {exc}")
        raise to_http_error(exc)


@assignment_router.get("/{assignment_id}", response_model=AssignmentRead)
def get_assignment(
    assignment_id: str,
    vendor_id: str = Depends(get_vendor_id),
    service: AssignmentStatusService = Depends(get_assignment_service),
    session: Session = Depends(get_session),
):
    try:
        assignment = service.get_vendor_assignment(session, assignment_id, vendor_id)
    except VendorOrderError as exc:
        raise to_http_error(exc)
    if assignment is None:
        raise HTTPException(status_code=404, detail="Assignment not found")
    return assignment


@assignment_router.patch("/{assignment_id}/status", response_model=AssignmentStatusUpdateResult)
def update_assignment_status(
    assignment_id: str,
    payload: AssignmentStatusUpdate,
    vendor_id: str = Depends(get_vendor_id),
    actor_id: Optional[str] = Depends(get_actor_id),
    service: AssignmentStatusService = Depends(get_assignment_service),
    session: Session = Depends(get_session),
):
    """Record the vendor's decision. Only pending assignments can be decided."""
    try:
        return service.update_assignment_status(
            session,
            assignment_id,
            payload.status,
            payload.confirmed_quantity,
            payload.vendor_remarks,
            vendor_id=vendor_id,
            actor_id=actor_id,
        )
    except VendorOrderError as exc:
        raise to_http_error(exc)
