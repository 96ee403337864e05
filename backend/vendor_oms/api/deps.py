from __future__ import annotations

from typing import Optional

from fastapi import Header, HTTPException, Request

from vendor_oms.core.exceptions import (
    AssignmentConflictError,
    AssignmentNotFoundError,
    AssignmentValidationError,
    InvalidArgumentError,
    VendorOrderError,
)
from vendor_oms.services.assignment_status import AssignmentStatusService
from vendor_oms.services.vendor_orders import VendorOrderService


def get_assignment_service(request: Request) -> AssignmentStatusService:
    return request.app.state.assignment_service


def get_vendor_order_service(request: Request) -> VendorOrderService:
    return request.app.state.vendor_order_service


def get_vendor_id(x_vendor_id: Optional[str] = Header(default=None)) -> str:
    """Acting vendor; set by the gateway in front of this service."""
    if not x_vendor_id:
        raise HTTPException(status_code=403, detail="Vendor profile required")
    return x_vendor_id


def get_actor_id(x_user_id: Optional[str] = Header(default=None)) -> Optional[str]:
    return x_user_id


def to_http_error(exc: VendorOrderError) -> HTTPException:
    """Map a service error to its HTTP response. Storage details never leave the server."""
    if isinstance(exc, AssignmentValidationError):
        return HTTPException(
            status_code=422,
            detail={"message": "Validation failed", "errors": exc.errors},
        )
    if isinstance(exc, InvalidArgumentError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, AssignmentNotFoundError):
        return HTTPException(status_code=404, detail="Assignment not found")
    if isinstance(exc, AssignmentConflictError):
        return HTTPException(status_code=409, detail=str(exc))
    return HTTPException(status_code=500, detail="Internal server error")
