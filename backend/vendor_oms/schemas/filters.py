"""Filter sets for the two vendor-order views."""
from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel

from vendor_oms.models.assignment import AssignmentStatus

# Rollup statuses a vendor order can take in each view
VendorOrderStatus = Literal["Pending", "Confirmed", "Partially Confirmed", "Declined", "Mixed"]
AccountsOrderStatus = Literal["Confirmed", "Awaiting PO", "PO Generated", "Delivered", "Closed"]
POStatus = Literal["Pending", "Generated"]
InvoiceStatus = Literal["Not Created", "Awaiting Validation", "Approved"]


class VendorAssignmentFilters(BaseModel):
    """Vendor "my assignments" view. Dates bound ``assigned_at`` (inclusive)."""

    status: Optional[AssignmentStatus] = None
    order_id: Optional[str] = None
    order_number: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    # Applied to the derived group status
    order_status: Optional[VendorOrderStatus] = None


class ConfirmedVendorOrderFilters(BaseModel):
    """Accounts view. Dates bound ``vendor_action_at`` (inclusive)."""

    vendor_id: Optional[str] = None
    vendor_name: Optional[str] = None  # matched after fetch, not in SQL
    order_number: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    # Applied to derived group fields
    order_status: Optional[AccountsOrderStatus] = None
    po_status: Optional[POStatus] = None
    invoice_status: Optional[InvoiceStatus] = None
