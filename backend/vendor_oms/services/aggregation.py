"""
Vendor-order projection.

A "vendor order" is never stored: it is the set of assignments of one order
for one vendor, rebuilt from joined assignment rows on every query. Everything
in this module is a pure function of its input rows so the grouping, status
rollup and totals can be exercised without a database.

  AssignmentRow      – one assignment joined with its item, order and vendor
  VendorOrderKey     – (order_number, vendor_id); the only place it becomes a
                       delimited string is the API edge
  group_assignments  – rows → list[VendorOrder]
  sort_vendor_orders – most recent vendor action first
  paginate           – slice after grouping and filtering
"""
from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, NamedTuple, Optional, Protocol

from vendor_oms.core.exceptions import InvalidArgumentError
from vendor_oms.models.assignment import AssignmentStatus
from vendor_oms.schemas.responses import Pagination, VendorOrder, VendorOrderItem

SKU_PLACEHOLDER = "N/A"
UNKNOWN_VENDOR = "Unknown Vendor"
MIXED = "Mixed"

PO_PENDING = "Pending"
INVOICE_NOT_CREATED = "Not Created"

MAX_PAGE_SIZE = 100


class Audience(str, enum.Enum):
    VENDOR = "vendor"
    ACCOUNTS = "accounts"


class ItemStatus(str, enum.Enum):
    """Human-facing status of a single assignment."""

    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    PARTIALLY_CONFIRMED = "Partially Confirmed"
    DECLINED = "Declined"
    NOT_AVAILABLE = "Not Available"


_ITEM_STATUS = {
    AssignmentStatus.PENDING_CONFIRMATION: ItemStatus.PENDING,
    AssignmentStatus.VENDOR_CONFIRMED_FULL: ItemStatus.CONFIRMED,
    AssignmentStatus.VENDOR_CONFIRMED_PARTIAL: ItemStatus.PARTIALLY_CONFIRMED,
    AssignmentStatus.VENDOR_DECLINED: ItemStatus.DECLINED,
}


class VendorOrderKey(NamedTuple):
    order_number: str
    vendor_id: str

    def to_id(self) -> str:
        return f"{self.order_number}-{self.vendor_id}"

    @classmethod
    def from_id(cls, value: str) -> Optional["VendorOrderKey"]:
        """
        Parse a composite id by splitting on the FIRST hyphen.

        Order numbers that contain hyphens therefore do not round-trip
        ("ORD-2024-001-v1" → ("ORD", "2024-001-v1")); use the structured
        (order_number, vendor_id) lookup for those.
        """
        order_number, _, vendor_id = (value or "").partition("-")
        if not order_number or not vendor_id:
            return None
        return cls(order_number, vendor_id)


@dataclass(frozen=True)
class AssignmentRow:
    assignment_id: str
    status: AssignmentStatus
    assigned_quantity: int
    confirmed_quantity: Optional[int]
    assigned_at: datetime
    vendor_action_at: Optional[datetime]
    sku: Optional[str]
    product_name: str
    price_per_unit: Optional[float]
    order_id: str
    order_number: str
    client_order_id: Optional[str]
    order_created_at: datetime
    vendor_id: str
    vendor_name: Optional[str]

    @property
    def key(self) -> VendorOrderKey:
        return VendorOrderKey(self.order_number, self.vendor_id)


class DocumentStatusResolver(Protocol):
    """Source of purchase-order and invoice status for a vendor order."""

    def resolve(self, key: VendorOrderKey) -> tuple[str, str]:
        ...


class PlaceholderDocumentStatus:
    """Fixed statuses until the PO and invoice subsystems are wired in."""

    def resolve(self, key: VendorOrderKey) -> tuple[str, str]:
        return PO_PENDING, INVOICE_NOT_CREATED


# ── Per-item derivations ──────────────────────────────────────────────────────


def item_status(status: AssignmentStatus) -> ItemStatus:
    return _ITEM_STATUS.get(AssignmentStatus(status), ItemStatus.NOT_AVAILABLE)


def billable_quantity(row: AssignmentRow) -> int:
    """Confirmed quantity when the vendor stated one, else the assigned quantity."""
    if AssignmentStatus(row.status) is AssignmentStatus.VENDOR_DECLINED:
        return 0
    if row.confirmed_quantity is not None:
        return row.confirmed_quantity
    return row.assigned_quantity


def line_amount(row: AssignmentRow) -> float:
    return billable_quantity(row) * (row.price_per_unit or 0)


def backorder_quantity(row: AssignmentRow) -> int:
    if AssignmentStatus(row.status) is not AssignmentStatus.VENDOR_CONFIRMED_PARTIAL:
        return 0
    return max(row.assigned_quantity - (row.confirmed_quantity or 0), 0)


def rollup_status(
    statuses: Iterable[AssignmentStatus], *, partial_is_confirmed: bool = False
) -> str:
    """
    Single status for a group of assignments.

    A group whose items all share one status takes that status, anything else
    is "Mixed". With ``partial_is_confirmed`` (accounts view) a partial
    confirmation counts as Confirmed.
    """
    seen = set()
    for status in statuses:
        ui = item_status(status)
        if partial_is_confirmed and ui is ItemStatus.PARTIALLY_CONFIRMED:
            ui = ItemStatus.CONFIRMED
        seen.add(ui)

    if len(seen) == 1:
        (only,) = seen
        if only is not ItemStatus.NOT_AVAILABLE:
            return only.value
    return MIXED


# ── Grouping ──────────────────────────────────────────────────────────────────


def build_vendor_order(
    key: VendorOrderKey,
    rows: list[AssignmentRow],
    audience: Audience,
    documents: Optional[DocumentStatusResolver] = None,
) -> VendorOrder:
    first = rows[0]
    vendor_view = audience is Audience.VENDOR

    items = []
    for row in rows:
        vendor_fields = {}
        if vendor_view:
            vendor_fields = {
                "assignment_id": row.assignment_id,
                "status": item_status(row.status).value,
                "backorder_qty": backorder_quantity(row),
            }
        items.append(
            VendorOrderItem(
                sku=row.sku or SKU_PLACEHOLDER,
                product=row.product_name,
                qty=row.assigned_quantity,
                confirmed_qty=row.confirmed_quantity or 0,
                **vendor_fields,
            )
        )

    confirmed_ui = {ItemStatus.CONFIRMED, ItemStatus.PARTIALLY_CONFIRMED}
    po_status, invoice_status = (documents or PlaceholderDocumentStatus()).resolve(key)

    return VendorOrder(
        id=key.to_id(),
        vendor_id=key.vendor_id,
        vendor_name=first.vendor_name or UNKNOWN_VENDOR,
        items=items,
        order_status=rollup_status(
            (r.status for r in rows), partial_is_confirmed=not vendor_view
        ),
        po_status=po_status,
        invoice_status=invoice_status,
        order_date=first.order_created_at,
        # First row only; rows of one group are normally actioned together
        confirmation_date=first.vendor_action_at,
        order_number=key.order_number,
        order_id=first.client_order_id or first.order_id,
        total_amount=round(sum(line_amount(r) for r in rows), 2),
        total_items=len(rows),
        total_confirmed=sum(1 for r in rows if item_status(r.status) in confirmed_ui),
    )


def group_assignments(
    rows: Iterable[AssignmentRow],
    audience: Audience,
    documents: Optional[DocumentStatusResolver] = None,
) -> list[VendorOrder]:
    """Partition rows by (order_number, vendor_id) and build one vendor order per group."""
    groups: dict[VendorOrderKey, list[AssignmentRow]] = {}
    for row in rows:
        groups.setdefault(row.key, []).append(row)

    return [
        build_vendor_order(key, members, audience, documents)
        for key, members in groups.items()
    ]


def sort_vendor_orders(orders: Iterable[VendorOrder]) -> list[VendorOrder]:
    """Most recent confirmation first; orders never actioned go last. Stable."""
    return sorted(
        orders,
        key=lambda o: o.confirmation_date or datetime.min,
        reverse=True,
    )


def check_page(page: int, limit: int, max_limit: int = MAX_PAGE_SIZE) -> None:
    if page < 1:
        raise InvalidArgumentError("Page must be a positive number")
    if limit < 1 or limit > max_limit:
        raise InvalidArgumentError(f"Limit must be between 1 and {max_limit}")


def paginate(
    orders: list[VendorOrder], page: int, limit: int, max_limit: int = MAX_PAGE_SIZE
) -> tuple[list[VendorOrder], Pagination]:
    """Slice already grouped, filtered and sorted orders; past the end is empty."""
    check_page(page, limit, max_limit)

    total = len(orders)
    offset = (page - 1) * limit
    return orders[offset:offset + limit], Pagination(
        page=page,
        limit=limit,
        total=total,
        pages=math.ceil(total / limit),
    )
