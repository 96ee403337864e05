"""
Vendor Order Aggregator.

Reads assignment rows joined with their order item, order and vendor, and
serves them as logical vendor orders for two audiences:

  list_my_assignments          – one vendor, every status, grouped by order
  list_confirmed_vendor_orders – accounts, confirmed lines of every vendor
  get_vendor_order             – one (order_number, vendor_id) group
  get_vendor_order_by_id       – same, from the "{order_number}-{vendor_id}" id

Filters are applied in three stages, always before pagination:
  1. store  – status set, vendor id, order id, order-number substring, date range
  2. rows   – vendor-name substring (not indexable)
  3. groups – derived order / PO / invoice status
"""
from __future__ import annotations

from typing import Optional

from loguru import logger
from sqlalchemy import String
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, func, select

from vendor_oms.core.config import settings
from vendor_oms.core.exceptions import StorageError
from vendor_oms.models.assignment import AssignedOrderItem, CONFIRMED_STATUSES
from vendor_oms.models.order import Order, OrderItem, Vendor
from vendor_oms.schemas.filters import ConfirmedVendorOrderFilters, VendorAssignmentFilters
from vendor_oms.schemas.responses import VendorOrder, VendorOrderListResponse
from vendor_oms.services.aggregation import (
    AssignmentRow,
    Audience,
    DocumentStatusResolver,
    PlaceholderDocumentStatus,
    VendorOrderKey,
    check_page,
    group_assignments,
    paginate,
    sort_vendor_orders,
)

# ── Query helpers ─────────────────────────────────────────────────────────────


def _joined_assignments():
    return (
        select(AssignedOrderItem, OrderItem, Order, Vendor)
        .join(OrderItem, AssignedOrderItem.order_item_id == OrderItem.id)
        .join(Order, OrderItem.order_id == Order.id)
        .join(Vendor, AssignedOrderItem.vendor_id == Vendor.id)
    )


def _order_number_contains(stmt, term: str):
    """Case-insensitive substring match on the order number."""
    return stmt.where(
        func.lower(Order.order_number, type_=String).contains(term.lower(), autoescape=True)
    )


def _to_row(assignment: AssignedOrderItem, item: OrderItem, order: Order, vendor: Vendor) -> AssignmentRow:
    return AssignmentRow(
        assignment_id=assignment.id,
        status=assignment.status,
        assigned_quantity=assignment.assigned_quantity,
        confirmed_quantity=assignment.confirmed_quantity,
        assigned_at=assignment.assigned_at,
        vendor_action_at=assignment.vendor_action_at,
        sku=item.sku,
        product_name=item.product_name,
        price_per_unit=item.price_per_unit,
        order_id=order.id,
        order_number=order.order_number,
        client_order_id=order.client_order_id,
        order_created_at=order.created_at,
        vendor_id=vendor.id,
        vendor_name=vendor.company_name,
    )


def _matches(value: Optional[str], wanted: Optional[str]) -> bool:
    return not wanted or value == wanted


# ── Service ───────────────────────────────────────────────────────────────────


class VendorOrderService:
    """Stateless; build once and share. Every call takes the request's session."""

    def __init__(
        self,
        documents: Optional[DocumentStatusResolver] = None,
        max_page_size: int = settings.MAX_PAGE_SIZE,
    ):
        self.documents = documents or PlaceholderDocumentStatus()
        self.max_page_size = max_page_size

    def _fetch(self, session: Session, stmt, context: str) -> list[AssignmentRow]:
        try:
            return [_to_row(*result) for result in session.exec(stmt).all()]
        except SQLAlchemyError as exc:
            logger.exception(f"{context}: assignment query failed: {exc}")
            raise StorageError(f"Failed to retrieve {context}") from exc

    # ── Vendor view ───────────────────────────────────────────────────────────

    def list_my_assignments(
        self,
        session: Session,
        vendor_id: str,
        filters: Optional[VendorAssignmentFilters] = None,
        page: int = 1,
        limit: int = settings.DEFAULT_PAGE_SIZE,
    ) -> VendorOrderListResponse:
        """All of one vendor's assignments, grouped by order."""
        filters = filters or VendorAssignmentFilters()
        check_page(page, limit, self.max_page_size)

        stmt = _joined_assignments().where(AssignedOrderItem.vendor_id == vendor_id)
        if filters.status:
            stmt = stmt.where(AssignedOrderItem.status == filters.status)
        if filters.order_id:
            stmt = stmt.where(Order.id == filters.order_id)
        if filters.order_number:
            stmt = _order_number_contains(stmt, filters.order_number)
        if filters.start_date:
            stmt = stmt.where(AssignedOrderItem.assigned_at >= filters.start_date)
        if filters.end_date:
            stmt = stmt.where(AssignedOrderItem.assigned_at <= filters.end_date)
        stmt = stmt.order_by(
            col(AssignedOrderItem.assigned_at).desc(), col(AssignedOrderItem.id)
        )

        rows = self._fetch(session, stmt, "vendor assignments")
        orders = group_assignments(rows, Audience.VENDOR, self.documents)
        orders = [o for o in orders if _matches(o.order_status, filters.order_status)]

        return self._page(orders, page, limit)

    # ── Accounts view ─────────────────────────────────────────────────────────

    def list_confirmed_vendor_orders(
        self,
        session: Session,
        filters: Optional[ConfirmedVendorOrderFilters] = None,
        page: int = 1,
        limit: int = settings.DEFAULT_PAGE_SIZE,
    ) -> VendorOrderListResponse:
        """Fully or partially confirmed assignments of every vendor, grouped by order + vendor."""
        filters = filters or ConfirmedVendorOrderFilters()
        check_page(page, limit, self.max_page_size)

        stmt = _joined_assignments().where(
            col(AssignedOrderItem.status).in_(list(CONFIRMED_STATUSES))
        )
        if filters.vendor_id:
            stmt = stmt.where(AssignedOrderItem.vendor_id == filters.vendor_id)
        if filters.order_number:
            stmt = _order_number_contains(stmt, filters.order_number)
        if filters.start_date:
            stmt = stmt.where(AssignedOrderItem.vendor_action_at >= filters.start_date)
        if filters.end_date:
            stmt = stmt.where(AssignedOrderItem.vendor_action_at <= filters.end_date)
        stmt = stmt.order_by(
            col(AssignedOrderItem.vendor_action_at).desc(), col(AssignedOrderItem.id)
        )

        rows = self._fetch(session, stmt, "vendor orders")

        if filters.vendor_name:
            needle = filters.vendor_name.lower()
            rows = [r for r in rows if needle in (r.vendor_name or "").lower()]

        orders = group_assignments(rows, Audience.ACCOUNTS, self.documents)
        orders = [
            o
            for o in orders
            if _matches(o.order_status, filters.order_status)
            and _matches(o.po_status, filters.po_status)
            and _matches(o.invoice_status, filters.invoice_status)
        ]

        return self._page(orders, page, limit)

    def get_vendor_order(self, session: Session, key: VendorOrderKey) -> Optional[VendorOrder]:
        """The confirmed lines of one order for one vendor, or None."""
        stmt = (
            _joined_assignments()
            .where(col(AssignedOrderItem.status).in_(list(CONFIRMED_STATUSES)))
            .where(Order.order_number == key.order_number)
            .where(AssignedOrderItem.vendor_id == key.vendor_id)
            .order_by(col(AssignedOrderItem.vendor_action_at).desc(), col(AssignedOrderItem.id))
        )
        rows = self._fetch(session, stmt, "vendor order details")
        orders = group_assignments(rows, Audience.ACCOUNTS, self.documents)
        return orders[0] if orders else None

    def get_vendor_order_by_id(self, session: Session, vendor_order_id: str) -> Optional[VendorOrder]:
        key = VendorOrderKey.from_id(vendor_order_id)
        if key is None:
            logger.debug(f"Unparseable vendor order id: {vendor_order_id!r}")
            return None
        return self.get_vendor_order(session, key)

    def _page(self, orders: list[VendorOrder], page: int, limit: int) -> VendorOrderListResponse:
        page_orders, pagination = paginate(
            sort_vendor_orders(orders), page, limit, self.max_page_size
        )
        return VendorOrderListResponse(orders=page_orders, pagination=pagination)
