"""
Assignment Status Engine.

Applies a vendor's decision to one assigned order line:

  PENDING_CONFIRMATION → VENDOR_CONFIRMED_FULL | VENDOR_CONFIRMED_PARTIAL | VENDOR_DECLINED

Input is validated before the store is touched. The write itself is a single
UPDATE conditioned on the row still being PENDING_CONFIRMATION, so of two
concurrent decisions on the same assignment exactly one wins and the other
gets AssignmentConflictError. The assignment update, any order status change
and the audit row commit together or not at all.
"""
from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Callable, Optional

from loguru import logger
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from vendor_oms.core.exceptions import (
    AssignmentConflictError,
    AssignmentNotFoundError,
    AssignmentValidationError,
    InvalidArgumentError,
    StorageError,
    VendorOrderError,
)
from vendor_oms.models.assignment import (
    AssignedOrderItem,
    AssignmentStatus,
    AuditLog,
    VENDOR_DECISION_STATUSES,
)
from vendor_oms.models.order import Order, OrderItem, utcnow
from vendor_oms.schemas.responses import (
    AssignmentRead,
    AssignmentStatusUpdateResult,
    OrderItemSummary,
    OrderSummary,
)
from vendor_oms.services.order_lifecycle import OrderLifecycle, ReceivedToProcessingLifecycle

MAX_CONFIRMED_QUANTITY = 999_999
MAX_REMARKS_LENGTH = 1000

AUDIT_ACTIONS = {
    AssignmentStatus.VENDOR_CONFIRMED_FULL: "assignment:confirmed",
    AssignmentStatus.VENDOR_CONFIRMED_PARTIAL: "assignment:partial_confirmed",
    AssignmentStatus.VENDOR_DECLINED: "assignment:declined",
}


# ── Validation ────────────────────────────────────────────────────────────────


def validate_status_update(
    status: Any,
    confirmed_quantity: Any = None,
    vendor_remarks: Optional[str] = None,
) -> AssignmentStatus:
    """
    Check a decision without looking at the store.

    Raises InvalidArgumentError for a status outside the three vendor
    decisions, AssignmentValidationError with every field problem otherwise.
    """
    try:
        decision = AssignmentStatus(status)
    except ValueError:
        raise InvalidArgumentError(f"Invalid status value: {status!r}")
    if decision not in VENDOR_DECISION_STATUSES:
        raise InvalidArgumentError(f"Vendors cannot set status {decision.value}")

    errors: dict[str, list[str]] = {}

    if confirmed_quantity is None:
        if decision is AssignmentStatus.VENDOR_CONFIRMED_PARTIAL:
            errors.setdefault("confirmed_quantity", []).append(
                "Confirmed quantity is required for partial confirmations"
            )
    elif isinstance(confirmed_quantity, bool) or not isinstance(confirmed_quantity, int):
        errors.setdefault("confirmed_quantity", []).append(
            "Confirmed quantity must be an integer"
        )
    else:
        if confirmed_quantity < 0:
            errors.setdefault("confirmed_quantity", []).append(
                "Confirmed quantity cannot be negative"
            )
        if confirmed_quantity > MAX_CONFIRMED_QUANTITY:
            errors.setdefault("confirmed_quantity", []).append(
                "Confirmed quantity cannot exceed 999,999"
            )

    if vendor_remarks is not None and len(vendor_remarks) > MAX_REMARKS_LENGTH:
        errors.setdefault("vendor_remarks", []).append(
            f"Vendor remarks must be at most {MAX_REMARKS_LENGTH} characters"
        )

    if errors:
        raise AssignmentValidationError(errors)
    return decision


def _check_against_assignment(
    decision: AssignmentStatus,
    confirmed_quantity: Optional[int],
    assignment: AssignedOrderItem,
) -> None:
    if decision is not AssignmentStatus.VENDOR_CONFIRMED_PARTIAL:
        return

    problems = []
    if confirmed_quantity < 1:
        problems.append("Confirmed quantity must be at least 1 for partial confirmations")
    elif confirmed_quantity > assignment.assigned_quantity:
        problems.append("Confirmed quantity cannot exceed assigned quantity")

    if problems:
        raise AssignmentValidationError({"confirmed_quantity": problems})


def _resolve_confirmed_quantity(
    decision: AssignmentStatus,
    confirmed_quantity: Optional[int],
    assignment: AssignedOrderItem,
) -> Optional[int]:
    # FULL always confirms what was assigned; any quantity sent with it is ignored
    if decision is AssignmentStatus.VENDOR_CONFIRMED_FULL:
        return assignment.assigned_quantity
    if decision is AssignmentStatus.VENDOR_CONFIRMED_PARTIAL:
        return confirmed_quantity
    return None


# ── Read model ────────────────────────────────────────────────────────────────


def to_assignment_read(
    assignment: AssignedOrderItem,
    item: OrderItem,
    order: Order,
    order_status: Optional[str] = None,
) -> AssignmentRead:
    return AssignmentRead(
        id=assignment.id,
        vendor_id=assignment.vendor_id,
        assigned_quantity=assignment.assigned_quantity,
        confirmed_quantity=assignment.confirmed_quantity,
        status=AssignmentStatus(assignment.status).value,
        vendor_remarks=assignment.vendor_remarks,
        assigned_at=assignment.assigned_at,
        vendor_action_at=assignment.vendor_action_at,
        order_item=OrderItemSummary(
            id=item.id,
            product_name=item.product_name,
            sku=item.sku,
            quantity=item.quantity,
            order=OrderSummary(
                id=order.id,
                order_number=order.order_number,
                status=order_status or order.status.value,
                created_at=order.created_at,
            ),
        ),
    )


# ── Service ───────────────────────────────────────────────────────────────────


class AssignmentStatusService:
    """Stateless; build once at startup with its collaborators and share."""

    def __init__(
        self,
        lifecycle: Optional[OrderLifecycle] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.lifecycle = lifecycle or ReceivedToProcessingLifecycle()
        self.clock = clock

    @staticmethod
    def _load(session: Session, assignment_id: str, vendor_id: Optional[str]):
        stmt = (
            select(AssignedOrderItem, OrderItem, Order)
            .join(OrderItem, AssignedOrderItem.order_item_id == OrderItem.id)
            .join(Order, OrderItem.order_id == Order.id)
            .where(AssignedOrderItem.id == assignment_id)
        )
        if vendor_id is not None:
            stmt = stmt.where(AssignedOrderItem.vendor_id == vendor_id)
        return session.exec(stmt).first()

    def get_vendor_assignment(
        self, session: Session, assignment_id: str, vendor_id: str
    ) -> Optional[AssignmentRead]:
        """One assignment as seen by its vendor; None if missing or someone else's."""
        try:
            row = self._load(session, assignment_id, vendor_id)
        except SQLAlchemyError as exc:
            logger.exception(f"Failed to load assignment {assignment_id}: {exc}")
            raise StorageError("Failed to retrieve assignment details") from exc
        return to_assignment_read(*row) if row else None

    def update_assignment_status(
        self,
        session: Session,
        assignment_id: str,
        status: Any,
        confirmed_quantity: Optional[int] = None,
        vendor_remarks: Optional[str] = None,
        *,
        vendor_id: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> AssignmentStatusUpdateResult:
        """
        Record a vendor's decision on a pending assignment.

        ``vendor_id`` scopes the lookup to that vendor's assignments;
        ``actor_id`` is written to the audit log.
        """
        decision = validate_status_update(status, confirmed_quantity, vendor_remarks)

        try:
            row = self._load(session, assignment_id, vendor_id)
            if row is None:
                raise AssignmentNotFoundError(f"Assignment {assignment_id} not found")
            assignment, item, order = row

            previous_status = AssignmentStatus(assignment.status)
            if previous_status is not AssignmentStatus.PENDING_CONFIRMATION:
                raise AssignmentConflictError("Assignment has already been processed")

            _check_against_assignment(decision, confirmed_quantity, assignment)
            confirmed = _resolve_confirmed_quantity(decision, confirmed_quantity, assignment)

            now = self.clock()
            values: dict[str, Any] = {
                "status": decision,
                "confirmed_quantity": confirmed,
                "vendor_action_at": now,
                "updated_at": now,
            }
            if vendor_remarks is not None:
                values["vendor_remarks"] = vendor_remarks

            result = session.exec(
                update(AssignedOrderItem)
                .where(AssignedOrderItem.id == assignment_id)
                .where(AssignedOrderItem.status == AssignmentStatus.PENDING_CONFIRMATION)
                .values(**values)
            )
            if result.rowcount != 1:
                raise AssignmentConflictError("Assignment has already been processed")

            new_order_status = self.lifecycle.on_assignment_decision(session, order, decision)

            session.add(
                AuditLog(
                    actor_id=actor_id,
                    action=AUDIT_ACTIONS[decision],
                    entity_type="AssignedOrderItem",
                    entity_id=assignment_id,
                    meta=json.dumps(
                        {
                            "previous_status": previous_status.value,
                            "new_status": decision.value,
                            "confirmed_quantity": confirmed,
                            "vendor_remarks": vendor_remarks,
                            "order_number": order.order_number,
                            "order_status_updated": new_order_status is not None,
                            "new_order_status": new_order_status.value if new_order_status else None,
                        }
                    ),
                    created_at=now,
                )
            )
            session.commit()
            session.refresh(assignment)
        except VendorOrderError as exc:
            session.rollback()
            logger.warning(f"Assignment {assignment_id}: {decision.value} rejected: {exc}")
            raise
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception(f"Assignment {assignment_id}: status update failed: {exc}")
            raise StorageError("Failed to update assignment status") from exc

        logger.info(
            f"Assignment {assignment_id} → {decision.value} "
            f"(confirmed={assignment.confirmed_quantity}, order={order.order_number})"
        )

        return AssignmentStatusUpdateResult(
            assignment=to_assignment_read(
                assignment,
                item,
                order,
                new_order_status.value if new_order_status else None,
            ),
            order_status_updated=new_order_status is not None,
            new_order_status=new_order_status.value if new_order_status else None,
        )
