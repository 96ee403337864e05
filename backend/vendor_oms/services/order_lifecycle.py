"""Order-level status reactions to vendor decisions on assignments."""
from __future__ import annotations

from typing import Optional, Protocol

from loguru import logger
from sqlmodel import Session

from vendor_oms.models.assignment import AssignmentStatus, CONFIRMED_STATUSES
from vendor_oms.models.order import Order, OrderStatus


class OrderLifecycle(Protocol):
    def on_assignment_decision(
        self, session: Session, order: Order, decision: AssignmentStatus
    ) -> Optional[OrderStatus]:
        """Apply any order status change inside the caller's transaction.

        Returns the new order status, or None when the order is unchanged.
        """
        ...


class ReceivedToProcessingLifecycle:
    """The first vendor confirmation moves a RECEIVED order to PROCESSING."""

    def on_assignment_decision(
        self, session: Session, order: Order, decision: AssignmentStatus
    ) -> Optional[OrderStatus]:
        if decision not in CONFIRMED_STATUSES or order.status != OrderStatus.RECEIVED:
            return None

        order.status = OrderStatus.PROCESSING
        session.add(order)
        logger.info(f"Order {order.order_number}: RECEIVED → PROCESSING")
        return OrderStatus.PROCESSING
