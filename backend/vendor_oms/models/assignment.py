"""SQLModel models for vendor assignments and their audit trail."""
import enum
from typing import Optional
from datetime import datetime
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field

from vendor_oms.models.order import new_id, utcnow


class AssignmentStatus(str, enum.Enum):
    PENDING_CONFIRMATION = "PENDING_CONFIRMATION"
    VENDOR_CONFIRMED_FULL = "VENDOR_CONFIRMED_FULL"
    VENDOR_CONFIRMED_PARTIAL = "VENDOR_CONFIRMED_PARTIAL"
    VENDOR_DECLINED = "VENDOR_DECLINED"
    # Later stages, driven by dispatch and warehouse receipt
    INVOICED = "INVOICED"
    DISPATCHED = "DISPATCHED"
    STORE_RECEIVED = "STORE_RECEIVED"
    VERIFIED_OK = "VERIFIED_OK"
    VERIFIED_MISMATCH = "VERIFIED_MISMATCH"
    COMPLETED = "COMPLETED"


# Statuses a vendor may move a pending assignment into
VENDOR_DECISION_STATUSES = frozenset(
    {
        AssignmentStatus.VENDOR_CONFIRMED_FULL,
        AssignmentStatus.VENDOR_CONFIRMED_PARTIAL,
        AssignmentStatus.VENDOR_DECLINED,
    }
)

CONFIRMED_STATUSES = frozenset(
    {
        AssignmentStatus.VENDOR_CONFIRMED_FULL,
        AssignmentStatus.VENDOR_CONFIRMED_PARTIAL,
    }
)


class AssignedOrderItem(SQLModel, table=True):
    """
    The portion of an order item assigned to one vendor.

    This is the unit a vendor confirms or declines. ``confirmed_quantity`` and
    ``vendor_action_at`` stay empty until the vendor acts.
    """

    __tablename__ = "assigned_order_items"

    id: str = Field(default_factory=new_id, primary_key=True)
    order_item_id: str = Field(foreign_key="order_items.id", index=True)
    vendor_id: str = Field(foreign_key="vendors.id", index=True)
    status: AssignmentStatus = Field(
        default=AssignmentStatus.PENDING_CONFIRMATION, index=True
    )
    assigned_quantity: int
    confirmed_quantity: Optional[int] = None
    vendor_remarks: Optional[str] = Field(default=None, max_length=1000)
    assigned_at: datetime = Field(default_factory=utcnow, index=True, sa_type=DateTime)
    vendor_action_at: Optional[datetime] = Field(default=None, index=True, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)


class AuditLog(SQLModel, table=True):
    """Audit trail of vendor actions on assignments."""

    __tablename__ = "audit_logs"

    id: Optional[int] = Field(default=None, primary_key=True)
    actor_id: Optional[str] = Field(default=None, index=True)
    action: str  # e.g. "assignment:confirmed"
    entity_type: str
    entity_id: str = Field(index=True)
    meta: Optional[str] = None  # JSON blob
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
