from vendor_oms.models.order import Order, OrderItem, OrderStatus, Vendor
from vendor_oms.models.assignment import AssignedOrderItem, AssignmentStatus, AuditLog

__all__ = [
    "Order",
    "OrderItem",
    "OrderStatus",
    "Vendor",
    "AssignedOrderItem",
    "AssignmentStatus",
    "AuditLog",
]
