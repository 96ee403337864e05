"""
Tests for the assignment status engine: validation, state transition,
order lifecycle, audit trail and the single-writer guarantee.
"""
import json
from datetime import datetime

import pytest
from sqlalchemy import DateTime, update
from sqlalchemy.exc import OperationalError
from sqlmodel import Session, SQLModel, create_engine, select

from conftest import Factory
from vendor_oms.core.exceptions import (
    AssignmentConflictError,
    AssignmentNotFoundError,
    AssignmentValidationError,
    InvalidArgumentError,
    StorageError,
)
from vendor_oms.models import AssignedOrderItem, AssignmentStatus, AuditLog, Order, OrderStatus
from vendor_oms.services.assignment_status import (
    AssignmentStatusService,
    validate_status_update,
)
from vendor_oms.services.vendor_orders import VendorOrderService

NOW = datetime(2024, 6, 1, 12, 30)

PENDING = AssignmentStatus.PENDING_CONFIRMATION
FULL = AssignmentStatus.VENDOR_CONFIRMED_FULL
PARTIAL = AssignmentStatus.VENDOR_CONFIRMED_PARTIAL
DECLINED = AssignmentStatus.VENDOR_DECLINED


@pytest.fixture
def service():
    return AssignmentStatusService(clock=lambda: NOW)


@pytest.fixture
def seeded(factory):
    """One vendor with a pending assignment of 100 units on a RECEIVED order."""
    vendor = factory.vendor("Green Leaf Traders")
    order = factory.order("ORD1001")
    item = factory.item(order, quantity=100, price_per_unit=12.5)
    assignment = factory.assignment(item, vendor, assigned_quantity=100)
    return vendor, order, item, assignment


def _reload(session, assignment_id) -> AssignedOrderItem:
    session.expire_all()
    return session.get(AssignedOrderItem, assignment_id)


class TestValidation:
    @pytest.mark.parametrize("status", ["BOGUS", "", None, "COMPLETED", "PENDING_CONFIRMATION"])
    def test_status_outside_vendor_decisions(self, status):
        with pytest.raises(InvalidArgumentError):
            validate_status_update(status)

    def test_invalid_status_rejected_before_store_access(self, service):
        # No session at all: the engine must fail before it needs one
        with pytest.raises(InvalidArgumentError):
            service.update_assignment_status(None, "any-id", "SHIPPED")

    def test_partial_requires_quantity(self):
        with pytest.raises(AssignmentValidationError) as exc_info:
            validate_status_update(PARTIAL.value)
        assert "confirmed_quantity" in exc_info.value.errors

    def test_all_field_errors_reported_together(self):
        with pytest.raises(AssignmentValidationError) as exc_info:
            validate_status_update(FULL.value, 1_000_000, "x" * 1001)
        assert set(exc_info.value.errors) == {"confirmed_quantity", "vendor_remarks"}

    def test_negative_quantity(self):
        with pytest.raises(AssignmentValidationError) as exc_info:
            validate_status_update(PARTIAL.value, -1)
        assert exc_info.value.errors["confirmed_quantity"] == ["Confirmed quantity cannot be negative"]

    def test_non_integer_quantity(self):
        with pytest.raises(AssignmentValidationError):
            validate_status_update(PARTIAL.value, "12")

    def test_limits_are_inclusive(self):
        assert validate_status_update(PARTIAL.value, 999_999, "x" * 1000) is PARTIAL

    def test_declined_needs_no_quantity(self):
        assert validate_status_update(DECLINED.value) is DECLINED


class TestTransitions:
    def test_full_defaults_to_assigned_quantity(self, service, session, seeded):
        _, _, _, assignment = seeded
        result = service.update_assignment_status(session, assignment.id, FULL.value)

        assert result.assignment.status == FULL.value
        assert result.assignment.confirmed_quantity == 100
        assert result.assignment.vendor_action_at == NOW

    def test_full_with_matching_quantity(self, service, session, seeded):
        _, _, _, assignment = seeded
        result = service.update_assignment_status(session, assignment.id, FULL.value, 100)
        assert result.assignment.confirmed_quantity == 100

    def test_full_ignores_a_different_quantity(self, service, session, seeded):
        _, _, _, assignment = seeded
        result = service.update_assignment_status(session, assignment.id, FULL.value, 50)

        assert result.assignment.confirmed_quantity == 100
        stored = _reload(session, assignment.id)
        assert stored.status == FULL
        assert stored.confirmed_quantity == 100

    def test_partial_short_on_stock(self, service, session, seeded):
        vendor, _, _, assignment = seeded
        result = service.update_assignment_status(
            session, assignment.id, PARTIAL.value, 80, "short on stock", vendor_id=vendor.id
        )

        stored = _reload(session, assignment.id)
        assert stored.status == PARTIAL
        assert stored.confirmed_quantity == 80
        assert stored.vendor_remarks == "short on stock"
        assert stored.vendor_action_at == NOW
        assert result.assignment.confirmed_quantity == 80

        listing = VendorOrderService().list_confirmed_vendor_orders(session)
        (vendor_order,) = listing.orders
        assert vendor_order.order_status == "Confirmed"
        assert vendor_order.total_amount == 1000.0

    def test_partial_without_quantity_leaves_row_untouched(self, service, session, seeded):
        _, _, _, assignment = seeded
        with pytest.raises(AssignmentValidationError) as exc_info:
            service.update_assignment_status(session, assignment.id, PARTIAL.value)
        assert "confirmed_quantity" in exc_info.value.errors

        stored = _reload(session, assignment.id)
        assert stored.status == PENDING
        assert stored.confirmed_quantity is None
        assert stored.vendor_action_at is None

    def test_partial_above_assigned(self, service, session, seeded):
        _, _, _, assignment = seeded
        with pytest.raises(AssignmentValidationError) as exc_info:
            service.update_assignment_status(session, assignment.id, PARTIAL.value, 101)
        assert exc_info.value.errors["confirmed_quantity"] == [
            "Confirmed quantity cannot exceed assigned quantity"
        ]
        assert _reload(session, assignment.id).status == PENDING

    def test_partial_of_zero(self, service, session, seeded):
        _, _, _, assignment = seeded
        with pytest.raises(AssignmentValidationError):
            service.update_assignment_status(session, assignment.id, PARTIAL.value, 0)

    def test_declined_clears_confirmed_quantity(self, service, session, seeded):
        _, order, _, assignment = seeded
        result = service.update_assignment_status(
            session, assignment.id, DECLINED.value, 40, "discontinued"
        )
        assert result.assignment.status == DECLINED.value
        assert result.assignment.confirmed_quantity is None
        assert result.order_status_updated is False
        assert session.get(Order, order.id).status == OrderStatus.RECEIVED

    def test_already_processed_is_a_conflict(self, service, session, factory, seeded):
        vendor, _, item, _ = seeded
        done = factory.assignment(
            item, vendor, status=FULL, confirmed_quantity=100, vendor_action_at=datetime(2024, 5, 1)
        )
        with pytest.raises(AssignmentConflictError):
            service.update_assignment_status(session, done.id, DECLINED.value)

        stored = _reload(session, done.id)
        assert stored.status == FULL
        assert stored.confirmed_quantity == 100
        assert stored.vendor_action_at == datetime(2024, 5, 1)

    def test_second_decision_conflicts(self, service, session, seeded):
        _, _, _, assignment = seeded
        service.update_assignment_status(session, assignment.id, FULL.value)
        with pytest.raises(AssignmentConflictError):
            service.update_assignment_status(session, assignment.id, DECLINED.value)
        assert _reload(session, assignment.id).status == FULL

    def test_unknown_assignment(self, service, session, seeded):
        with pytest.raises(AssignmentNotFoundError):
            service.update_assignment_status(session, "does-not-exist", FULL.value)

    def test_other_vendors_assignment_is_not_found(self, service, session, factory, seeded):
        _, _, _, assignment = seeded
        stranger = factory.vendor("Someone Else")
        with pytest.raises(AssignmentNotFoundError):
            service.update_assignment_status(
                session, assignment.id, FULL.value, vendor_id=stranger.id
            )
        assert _reload(session, assignment.id).status == PENDING


class TestStorageFailures:
    def test_failed_reload_after_commit_is_a_storage_error(self, service, session, seeded, monkeypatch):
        _, _, _, assignment = seeded

        def broken_refresh(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        monkeypatch.setattr(session, "refresh", broken_refresh)
        with pytest.raises(StorageError):
            service.update_assignment_status(session, assignment.id, FULL.value)

    def test_timestamp_columns_are_naive(self):
        # Stored exactly as utcnow() produces them, whatever the sqlmodel default
        for table, name in [
            (AssignedOrderItem, "assigned_at"),
            (AssignedOrderItem, "vendor_action_at"),
            (AssignedOrderItem, "updated_at"),
            (AuditLog, "created_at"),
            (Order, "created_at"),
        ]:
            column_type = table.__table__.c[name].type
            assert type(column_type) is DateTime
            assert column_type.timezone is False

    def test_naive_action_time_round_trips(self, service, session, seeded):
        _, _, _, assignment = seeded
        service.update_assignment_status(session, assignment.id, DECLINED.value)

        stored = _reload(session, assignment.id)
        assert stored.vendor_action_at == NOW
        assert stored.vendor_action_at.tzinfo is None


class TestOrderLifecycle:
    def test_first_confirmation_moves_order_to_processing(self, service, session, factory, seeded):
        vendor, order, item, assignment = seeded
        second = factory.assignment(item, vendor, assigned_quantity=5)

        first = service.update_assignment_status(session, assignment.id, FULL.value)
        assert first.order_status_updated is True
        assert first.new_order_status == "PROCESSING"
        assert first.assignment.order_item.order.status == "PROCESSING"

        again = service.update_assignment_status(session, second.id, PARTIAL.value, 2)
        assert again.order_status_updated is False
        assert again.new_order_status is None
        assert session.get(Order, order.id).status == OrderStatus.PROCESSING

    def test_order_in_later_state_is_left_alone(self, service, session, factory):
        vendor = factory.vendor()
        order = factory.order(status=OrderStatus.ASSIGNED)
        assignment = factory.assignment(factory.item(order), vendor)

        result = service.update_assignment_status(session, assignment.id, FULL.value)
        assert result.order_status_updated is False
        assert session.get(Order, order.id).status == OrderStatus.ASSIGNED


class TestAuditTrail:
    def test_audit_row_written_with_decision(self, service, session, seeded):
        _, _, _, assignment = seeded
        service.update_assignment_status(
            session, assignment.id, PARTIAL.value, 80, "short on stock", actor_id="user-7"
        )

        (entry,) = session.exec(select(AuditLog)).all()
        assert entry.action == "assignment:partial_confirmed"
        assert entry.entity_type == "AssignedOrderItem"
        assert entry.entity_id == assignment.id
        assert entry.actor_id == "user-7"
        meta = json.loads(entry.meta)
        assert meta["previous_status"] == PENDING.value
        assert meta["new_status"] == PARTIAL.value
        assert meta["confirmed_quantity"] == 80
        assert meta["order_status_updated"] is True

    def test_rejected_update_writes_no_audit_row(self, service, session, seeded):
        _, _, _, assignment = seeded
        with pytest.raises(AssignmentValidationError):
            service.update_assignment_status(session, assignment.id, PARTIAL.value)
        assert session.exec(select(AuditLog)).all() == []


class TestConcurrentDecisions:
    def test_losing_writer_gets_conflict(self, tmp_path):
        engine = create_engine(f"sqlite:///{tmp_path / 'race.db'}")
        SQLModel.metadata.create_all(engine)
        with Session(engine) as s:
            factory = Factory(s)
            vendor = factory.vendor()
            assignment = factory.assignment(factory.item(factory.order()), vendor)
            assignment_id = assignment.id

        def competing_decision_then_now():
            # Another request decides between our read and our write
            with Session(engine) as other:
                other.exec(
                    update(AssignedOrderItem)
                    .where(AssignedOrderItem.id == assignment_id)
                    .values(status=DECLINED, vendor_action_at=datetime(2024, 6, 1, 12, 0))
                )
                other.commit()
            return NOW

        service = AssignmentStatusService(clock=competing_decision_then_now)
        with Session(engine) as s:
            with pytest.raises(AssignmentConflictError):
                service.update_assignment_status(s, assignment_id, FULL.value)

        with Session(engine) as s:
            stored = s.get(AssignedOrderItem, assignment_id)
            assert stored.status == DECLINED
            assert stored.confirmed_quantity is None
            assert s.exec(select(AuditLog)).all() == []
        engine.dispose()


class TestGetVendorAssignment:
    def test_own_assignment(self, service, session, seeded):
        vendor, order, _, assignment = seeded
        read = service.get_vendor_assignment(session, assignment.id, vendor.id)
        assert read.id == assignment.id
        assert read.status == PENDING.value
        assert read.order_item.order.order_number == order.order_number

    def test_someone_elses_assignment(self, service, session, factory, seeded):
        _, _, _, assignment = seeded
        stranger = factory.vendor("Someone Else")
        assert service.get_vendor_assignment(session, assignment.id, stranger.id) is None
