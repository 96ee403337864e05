"""
Shared pytest fixtures.

Every test gets its own in-memory SQLite database. The app's own engine is
pointed at a throwaway in-memory URL before anything from vendor_oms is
imported, and API tests swap the session dependency for the test engine.
"""
import os
import sys
from datetime import datetime
from typing import Optional

import pytest

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_FILE"] = ""

# Ensure vendor_oms is importable when running pytest from project root
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

from vendor_oms.models import (  # noqa: E402
    AssignedOrderItem,
    AssignmentStatus,
    Order,
    OrderItem,
    OrderStatus,
    Vendor,
)


class Factory:
    """Small builders for the rows the reconciliation engine reads."""

    def __init__(self, session: Session):
        self.session = session
        self._orders = 0

    def _save(self, obj):
        self.session.add(obj)
        self.session.commit()
        self.session.refresh(obj)
        return obj

    def vendor(self, company_name: str = "Acme Supplies", id: Optional[str] = None) -> Vendor:
        kwargs = {"id": id} if id else {}
        return self._save(Vendor(company_name=company_name, contact_person_name="Asha", **kwargs))

    def order(
        self,
        order_number: Optional[str] = None,
        status: OrderStatus = OrderStatus.RECEIVED,
        created_at: datetime = datetime(2024, 1, 10, 9, 0),
        client_order_id: Optional[str] = None,
    ) -> Order:
        self._orders += 1
        return self._save(
            Order(
                order_number=order_number or f"ORD{self._orders:04d}",
                status=status,
                created_at=created_at,
                client_order_id=client_order_id,
            )
        )

    def item(
        self,
        order: Order,
        product_name: str = "Terracotta Pot",
        quantity: int = 100,
        sku: Optional[str] = "POT-001",
        price_per_unit: Optional[float] = None,
    ) -> OrderItem:
        return self._save(
            OrderItem(
                order_id=order.id,
                product_name=product_name,
                quantity=quantity,
                sku=sku,
                price_per_unit=price_per_unit,
            )
        )

    def assignment(
        self,
        item: OrderItem,
        vendor: Vendor,
        assigned_quantity: int = 100,
        status: AssignmentStatus = AssignmentStatus.PENDING_CONFIRMATION,
        confirmed_quantity: Optional[int] = None,
        vendor_action_at: Optional[datetime] = None,
        assigned_at: datetime = datetime(2024, 1, 11, 9, 0),
    ) -> AssignedOrderItem:
        return self._save(
            AssignedOrderItem(
                order_item_id=item.id,
                vendor_id=vendor.id,
                assigned_quantity=assigned_quantity,
                status=status,
                confirmed_quantity=confirmed_quantity,
                vendor_action_at=vendor_action_at,
                assigned_at=assigned_at,
            )
        )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as s:
        yield s


@pytest.fixture
def factory(session):
    return Factory(session)
