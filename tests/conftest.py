"""
Shared fixtures: engine records for the pure tests, an in-memory SQLite
session and a TestClient bound to it for the storage and HTTP tests.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("LOG_JSON", "false")

from datetime import date, datetime, time
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from hospitality_engine.database import Base, get_db
from hospitality_engine.main import app
from hospitality_engine.models import ReservationRow, Resource
from hospitality_engine.services.records import (
    BookableResource,
    PricingRule,
    Reservation,
    ResourceRef,
)

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

EVENT_DAY = date(2026, 6, 15)


# ================================
# ENGINE RECORDS
# ================================

def make_room(**overrides) -> BookableResource:
    """Deluxe double on the CP plan: 2000/night, 500 per extra guest"""
    fields = dict(
        id="room-dlx-cp-double",
        ref=ResourceRef(
            property_id="P1",
            room_category_code="DLX",
            plan_code="CP",
            occupancy_code="DOUBLE",
        ),
        name="Deluxe",
        base_price=Decimal("2000"),
        capacities={"per_room": 3},
        inventory=1,
        extra_guest_charge=Decimal("500"),
    )
    fields.update(overrides)
    return BookableResource(**fields)


def make_venue(**overrides) -> BookableResource:
    """Banquet hall: 1000/hour, 100 seated"""
    fields = dict(
        id="venue-hall",
        ref=ResourceRef(property_id="P1", venue_id="hall"),
        name="Banquet Hall",
        base_price=Decimal("1000"),
        capacities={"seated": 100, "cocktail": 150},
        meal_prices={"lunch": Decimal("200")},
    )
    fields.update(overrides)
    return BookableResource(**fields)


def make_slot_booking(reservation_id, start, end, resource_id="venue-hall", day=EVENT_DAY, **overrides):
    return Reservation(
        id=reservation_id,
        resource_id=resource_id,
        event_date=day,
        start_time=start,
        end_time=end,
        **overrides
    )


def make_stay_booking(reservation_id, date_from, date_to, resource_id="room-dlx-cp-double", **overrides):
    return Reservation(
        id=reservation_id,
        resource_id=resource_id,
        date_from=date_from,
        date_to=date_to,
        **overrides
    )


def make_rule(rule_id, priority=0, adjustment_type="multiplier", values=None, **overrides) -> PricingRule:
    fields = dict(
        id=rule_id,
        scope="property",
        scope_id="P1",
        rule_type="custom",
        adjustment_type=adjustment_type,
        adjustment_values=values if values is not None else {"*": Decimal("1.2")},
        priority=priority,
        created_at=datetime(2026, 1, 1),
    )
    fields.update(overrides)
    return PricingRule(**fields)


# ================================
# DATABASE
# ================================

@pytest.fixture
def db_session():
    """Fresh schema per test"""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def room_row(db_session):
    ref = ResourceRef(property_id="P1", room_category_code="DLX", plan_code="CP", occupancy_code="DOUBLE")
    row = Resource(
        resource_key=ref.key,
        kind="room",
        name="Deluxe",
        property_id="P1",
        room_category_code="DLX",
        plan_code="CP",
        occupancy_code="DOUBLE",
        base_price=Decimal("2000"),
        extra_guest_charge=Decimal("500"),
        inventory=1,
        capacities={"per_room": 3},
        plan_rates={},
        meal_prices={"breakfast": "300"},
    )
    db_session.add(row)
    db_session.commit()
    return row


@pytest.fixture
def venue_row(db_session):
    ref = ResourceRef(property_id="P1", venue_id="hall")
    row = Resource(
        resource_key=ref.key,
        kind="venue",
        name="Banquet Hall",
        property_id="P1",
        venue_id="hall",
        base_price=Decimal("1000"),
        capacities={"seated": 100},
        plan_rates={},
        meal_prices={"lunch": "200"},
    )
    db_session.add(row)
    db_session.commit()
    return row


@pytest.fixture
def booked_venue(db_session, venue_row):
    """Hall booked 09:00-11:00 and 14:00-16:00 on the event day"""
    for start, end in ((time(9, 0), time(11, 0)), (time(14, 0), time(16, 0))):
        db_session.add(ReservationRow(
            resource_id=venue_row.id,
            status="confirmed",
            guest_count=40,
            event_date=EVENT_DAY,
            start_time=start,
            end_time=end,
        ))
    db_session.commit()
    return venue_row
