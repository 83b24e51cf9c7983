"""
Bookable Resource Model

One row per thing a guest can reserve:
- room inventory: a room category sold under one plan/occupancy combination
- event venue: a hall, lawn or banquet space booked by time slot

Configuration the engine reads (capacities, plan rates, meal prices) lives in
JSON columns edited by property managers.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, Numeric, DateTime, Integer, Boolean, Time, JSON
from sqlalchemy.orm import relationship
from ..database import Base


class Resource(Base):
    __tablename__ = "resources"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # property_id:category:plan:occupancy or property_id:venue:venue_id
    resource_key = Column(String(255), nullable=False, unique=True, index=True)
    kind = Column(String(10), nullable=False)  # room | venue
    name = Column(String(200), nullable=False, default="")

    property_id = Column(String(36), nullable=False, index=True)
    room_category_code = Column(String(50), nullable=True)
    plan_code = Column(String(10), nullable=True)
    occupancy_code = Column(String(10), nullable=True)
    venue_id = Column(String(36), nullable=True)
    category_id = Column(String(36), nullable=True)

    # Nightly rate for rooms, hourly rate for venues
    base_price = Column(Numeric(12, 2), nullable=True)
    extra_guest_charge = Column(Numeric(12, 2), default=0)
    tax_rate = Column(Numeric(5, 4), nullable=True)
    service_fee_rate = Column(Numeric(5, 4), nullable=True)

    is_active = Column(Boolean, default=True)
    inventory = Column(Integer, default=1)

    # {"seated": 120, "theatre": 200} or {"per_room": 3}
    capacities = Column(JSON, default=dict)
    # {"CP:DOUBLE": "3500.00"}
    plan_rates = Column(JSON, default=dict)
    # {"breakfast": "350", "dinner": "600"}
    meal_prices = Column(JSON, default=dict)

    # Venue operating window used for free-slot suggestions
    window_open = Column(Time, nullable=True)
    window_close = Column(Time, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    reservations = relationship("ReservationRow", back_populates="resource")
    maintenance_windows = relationship(
        "MaintenanceWindowRow", back_populates="resource", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Resource {self.resource_key}>"
