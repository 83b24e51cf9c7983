import uuid
from datetime import datetime
from sqlalchemy import Column, String, Date, Numeric, ForeignKey, DateTime, Index, Integer, Time
from sqlalchemy.orm import relationship
from ..database import Base


class ReservationRow(Base):
    """
    A commitment against a resource.

    Rooms use date_from/date_to (checkout date exclusive); venues use
    event_date with start_time/end_time. Rows are never deleted: cancelling or
    completing only changes status.
    """
    __tablename__ = "reservations"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    resource_id = Column(String(36), ForeignKey("resources.id", ondelete="CASCADE"), nullable=False)
    status = Column(String(20), nullable=False, default="confirmed")
    guest_name = Column(String(100), nullable=True)
    guest_count = Column(Integer, nullable=False, default=1)
    rooms = Column(Integer, nullable=False, default=1)

    date_from = Column(Date, nullable=True)
    date_to = Column(Date, nullable=True)

    event_date = Column(Date, nullable=True)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)
    layout_style = Column(String(50), nullable=True)

    total_price = Column(Numeric(12, 2), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    resource = relationship("Resource", back_populates="reservations")

    __table_args__ = (
        Index("ix_reservation_resource_status", "resource_id", "status"),
        Index("ix_reservation_resource_dates", "resource_id", "date_from", "date_to"),
        Index("ix_reservation_resource_event_date", "resource_id", "event_date"),
    )

    def __repr__(self):
        return f"<Reservation {self.id} resource={self.resource_id} status={self.status}>"
