import uuid
from datetime import datetime
from sqlalchemy import Column, String, Date, ForeignKey, DateTime, Boolean, Text
from sqlalchemy.orm import relationship
from ..database import Base


class MaintenanceWindowRow(Base):
    """Blackout dates for a resource, both ends inclusive"""
    __tablename__ = "maintenance_windows"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    resource_id = Column(String(36), ForeignKey("resources.id", ondelete="CASCADE"), nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    is_active = Column(Boolean, default=True)
    reason = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    resource = relationship("Resource", back_populates="maintenance_windows")
