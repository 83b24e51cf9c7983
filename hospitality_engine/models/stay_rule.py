import uuid
from datetime import datetime
from sqlalchemy import Column, String, Date, DateTime, Integer, Boolean
from ..database import Base


class StayRuleRow(Base):
    """
    Minimum / maximum stay for a property, or for one room resource when
    resource_id is set.
    """
    __tablename__ = "stay_rules"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    property_id = Column(String(36), nullable=False, index=True)
    resource_id = Column(String(36), nullable=True, index=True)
    min_stay = Column(Integer, nullable=False, default=1)
    max_stay = Column(Integer, nullable=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    priority = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
