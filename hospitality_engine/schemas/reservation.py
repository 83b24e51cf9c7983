from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from typing import List, Optional
from datetime import datetime, date, time
from decimal import Decimal
import re

from .availability import PlanSelectionIn, WindowIn, hhmm
from ..services.records import PlanSelection, ReservationStatus


class ReservationCreate(WindowIn):
    guest_name: Optional[str] = Field(None, max_length=100, description="Guest name")
    guest_count: int = Field(..., ge=1)
    layout_style: Optional[str] = Field(None, max_length=50)
    rooms: int = Field(default=1, ge=1)
    plan_selections: Optional[List[PlanSelectionIn]] = None
    meals: List[str] = Field(default_factory=list)
    status: ReservationStatus = ReservationStatus.CONFIRMED

    @field_validator('guest_name', mode='before')
    @classmethod
    def strip_markup(cls, v):
        """Drop script tags and inline handlers from free text"""
        if isinstance(v, str):
            v = re.sub(r'<script[^>]*>.*?</script>', '', v, flags=re.IGNORECASE | re.DOTALL)
            v = re.sub(r'on\w+\s*=', '', v, flags=re.IGNORECASE)
            v = v.strip()
        return v

    def selections(self) -> Optional[List[PlanSelection]]:
        if not self.plan_selections:
            return None
        return [s.to_record() for s in self.plan_selections]


class ReservationResponse(BaseModel):
    id: str
    resource_id: str
    status: str
    guest_name: Optional[str] = None
    guest_count: int
    rooms: int
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    event_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    layout_style: Optional[str] = None
    total_price: Optional[Decimal] = None
    created_at: Optional[datetime] = None

    @field_serializer('start_time', 'end_time')
    def serialize_time(self, value: Optional[time]):
        return hhmm(value)

    model_config = ConfigDict(from_attributes=True)


class ReservationConflictDetail(BaseModel):
    message: str
    reasons: List[str]
