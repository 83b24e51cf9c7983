"""
Dynamic Pricing Rule Model

A rule adjusts the price of every resource in its scope on the dates its
condition matches:
- scope: resource | category | property, scope_id names the target
- condition: days_of_week (0=Sunday) and/or an inclusive date range
- booking window: min/max days between booking and arrival (last-minute,
  early-bird)
- adjustment: multiplier | percentage | fixed_amount, valued per plan code
  ("*" applies to every plan and to venues)
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, Date, DateTime, Integer, Boolean, JSON, Index
from ..database import Base


class PricingRuleRow(Base):
    __tablename__ = "pricing_rules"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(200), nullable=False, default="")
    scope = Column(String(20), nullable=False)
    scope_id = Column(String(255), nullable=False)
    rule_type = Column(String(20), nullable=False)
    adjustment_type = Column(String(20), nullable=False)
    # {"EP": "1.2", "CP": "1.15"} or {"*": "10"}
    adjustment_values = Column(JSON, nullable=False, default=dict)
    priority = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, default=True)

    days_of_week = Column(JSON, nullable=True)  # [0, 6]
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    min_advance_days = Column(Integer, nullable=True)
    max_advance_days = Column(Integer, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("ix_pricing_rule_scope", "scope", "scope_id"),
    )

    def __repr__(self):
        return f"<PricingRule {self.name or self.id} {self.scope}:{self.scope_id} p={self.priority}>"
