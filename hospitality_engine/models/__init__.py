# Models package
from .resource import Resource
from .reservation import ReservationRow
from .maintenance_window import MaintenanceWindowRow
from .pricing_rule import PricingRuleRow
from .stay_rule import StayRuleRow

__all__ = [
    "Resource",
    "ReservationRow",
    "MaintenanceWindowRow",
    "PricingRuleRow",
    "StayRuleRow",
]
