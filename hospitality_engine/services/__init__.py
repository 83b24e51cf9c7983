# Services package
from .errors import (
    EngineError,
    InvalidInputError,
    MissingConfigurationError,
    PricingError,
    RepositoryError,
    ReservationConflictError,
    ResourceNotFoundError,
)
from .conflict_checker import find_conflicts, overlaps, suggest_free_slots
from .capacity_evaluator import check_capacity, check_maintenance, check_stay_length
from .pricing_rules import resolve, resolve_stay
from .price_calculator import compute_breakdown
from .availability_service import (
    AvailabilityService,
    check_availability,
    check_availability_and_quote,
    quote_price,
)
from .reservation_service import ReservationService

__all__ = [
    "EngineError", "InvalidInputError", "MissingConfigurationError", "PricingError",
    "RepositoryError", "ReservationConflictError", "ResourceNotFoundError",
    "find_conflicts", "overlaps", "suggest_free_slots",
    "check_capacity", "check_maintenance", "check_stay_length",
    "resolve", "resolve_stay",
    "compute_breakdown",
    "AvailabilityService", "check_availability", "check_availability_and_quote", "quote_price",
    "ReservationService",
]
