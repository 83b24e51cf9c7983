"""
Engine Error Taxonomy

Every public engine function either returns a complete result or raises one
of these. Routers map them onto HTTP status codes.
"""


class EngineError(Exception):
    """Base class for availability/pricing engine errors"""


class InvalidInputError(EngineError):
    """Malformed date, non-positive guest count, unknown plan code, etc."""


class MissingConfigurationError(EngineError):
    """Resource lacks configuration the requested operation cannot do without"""


class PricingError(EngineError):
    """Pricing could not be resolved for an otherwise valid request"""


class ResourceNotFoundError(EngineError):
    """No bookable resource matches the reference"""


class RepositoryError(EngineError):
    """
    Rules, reservations or resources could not be read.

    Distinct from an "unavailable" verdict: the caller could not determine
    availability at all.
    """


class ReservationConflictError(EngineError):
    """The authoritative commit found the inventory already taken"""

    def __init__(self, message: str, reasons=()):
        super().__init__(message)
        self.reasons = list(reasons)
