"""
Reservation Commit Service

The engine's verdict is provisional: two requests can both see a free room
from the same snapshot. commit() makes it authoritative by locking the
resource row, re-reading its reservations inside the transaction and running
the engine again before inserting.

On PostgreSQL the lock is SELECT ... FOR UPDATE NOWAIT: a commit that finds the
row already locked by another commit fails at once with a conflict instead of
queueing behind it. SQLite serializes writers on its own.
"""

from datetime import date
from typing import Optional, Sequence, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import ReservationRow, Resource
from ..utils.db_helpers import acquire_row_lock, acquire_row_lock_or_fail
from ..utils.logging_config import get_logger, set_resource_context
from ..utils import metrics
from .availability_service import check_availability_and_quote
from .errors import EngineError, InvalidInputError, RepositoryError, ReservationConflictError, ResourceNotFoundError
from .records import (
    TERMINAL_STATUSES,
    DateRange,
    EngineConfig,
    PlanSelection,
    ReservationStatus,
    ResourceRef,
    TimeSlot,
)
from .repositories import (
    PricingRuleRepository,
    ReservationRepository,
    ResourceRepository,
    StayRuleRepository,
    resource_to_record,
)

logger = get_logger(__name__)

# Statuses a new reservation may start in
INITIAL_STATUSES = (ReservationStatus.PENDING.value, ReservationStatus.CONFIRMED.value)


class ReservationService:
    def __init__(self, db: Session, config: EngineConfig = None):
        self.db = db
        self.config = config or EngineConfig()
        self.resources = ResourceRepository(db)
        self.reservations = ReservationRepository(db)
        self.pricing_rules = PricingRuleRepository(db)
        self.stay_rules = StayRuleRepository(db)

    def commit(
        self,
        ref: ResourceRef,
        window: Union[DateRange, TimeSlot],
        guest_count: int,
        guest_name: Optional[str] = None,
        layout_style: Optional[str] = None,
        rooms: int = 1,
        plan_selections: Optional[Sequence[PlanSelection]] = None,
        meals: Sequence[str] = (),
        status: str = ReservationStatus.CONFIRMED.value,
        booked_on: Optional[date] = None
    ) -> ReservationRow:
        """
        Insert a reservation if the resource is still available.

        Raises:
            ReservationConflictError: the re-check inside the lock failed, or
                another commit holds the lock
            RepositoryError: the transaction could not be read or written
        """
        if status not in INITIAL_STATUSES:
            raise InvalidInputError(f"A new reservation cannot start as '{status}'")

        resource_id = self.resources.get_by_ref(ref).id
        set_resource_context(resource_id)

        try:
            locked = acquire_row_lock_or_fail(self.db, Resource, Resource.id == resource_id)
            resource = resource_to_record(locked)

            existing = self.reservations.list_active(resource.id, window)
            stay_rules = self.stay_rules.list_for(resource) if isinstance(window, DateRange) else []
            rules, rule_fault = self.pricing_rules.list_or_fault(resource)

            outcome = check_availability_and_quote(
                resource, window, existing, guest_count,
                rules=rules,
                layout_style=layout_style,
                rooms=rooms,
                plan_selections=plan_selections,
                meals=meals,
                stay_rules=stay_rules,
                config=self.config,
                booked_on=booked_on or date.today(),
                pricing_fault=rule_fault,
            )
            if not outcome.availability.is_available:
                metrics.record_reservation_commit("conflict")
                logger.warning(
                    f"Reservation rejected on {resource.id}: "
                    f"{'; '.join(outcome.availability.reasons_unavailable)}"
                )
                raise ReservationConflictError(
                    "Resource is no longer available for the requested window",
                    reasons=outcome.availability.reasons_unavailable,
                )

            row = ReservationRow(
                resource_id=resource.id,
                status=status,
                guest_name=guest_name,
                guest_count=guest_count,
                rooms=rooms,
                layout_style=layout_style,
            )
            if isinstance(window, DateRange):
                row.date_from = window.start
                row.date_to = window.end
            else:
                row.event_date = window.event_date
                row.start_time = window.start
                row.end_time = window.end
            if outcome.quote is not None:
                row.total_price = outcome.quote.rounded(self.config.currency_quantum).total

            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
        except EngineError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            metrics.record_reservation_commit("error")
            logger.error(f"Reservation commit failed on {resource_id}: {e}")
            raise RepositoryError("Could not store the reservation") from e

        metrics.record_reservation_commit("committed")
        logger.reservation_committed(row.id, resource_id, row.status)
        return row

    def _transition(self, reservation_id: str, new_status: str) -> ReservationRow:
        try:
            row = acquire_row_lock(self.db, ReservationRow, ReservationRow.id == reservation_id)
            if row is None:
                raise ResourceNotFoundError(f"Reservation {reservation_id} not found")
            if row.status in TERMINAL_STATUSES:
                raise InvalidInputError(f"Reservation is already {row.status}")

            old_status = row.status
            row.status = new_status
            self.db.commit()
            self.db.refresh(row)
        except EngineError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Status change of reservation {reservation_id} failed: {e}")
            raise RepositoryError("Could not update the reservation") from e

        logger.reservation_status_changed(row.id, old_status, new_status)
        return row

    def cancel(self, reservation_id: str) -> ReservationRow:
        """Release the inventory; the row stays for the audit trail"""
        return self._transition(reservation_id, ReservationStatus.CANCELLED.value)

    def complete(self, reservation_id: str) -> ReservationRow:
        return self._transition(reservation_id, ReservationStatus.COMPLETED.value)
