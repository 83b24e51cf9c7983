"""
Database Helper Utilities for Concurrency Control

Provides:
- Database dialect detection (PostgreSQL vs SQLite)
- Row locking for the reservation commit path
"""

import logging
from typing import Optional, TypeVar, Type
from sqlalchemy.orm import Session
from sqlalchemy.exc import OperationalError

from ..services.errors import ReservationConflictError, ResourceNotFoundError

logger = logging.getLogger(__name__)

T = TypeVar('T')


def dialect_name(db: Session) -> str:
    bind = db.get_bind()
    return bind.dialect.name


def is_postgres(db: Session) -> bool:
    """Check if the database is PostgreSQL"""
    return dialect_name(db) == 'postgresql'


def is_sqlite(db: Session) -> bool:
    """Check if the database is SQLite"""
    return dialect_name(db) == 'sqlite'


def acquire_row_lock(
    db: Session,
    model: Type[T],
    filter_condition,
    nowait: bool = False
) -> Optional[T]:
    """
    Acquire a row-level lock on a database record.

    SELECT ... FOR UPDATE on PostgreSQL. SQLite serializes writers at the
    database level, so a plain read is enough there.

    Args:
        db: Database session
        model: SQLAlchemy model class
        filter_condition: Filter to find the row
        nowait: Raise immediately if another transaction holds the lock (PostgreSQL only)

    Returns:
        The locked model instance, or None if not found

    Example:
        resource = acquire_row_lock(db, Resource, Resource.id == resource_id)
    """
    query = db.query(model).filter(filter_condition)

    if is_postgres(db):
        query = query.with_for_update(nowait=nowait)

    return query.first()


def acquire_row_lock_or_fail(
    db: Session,
    model: Type[T],
    filter_condition,
    error_message: str = "Resource is being reserved by another request"
) -> T:
    """
    Lock a row without waiting, or fail.

    Raises:
        ResourceNotFoundError: no row matches
        ReservationConflictError: another transaction holds the lock
    """
    try:
        result = acquire_row_lock(db, model, filter_condition, nowait=True)
    except OperationalError as e:
        if "lock" in str(e).lower():
            logger.warning(f"Lock contention on {model.__name__}: {e}")
            raise ReservationConflictError(error_message) from e
        raise

    if result is None:
        raise ResourceNotFoundError(f"{model.__name__} not found")

    return result
