"""
Database Helper Utilities for Concurrency Control

Provides:
- Database dialect detection (PostgreSQL vs SQLite)
- Row locking helpers
- Per-room critical section for check-then-write sequences
- Commit wrapper that maps storage errors to PersistenceFailureError
"""

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Optional, Type, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Process-local locks, one per room id
_room_locks: Dict[str, threading.Lock] = {}
_room_locks_guard = threading.Lock()


def is_postgres(db: Session) -> bool:
    """Check if the database is PostgreSQL"""
    try:
        return db.bind.dialect.name == 'postgresql'
    except AttributeError:
        return False


def is_sqlite(db: Session) -> bool:
    """Check if the database is SQLite"""
    try:
        return db.bind.dialect.name == 'sqlite'
    except AttributeError:
        return True  # Default to SQLite for safety


def acquire_row_lock(
    db: Session,
    model: Type[T],
    filter_condition,
    nowait: bool = False,
    skip_locked: bool = False
) -> Optional[T]:
    """
    Acquire a row-level lock on a database record.

    Args:
        db: Database session
        model: SQLAlchemy model class
        filter_condition: Filter to find the row
        nowait: If True, raise error immediately if lock unavailable (PostgreSQL only)
        skip_locked: If True, skip locked rows (PostgreSQL only)

    Returns:
        The locked model instance, or None if not found

    Example:
        room = acquire_row_lock(db, Room, Room.id == room_id)
    """
    query = db.query(model).filter(filter_condition)

    # Only apply locking on PostgreSQL
    if is_postgres(db):
        if skip_locked:
            query = query.with_for_update(skip_locked=True)
        elif nowait:
            query = query.with_for_update(nowait=True)
        else:
            query = query.with_for_update()

    return query.first()


def _get_room_lock(room_id: str) -> threading.Lock:
    with _room_locks_guard:
        lock = _room_locks.get(room_id)
        if lock is None:
            lock = threading.Lock()
            _room_locks[room_id] = lock
        return lock


@contextmanager
def room_lock(db: Session, room_id: str) -> Iterator:
    """
    Serialize check-then-write sequences for one room.

    Holds a process-local lock for the room and, on PostgreSQL, a
    FOR UPDATE lock on the room row until the transaction ends. The
    caller must commit or roll back inside the block.

    Yields the locked Room, or raises NotFoundError.

    Example:
        with room_lock(db, room_id) as room:
            ...check conflicts...
            commit_or_raise(db)
    """
    from ..models.room import Room
    from ..services.exceptions import NotFoundError

    lock = _get_room_lock(room_id)
    with lock:
        try:
            room = acquire_row_lock(db, Room, Room.id == room_id)
            if room is None:
                raise NotFoundError("Room", room_id)
            yield room
        except BaseException:
            db.rollback()
            raise


def commit_or_raise(db: Session, action: str = "write") -> None:
    """Commit, rolling back and raising PersistenceFailureError on storage errors"""
    from ..services.exceptions import PersistenceFailureError

    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database {action} failed: {e}")
        raise PersistenceFailureError(f"Database {action} failed") from e
