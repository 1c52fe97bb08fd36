# ===== app/services/appointment/booking_lock.py =====
"""
Serialises capacity re-check + insert + commit per (business, date).

PostgreSQL uses a transaction-scoped advisory lock, released by the commit or
rollback that ends the unit of work. Other dialects (SQLite in tests and local
development) fall back to a fixed pool of process-wide locks; keys hashing to
the same stripe share a lock, held until the block exits.

Callers end any open transaction before `hold`, so the work done under the
lock starts a new transaction and its re-check reads rows committed by the
previous holder, also under REPEATABLE READ.
"""
from contextlib import contextmanager
from datetime import date
from uuid import UUID
import logging
import threading
import zlib

from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from app.core.exceptions import ConcurrencyConflict

logger = logging.getLogger(__name__)

DEFAULT_STRIPES = 64


class BookingLock:

    def __init__(self, timeout_seconds: float = 5.0, stripes: int = DEFAULT_STRIPES):
        self.timeout_seconds = timeout_seconds
        self._stripes = [threading.Lock() for _ in range(stripes)]

    @staticmethod
    def key(business_id: UUID, day: date) -> str:
        return f"booking:{business_id}:{day.isoformat()}"

    def _local_lock(self, key: str) -> threading.Lock:
        return self._stripes[zlib.crc32(key.encode()) % len(self._stripes)]

    @contextmanager
    def hold(self, db: Session, business_id: UUID, day: date):
        key = self.key(business_id, day)

        if db.get_bind().dialect.name == "postgresql":
            timeout_ms = int(self.timeout_seconds * 1000)
            try:
                db.execute(text(f"SET LOCAL lock_timeout = {timeout_ms}"))
                db.execute(text("SELECT pg_advisory_xact_lock(hashtext(:key))"), {"key": key})
            except OperationalError as e:
                db.rollback()
                logger.warning(f"Booking lock timeout for {key}: {e}")
                raise ConcurrencyConflict("Another booking for this date is in progress, please retry")
            yield
            return

        lock = self._local_lock(key)
        if not lock.acquire(timeout=self.timeout_seconds):
            logger.warning(f"Booking lock timeout for {key}")
            raise ConcurrencyConflict("Another booking for this date is in progress, please retry")
        try:
            yield
        finally:
            lock.release()
