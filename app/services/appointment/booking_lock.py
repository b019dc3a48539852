# ============================================================================
# app/services/appointment/booking_lock.py
# Per-business mutual exclusion around booking admission
# ============================================================================
"""
Admission is check-then-insert; two requests for overlapping windows of the
same business must never interleave between those steps. Requests for
different businesses never share a lock.

Backends:
    local  - threading.Lock per business, for a single API process
    redis  - redis-py Lock, for several processes sharing one Redis
"""
import logging
import threading
import weakref
from contextlib import contextmanager
from typing import Iterator, Optional
from uuid import UUID

from redis.exceptions import LockNotOwnedError

from app.config.settings import get_settings
from app.core.exceptions import BusyError

logger = logging.getLogger(__name__)


class LocalBookingLock:
    """
    In-process lock registry keyed by business id. Entries live only while
    some request holds or waits on them.
    """

    def __init__(self, timeout: float):
        self.timeout = timeout
        self._locks: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()
        self._registry_lock = threading.Lock()

    def _lock_for(self, business_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(business_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[business_id] = lock
            return lock

    @contextmanager
    def hold(self, business_id: UUID) -> Iterator[None]:
        lock = self._lock_for(str(business_id))
        if not lock.acquire(timeout=self.timeout):
            logger.warning(f"Booking lock busy for business {business_id}")
            raise BusyError(
                "Another booking for this business is being processed, please retry",
                retry_after=max(1, int(self.timeout)),
            )
        try:
            yield
        finally:
            lock.release()


class RedisBookingLock:
    """Distributed lock; the TTL frees it if a holder dies mid-admission"""

    def __init__(self, client, timeout: float, ttl: int):
        self.client = client
        self.timeout = timeout
        self.ttl = ttl

    @contextmanager
    def hold(self, business_id: UUID) -> Iterator[None]:
        from app.config.redis import RedisKeys

        lock = self.client.lock(
            RedisKeys.BOOKING_LOCK.format(business_id=business_id),
            timeout=self.ttl,
            blocking_timeout=self.timeout,
        )
        if not lock.acquire():
            logger.warning(f"Redis booking lock busy for business {business_id}")
            raise BusyError(
                "Another booking for this business is being processed, please retry",
                retry_after=max(1, int(self.timeout)),
            )
        try:
            yield
        finally:
            try:
                lock.release()
            except LockNotOwnedError:
                # The TTL ran out mid-admission; the work inside has already committed
                logger.warning(
                    f"Redis booking lock for business {business_id} expired before release "
                    f"(ttl {self.ttl}s)"
                )


_booking_lock = None


def get_booking_lock():
    """Process-wide lock manager for the configured backend"""
    global _booking_lock
    if _booking_lock is None:
        settings = get_settings()
        if settings.BOOKING_LOCK_BACKEND == "redis":
            from app.config.redis import get_redis

            _booking_lock = RedisBookingLock(
                get_redis(),
                timeout=settings.BOOKING_LOCK_TIMEOUT_SECONDS,
                ttl=settings.BOOKING_LOCK_TTL_SECONDS,
            )
        else:
            _booking_lock = LocalBookingLock(timeout=settings.BOOKING_LOCK_TIMEOUT_SECONDS)
        logger.info(f"Booking lock backend: {settings.BOOKING_LOCK_BACKEND}")
    return _booking_lock


def set_booking_lock(lock: Optional[object]) -> None:
    """Replace (or reset with None) the process-wide lock manager"""
    global _booking_lock
    _booking_lock = lock
