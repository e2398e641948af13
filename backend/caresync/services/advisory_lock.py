"""
Cluster-wide, non-blocking advisory locks.

PostgreSQL: pg_try_advisory_lock on a dedicated autocommit connection held for the duration of the
operation. Other dialects (SQLite for local runs) are single-host, so a process-local lock per name
gives the same try-acquire semantics. Never waits: a busy lock means the operation is skipped.
"""
import logging
import threading
from typing import Callable

from sqlalchemy import text
from sqlalchemy.engine import Engine

from caresync.core.constants import advisory_lock_key

logger = logging.getLogger(__name__)

_local_locks: dict[str, threading.Lock] = {}
_local_locks_guard = threading.Lock()


def _local_lock(lock_name: str) -> threading.Lock:
    with _local_locks_guard:
        lock = _local_locks.get(lock_name)
        if lock is None:
            lock = _local_locks[lock_name] = threading.Lock()
        return lock


class AdvisoryLockService:
    def __init__(self, engine: Engine | None = None) -> None:
        if engine is None:
            from caresync.db.session import engine as default_engine

            engine = default_engine
        self._engine = engine

    def try_run_exclusively(self, lock_name: str, operation: Callable[[], None]) -> bool:
        """Run operation only if lock_name is free. Returns False (without running it) if the lock is held."""
        if self._engine.dialect.name == "postgresql":
            return self._run_with_pg_lock(lock_name, operation)
        return self._run_with_local_lock(lock_name, operation)

    def _run_with_pg_lock(self, lock_name: str, operation: Callable[[], None]) -> bool:
        key = advisory_lock_key(lock_name)
        logger.debug("Attempting to acquire advisory lock %s (key %s)", lock_name, key)
        with self._engine.connect().execution_options(isolation_level="AUTOCOMMIT") as conn:
            acquired = conn.execute(text("SELECT pg_try_advisory_lock(:k)"), {"k": key}).scalar()
            if not acquired:
                logger.debug("Advisory lock %s (key %s) has already been acquired, not performing operation.", lock_name, key)
                return False
            try:
                operation()
            finally:
                logger.debug("Releasing advisory lock %s (key %s)...", lock_name, key)
                conn.execute(text("SELECT pg_advisory_unlock(:k)"), {"k": key})
        return True

    def _run_with_local_lock(self, lock_name: str, operation: Callable[[], None]) -> bool:
        lock = _local_lock(lock_name)
        if not lock.acquire(blocking=False):
            logger.debug("Lock %s is held in this process, not performing operation.", lock_name)
            return False
        try:
            operation()
        finally:
            lock.release()
        return True
