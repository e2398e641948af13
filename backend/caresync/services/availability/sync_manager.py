"""
Sync managers: recurring, lock-gated availability sync plus on-demand single provider/date sync.

Lifecycle is STOPPED -> start() -> RUNNING -> stop() -> STOPPED, guarded by one mutex.
While running, a single-thread APScheduler job fires after an initial delay and then a fixed delay
after each tick finishes. Each tick try-acquires the manager's advisory lock; if another process
holds it the tick is skipped. Tick failures are logged and never stop the schedule.
stop() does not wait for an in-flight tick: it signals it to stop between units of work.
"""
import logging
import threading
from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone
from typing import Callable

from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy.orm import Session, sessionmaker

from caresync.core.clock import Clock, utc_now
from caresync.core.constants import (
    APPOINTMENT_FIND_SYNC_JOB_ID,
    APPOINTMENT_FIND_SYNC_LOCK,
    PROVIDER_SCHEDULE_SYNC_JOB_ID,
    PROVIDER_SCHEDULE_SYNC_LOCK,
    SchedulingSystemId,
)
from caresync.core.sync_config import SyncConfig, get_sync_config
from caresync.db.session import SessionLocal
from caresync.scheduler.appointment_find_sync_job import run_appointment_find_sync
from caresync.scheduler.provider_schedule_sync_job import build_provider_date, run_provider_schedule_sync
from caresync.services.advisory_lock import AdvisoryLockService
from caresync.services.availability import appointment_find_cache
from caresync.services.availability.directory import find_institution_by_id, find_provider_by_id
from caresync.services.availability.reconciler import apply_row_set
from caresync.services.ehr.base import SlotSource
from caresync.services.ehr.registry import get_slot_source

logger = logging.getLogger(__name__)


def _never_stop() -> bool:
    return False


class SyncManager(ABC):
    """Recurring timer + advisory lock around one sync pass. Subclasses provide run_sync and on-demand sync."""

    job_id: str = ""
    lock_name: str = ""
    description: str = "availability"

    def __init__(
        self,
        *,
        interval_seconds: float,
        initial_delay_seconds: float,
        session_factory: sessionmaker = SessionLocal,
        lock_service: AdvisoryLockService | None = None,
        slot_source_for: Callable[[str], SlotSource] = get_slot_source,
        clock: Clock = utc_now,
    ) -> None:
        self.interval_seconds = interval_seconds
        self.initial_delay_seconds = initial_delay_seconds
        self.session_factory = session_factory
        self.lock_service = lock_service or AdvisoryLockService()
        self.slot_source_for = slot_source_for
        self.clock = clock
        self._lock = threading.Lock()
        self._scheduler: BackgroundScheduler | None = None
        self._stop_event = threading.Event()

    # -- lifecycle -------------------------------------------------------------------------------

    def start(self) -> bool:
        with self._lock:
            if self._scheduler is not None:
                return False
            logger.debug("Starting %s sync...", self.description)
            scheduler = BackgroundScheduler(daemon=True, executors={"default": {"type": "threadpool", "max_workers": 1}})
            self._stop_event = threading.Event()
            scheduler.start()
            self._scheduler = scheduler
            self._schedule_next(scheduler, self._stop_event, self.initial_delay_seconds)
            logger.debug("%s sync started.", self.description)
            return True

    def stop(self) -> bool:
        with self._lock:
            if self._scheduler is None:
                return False
            logger.debug("Stopping %s sync...", self.description)
            self._stop_event.set()
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            logger.debug("%s sync stopped.", self.description)
            return True

    def is_running(self) -> bool:
        with self._lock:
            return self._scheduler is not None

    def close(self) -> None:
        self.stop()

    def _schedule_next(self, scheduler: BackgroundScheduler, stop_event: threading.Event, delay_seconds: float) -> None:
        """
        Caller holds self._lock. Only the scheduler that is still current may reschedule.
        Each tick is a one-shot job with a generated id; a late tick still runs.
        """
        if scheduler is not self._scheduler:
            return
        scheduler.add_job(
            self._scheduled_tick,
            "date",
            run_date=datetime.now(timezone.utc) + timedelta(seconds=delay_seconds),
            args=[scheduler, stop_event],
            name=self.job_id,
            misfire_grace_time=None,
        )

    def _scheduled_tick(self, scheduler: BackgroundScheduler, stop_event: threading.Event) -> None:
        # stop_event belongs to the start() that launched this tick, not to a later restart
        try:
            self.tick(stop_event.is_set)
        finally:
            with self._lock:
                self._schedule_next(scheduler, stop_event, self.interval_seconds)

    # -- one tick --------------------------------------------------------------------------------

    def tick(self, should_stop: Callable[[], bool] = _never_stop) -> bool:
        """Run one lock-gated pass. Returns True if the pass ran; never raises."""
        try:
            performed = self.lock_service.try_run_exclusively(self.lock_name, lambda: self.run_sync(should_stop))
        except Exception:
            logger.warning(
                "Unable to sync %s - will retry in %s seconds", self.description, self.interval_seconds, exc_info=True
            )
            return False
        if not performed:
            logger.debug("Skipping %s sync tick: lock %s is held elsewhere.", self.description, self.lock_name)
        return performed

    @abstractmethod
    def run_sync(self, should_stop: Callable[[], bool]) -> None:
        """One full pass; checks should_stop between units of work."""

    @abstractmethod
    def sync_provider_availability(
        self,
        provider_id: str,
        day: date,
        perform_in_own_transaction: bool = True,
        db: Session | None = None,
    ) -> bool:
        """Sync one provider/date now. Returns False for an unknown provider."""

    def _on_demand_session(self, perform_in_own_transaction: bool, db: Session | None) -> Session:
        if perform_in_own_transaction:
            return self.session_factory()
        if db is None:
            raise ValueError("A session is required when not performing sync in its own transaction")
        return db


class ProviderScheduleSyncManager(SyncManager):
    """Per-provider schedule reads, committed date by date into provider_availability."""

    job_id = PROVIDER_SCHEDULE_SYNC_JOB_ID
    lock_name = PROVIDER_SCHEDULE_SYNC_LOCK
    description = "provider schedule availability"

    def __init__(self, *, days_ahead: int, **kwargs) -> None:
        super().__init__(**kwargs)
        self.days_ahead = days_ahead

    def run_sync(self, should_stop: Callable[[], bool]) -> None:
        run_provider_schedule_sync(
            self.session_factory,
            days_ahead=self.days_ahead,
            clock=self.clock,
            slot_source_for=self.slot_source_for,
            should_stop=should_stop,
        )

    def sync_provider_availability(
        self,
        provider_id: str,
        day: date,
        perform_in_own_transaction: bool = True,
        db: Session | None = None,
    ) -> bool:
        """
        Re-sync one provider/date right away (e.g. after a booking or cancellation) instead of waiting
        for the next tick. With perform_in_own_transaction=False the caller's session is used and the
        caller commits. Returns False if the provider is unknown.
        """
        session = self._on_demand_session(perform_in_own_transaction, db)
        try:
            provider = find_provider_by_id(session, provider_id)
            if provider is None:
                logger.warning("No provider found with ID %s, ignoring request to sync", provider_id)
                return False
            institution = find_institution_by_id(session, provider.institution_id)
            slot_source = self.slot_source_for(provider.institution_id)

            logger.info("Syncing availability for %s provider %s on %s...", provider.institution_id, provider.name, day)

            row_set = build_provider_date(session, provider, institution, day, slot_source)
            apply_row_set(session, row_set, clock=self.clock)
            if perform_in_own_transaction:
                session.commit()
            return True
        except Exception:
            if perform_in_own_transaction:
                session.rollback()
            raise
        finally:
            if perform_in_own_transaction:
                session.close()


class AppointmentFindSyncManager(SyncManager):
    """Wide-window appointment find per institution/date, cached verbatim."""

    job_id = APPOINTMENT_FIND_SYNC_JOB_ID
    lock_name = APPOINTMENT_FIND_SYNC_LOCK
    description = "appointment find availability"

    def __init__(self, *, days_ahead: int, max_workers: int, timeout_seconds: float, **kwargs) -> None:
        super().__init__(**kwargs)
        self.days_ahead = days_ahead
        self.max_workers = max_workers
        self.timeout_seconds = timeout_seconds

    def run_sync(self, should_stop: Callable[[], bool]) -> None:
        run_appointment_find_sync(
            self.session_factory,
            days_ahead=self.days_ahead,
            max_workers=self.max_workers,
            timeout_seconds=self.timeout_seconds,
            clock=self.clock,
            slot_source_for=self.slot_source_for,
            should_stop=should_stop,
        )

    def sync_provider_availability(
        self,
        provider_id: str,
        day: date,
        perform_in_own_transaction: bool = True,
        db: Session | None = None,
    ) -> bool:
        """Refetch the provider's institution for one date regardless of cache freshness."""
        session = self._on_demand_session(perform_in_own_transaction, db)
        try:
            provider = find_provider_by_id(session, provider_id)
            if provider is None:
                logger.warning("No provider found with ID %s, ignoring request to sync", provider_id)
                return False
            institution = find_institution_by_id(session, provider.institution_id)

            logger.info("Syncing appointment find availability for %s on %s...", institution.institution_id, day)

            appointment_find_cache.sync_date(
                session,
                institution.institution_id,
                institution.time_zone,
                day,
                self.slot_source_for(institution.institution_id),
                clock=self.clock,
            )
            if perform_in_own_transaction:
                session.commit()
            return True
        except Exception:
            if perform_in_own_transaction:
                session.rollback()
            raise
        finally:
            if perform_in_own_transaction:
                session.close()


def build_sync_managers(config: SyncConfig | None = None, **kwargs) -> dict[str, SyncManager]:
    """Both managers keyed by the scheduling system they serve."""
    config = config or get_sync_config()
    return {
        SchedulingSystemId.EPIC.value: ProviderScheduleSyncManager(
            days_ahead=config.schedule_days_ahead,
            interval_seconds=config.schedule_interval_seconds,
            initial_delay_seconds=config.schedule_initial_delay_seconds,
            **kwargs,
        ),
        SchedulingSystemId.EPIC_FHIR.value: AppointmentFindSyncManager(
            days_ahead=config.find_days_ahead,
            max_workers=config.find_max_workers,
            timeout_seconds=config.find_timeout_seconds,
            interval_seconds=config.find_interval_seconds,
            initial_delay_seconds=config.find_initial_delay_seconds,
            **kwargs,
        ),
    }
