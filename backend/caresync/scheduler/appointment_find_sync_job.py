"""
Fan-out appointment find sync: institution -> next N dates, one wide EHR call per date.

Dates run on a bounded thread pool (caps outbound concurrency against the EHR). Each date checks
the appointment-find cache first and only calls the EHR when the entry is missing or stale.
A failing date is logged and does not stop the other dates. The institution as a whole has a
deadline: when it passes, pending dates are cancelled and the institution is reported as timed out.
Dates already running at the deadline cannot be cancelled. They finish in the background while the
next institution starts on a fresh pool, so outbound calls can briefly reach twice max_workers.
"""
import logging
from concurrent.futures import ThreadPoolExecutor, wait
from datetime import date, timedelta
from typing import Callable

from sqlalchemy.orm import sessionmaker

from caresync.core.clock import Clock, local_now, utc_now
from caresync.core.errors import AppointmentFindTimeoutError
from caresync.core.sync_config import (
    APPOINTMENT_FIND_MAX_WORKERS,
    APPOINTMENT_FIND_SYNC_DAYS_AHEAD,
    APPOINTMENT_FIND_TIMEOUT_SECONDS,
)
from caresync.db.session import SessionLocal
from caresync.services.availability.appointment_find_cache import refresh_if_stale
from caresync.services.availability.directory import find_appointment_find_institutions
from caresync.services.ehr.base import SlotSource
from caresync.services.ehr.registry import get_slot_source

logger = logging.getLogger(__name__)


def _never_stop() -> bool:
    return False


def sync_institution_dates(
    session_factory: sessionmaker,
    institution_id: str,
    time_zone: str,
    expiration_seconds: int,
    slot_source: SlotSource,
    *,
    days_ahead: int = APPOINTMENT_FIND_SYNC_DAYS_AHEAD,
    max_workers: int = APPOINTMENT_FIND_MAX_WORKERS,
    timeout_seconds: float = APPOINTMENT_FIND_TIMEOUT_SECONDS,
    clock: Clock = utc_now,
    should_stop: Callable[[], bool] = _never_stop,
) -> dict:
    """
    Refresh every stale date for one institution.
    Returns { "dates", "refreshed", "fresh", "skipped", "failed" }; raises AppointmentFindTimeoutError on deadline.
    """
    start_date = local_now(time_zone, clock).date()
    dates = [start_date + timedelta(days=offset) for offset in range(days_ahead)]

    def refresh(day: date) -> bool | None:
        if should_stop():
            return None
        return refresh_if_stale(session_factory, institution_id, time_zone, expiration_seconds, day, slot_source, clock=clock)

    logger.debug("Pulling appointment find data for %s from %s to %s...", institution_id, dates[0], dates[-1])

    refreshed = fresh = skipped = 0
    failed: list[date] = []
    executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="appointment_find")
    try:
        future_to_date = {executor.submit(refresh, day): day for day in dates}
        logger.debug("Waiting for %s appointment find futures to complete...", len(future_to_date))
        done, not_done = wait(future_to_date, timeout=timeout_seconds)
        for future in done:
            day = future_to_date[future]
            try:
                result = future.result()
            except Exception:
                failed.append(day)
                logger.warning("Appointment find sync failed for %s on %s", institution_id, day, exc_info=True)
                continue
            if result is None:
                skipped += 1
            elif result:
                refreshed += 1
            else:
                fresh += 1
        if not_done:
            raise AppointmentFindTimeoutError(
                f"Appointment find sync for {institution_id} timed out after {timeout_seconds}s "
                f"with {len(not_done)} of {len(dates)} dates pending"
            )
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    return {
        "dates": len(dates),
        "refreshed": refreshed,
        "fresh": fresh,
        "skipped": skipped,
        "failed": sorted(failed),
    }


def run_appointment_find_sync(
    session_factory: sessionmaker = SessionLocal,
    *,
    days_ahead: int = APPOINTMENT_FIND_SYNC_DAYS_AHEAD,
    max_workers: int = APPOINTMENT_FIND_MAX_WORKERS,
    timeout_seconds: float = APPOINTMENT_FIND_TIMEOUT_SECONDS,
    clock: Clock = utc_now,
    slot_source_for: Callable[[str], SlotSource] = get_slot_source,
    should_stop: Callable[[], bool] = _never_stop,
) -> dict[str, dict]:
    """One pass over every appointment-find institution. A failed or timed-out institution never affects the next."""
    db = session_factory()
    try:
        # Plain values only: worker threads open their own sessions
        institutions = [
            (i.institution_id, i.time_zone, i.appointment_find_cache_expiration_seconds)
            for i in find_appointment_find_institutions(db)
        ]
    finally:
        db.close()

    results: dict[str, dict] = {}
    for institution_id, time_zone, expiration_seconds in institutions:
        if should_stop():
            break
        logger.info("Running appointment find availability sync for %s...", institution_id)
        try:
            result = sync_institution_dates(
                session_factory,
                institution_id,
                time_zone,
                expiration_seconds,
                slot_source_for(institution_id),
                days_ahead=days_ahead,
                max_workers=max_workers,
                timeout_seconds=timeout_seconds,
                clock=clock,
                should_stop=should_stop,
            )
        except AppointmentFindTimeoutError as e:
            logger.error("%s", e)
            results[institution_id] = {"timed_out": True}
            continue
        except Exception:
            logger.warning("Appointment find sync failed for institution %s", institution_id, exc_info=True)
            results[institution_id] = {"error": True}
            continue
        results[institution_id] = result
        logger.info(
            "Appointment find availability sync complete for %s: %s refreshed, %s fresh, %s failed.",
            institution_id,
            result["refreshed"],
            result["fresh"],
            len(result["failed"]),
        )
    return results
