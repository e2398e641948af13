"""Range re-sync: run on-demand sync for every date of a provider's history window and log each attempt."""
import logging
from datetime import date, timedelta
from typing import Mapping

from sqlalchemy.orm import sessionmaker

from caresync.core.clock import Clock, local_now, utc_now
from caresync.core.errors import ProviderNotFoundError
from caresync.db.session import SessionLocal
from caresync.models.provider_availability_sync_log import ProviderAvailabilitySyncLog
from caresync.services.availability.directory import find_provider_by_id
from caresync.services.availability.sync_manager import SyncManager

logger = logging.getLogger(__name__)


def _record_attempt(session_factory: sessionmaker, provider_id: str, day: date, success: bool, clock: Clock) -> None:
    db = session_factory()
    try:
        db.add(ProviderAvailabilitySyncLog(provider_id=provider_id, date=day, success=success, sync_timestamp=clock()))
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def sync_provider_availability_range(
    provider_id: str,
    start_date: date | None = None,
    end_date: date | None = None,
    *,
    managers: Mapping[str, SyncManager],
    session_factory: sessionmaker = SessionLocal,
    clock: Clock = utc_now,
) -> dict[str, int]:
    """
    Re-sync [start_date, end_date] inclusive for one provider.

    start_date defaults to the provider's creation date and end_date to today, both in the provider's
    time zone. One sync log row is written per date, in its own transaction, whatever the outcome.
    Returns {"dates": n, "succeeded": n, "failed": n}.
    """
    db = session_factory()
    try:
        provider = find_provider_by_id(db, provider_id)
        if provider is None:
            raise ProviderNotFoundError(f"No provider found with ID {provider_id}")
        time_zone = provider.time_zone
        scheduling_system_id = provider.scheduling_system_id
        created_at = provider.created_at
    finally:
        db.close()

    today = local_now(time_zone, clock).date()
    if start_date is None:
        start_date = local_now(time_zone, lambda: created_at).date() if created_at is not None else today
    if end_date is None:
        end_date = today
    if start_date > end_date:
        raise ValueError(f"Start date {start_date} is after end date {end_date}")

    manager = managers.get(scheduling_system_id)
    if manager is None:
        logger.info(
            "Provider ID %s uses scheduling system %s which has no availability sync, skipping range sync.",
            provider_id,
            scheduling_system_id,
        )
        return {"dates": 0, "succeeded": 0, "failed": 0}

    logger.info("Syncing availability for provider ID %s from %s to %s...", provider_id, start_date, end_date)

    succeeded = failed = 0
    day = start_date
    while day <= end_date:
        try:
            success = manager.sync_provider_availability(provider_id, day, True)
        except Exception:
            logger.warning("Unable to sync provider ID %s for %s", provider_id, day, exc_info=True)
            success = False
        _record_attempt(session_factory, provider_id, day, success, clock)
        if success:
            succeeded += 1
        else:
            failed += 1
        day += timedelta(days=1)

    logger.info(
        "Range sync complete for provider ID %s: %s of %s dates succeeded.", provider_id, succeeded, succeeded + failed
    )
    return {"dates": succeeded + failed, "succeeded": succeeded, "failed": failed}
