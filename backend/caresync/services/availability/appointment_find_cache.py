"""
Appointment-find cache: one verbatim EHR response per (institution, date).

A fresh entry (updated within the institution's expiration window) short-circuits the EHR call.
Stale or missing entries are refetched for the whole day and upserted.
"""
import logging
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session, sessionmaker

from caresync.core.clock import Clock, utc_now
from caresync.models.appointment_find_cache import AppointmentFindCache
from caresync.services.ehr.base import SlotSource

logger = logging.getLogger(__name__)


def get_cache_entry(db: Session, institution_id: str, day: date) -> AppointmentFindCache | None:
    return db.get(AppointmentFindCache, (institution_id, day))


def is_fresh(entry: AppointmentFindCache | None, expiration_seconds: int, now: datetime) -> bool:
    if entry is None or entry.last_updated is None:
        return False
    updated = entry.last_updated
    if updated.tzinfo is None:
        updated = updated.replace(tzinfo=timezone.utc)
    return updated >= now - timedelta(seconds=expiration_seconds)


def upsert_cache_entry(db: Session, institution_id: str, day: date, api_response: str, last_updated: datetime) -> None:
    """INSERT ... ON CONFLICT (institution_id, date) DO UPDATE. Does not commit."""
    insert = sqlite_insert if db.get_bind().dialect.name == "sqlite" else pg_insert
    stmt = insert(AppointmentFindCache).values(
        institution_id=institution_id,
        date=day,
        api_response=api_response,
        last_updated=last_updated,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["institution_id", "date"],
        set_={"api_response": stmt.excluded.api_response, "last_updated": stmt.excluded.last_updated},
    )
    db.execute(stmt)


def sync_date(
    db: Session,
    institution_id: str,
    time_zone: str,
    day: date,
    slot_source: SlotSource,
    clock: Clock = utc_now,
) -> None:
    """Fetch the whole local day from the EHR and upsert it. Does not commit."""
    zone = ZoneInfo(time_zone)
    start_time = datetime.combine(day, time.min, tzinfo=zone)
    end_time = datetime.combine(day, time.max, tzinfo=zone)
    api_response = slot_source.find_appointments(start_time, end_time)
    upsert_cache_entry(db, institution_id, day, api_response, clock())


def refresh_if_stale(
    session_factory: sessionmaker,
    institution_id: str,
    time_zone: str,
    expiration_seconds: int,
    day: date,
    slot_source: SlotSource,
    clock: Clock = utc_now,
) -> bool:
    """Refetch one institution/date unless its cache entry is fresh. Own session; returns True if refetched."""
    db = session_factory()
    try:
        entry = get_cache_entry(db, institution_id, day)
        if entry is not None and is_fresh(entry, expiration_seconds, clock()):
            logger.debug("Cache is still fresh for %s on %s, nothing to do.", institution_id, day)
            return False
        if entry is None:
            logger.debug("Cache miss for %s on %s, asking the EHR for data...", institution_id, day)
        else:
            logger.debug("Cache entry is stale for %s on %s, asking the EHR for data...", institution_id, day)
        sync_date(db, institution_id, time_zone, day, slot_source, clock=clock)
        db.commit()
        return True
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
