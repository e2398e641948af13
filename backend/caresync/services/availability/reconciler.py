"""
Reconciler: applies one provider/date row set to provider_availability.

History is never rewritten:
- date before today (provider time zone): no-op.
- today: only rows after "now" are replaced; rows at or before now are frozen.
- future date: the whole day is replaced.
The caller owns the transaction; commit_row_set wraps one row set in its own.
"""
import logging
from datetime import datetime, time, timedelta

from sqlalchemy import insert
from sqlalchemy.orm import Session, sessionmaker

from caresync.core.clock import Clock, local_now, utc_now
from caresync.models.provider_availability import ProviderAvailability
from caresync.services.availability.builder import AvailabilityRowSet

logger = logging.getLogger(__name__)


def apply_row_set(db: Session, row_set: AvailabilityRowSet, clock: Clock = utc_now) -> int:
    """Delete and re-insert availability for one provider/date. Returns rows inserted. Does not commit."""
    now = local_now(row_set.time_zone, clock)
    today = now.date()

    if row_set.date < today:
        logger.info(
            "Ignoring provider sync request for %s because it's for a date in the past: %s",
            row_set.provider_id,
            row_set.date,
        )
        return 0

    is_today = row_set.date == today
    if is_today:
        end_of_day = datetime.combine(today, time.max)
        logger.info(
            "Provider ID %s is being synced for 'today' - removing any availability between %s and %s...",
            row_set.provider_id,
            now,
            end_of_day,
        )
        db.query(ProviderAvailability).filter(
            ProviderAvailability.provider_id == row_set.provider_id,
            ProviderAvailability.date_time > now,
            ProviderAvailability.date_time <= end_of_day,
        ).delete(synchronize_session=False)
    else:
        day_start = datetime.combine(row_set.date, time.min)
        db.query(ProviderAvailability).filter(
            ProviderAvailability.provider_id == row_set.provider_id,
            ProviderAvailability.date_time >= day_start,
            ProviderAvailability.date_time < day_start + timedelta(days=1),
        ).delete(synchronize_session=False)

    values = []
    for row in row_set.rows:
        # Rows at or before now are frozen for today; anything built earlier that is now past is dropped
        if is_today and row.date_time <= now:
            logger.info(
                "Provider ID %s is being synced for 'today', so ignore availability insert for %s because it's not after now (%s)...",
                row_set.provider_id,
                row.date_time,
                now,
            )
            continue
        values.append(
            {
                "provider_id": row_set.provider_id,
                "appointment_type_id": row.appointment_type_id,
                "date_time": row.date_time,
                "ehr_department_id": row.ehr_department_id,
            }
        )
    if values:
        db.execute(insert(ProviderAvailability), values)
    return len(values)


def commit_row_set(session_factory: sessionmaker, row_set: AvailabilityRowSet, clock: Clock = utc_now) -> int:
    """apply_row_set in its own session and transaction; rolls back on any failure."""
    db = session_factory()
    try:
        inserted = apply_row_set(db, row_set, clock=clock)
        db.commit()
        return inserted
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
