"""
Sequential provider schedule sync: institution -> active provider -> next N days.

For each provider every date is built first (EHR calls, no writes), then each date is committed in
its own short transaction to keep lock contention low. A failing provider is logged and skipped;
it never aborts the rest of its institution.
"""
import logging
from datetime import date, timedelta
from typing import Callable

from sqlalchemy.orm import Session, sessionmaker

from caresync.core.clock import Clock, local_now, utc_now
from caresync.core.constants import SchedulingSystemId
from caresync.core.sync_config import PROVIDER_SCHEDULE_SYNC_DAYS_AHEAD
from caresync.db.session import SessionLocal
from caresync.models.institution import Institution
from caresync.models.provider import Provider
from caresync.services.availability.builder import (
    AvailabilityRowSet,
    build_availability,
    format_availability_debug,
)
from caresync.services.availability.directory import (
    find_active_providers_by_institution,
    find_appointment_types_by_provider,
    find_ehr_departments_by_provider,
    find_institutions_with_active_providers,
)
from caresync.services.availability.reconciler import apply_row_set
from caresync.services.ehr.base import SlotSource
from caresync.services.ehr.registry import get_slot_source

logger = logging.getLogger(__name__)

SlotSourceFactory = Callable[[str], SlotSource]


def _never_stop() -> bool:
    return False


def build_provider_date(
    db: Session,
    provider: Provider,
    institution: Institution,
    day: date,
    slot_source: SlotSource,
) -> AvailabilityRowSet:
    """Load the provider's departments/appointment types and build one date. Inactive providers get no rows."""
    appointment_types = (
        find_appointment_types_by_provider(db, provider.provider_id, SchedulingSystemId.EPIC) if provider.active else []
    )
    departments = find_ehr_departments_by_provider(db, provider.provider_id)
    return build_availability(provider, institution, day, departments, appointment_types, slot_source)


def sync_provider(
    db: Session,
    provider: Provider,
    institution: Institution,
    slot_source: SlotSource,
    *,
    days_ahead: int = PROVIDER_SCHEDULE_SYNC_DAYS_AHEAD,
    clock: Clock = utc_now,
) -> int:
    """Sync today plus the following days for one provider. Returns dates committed; raises on any failure."""
    provider_name = provider.name
    slot_classification = provider.slot_classification
    start_date = local_now(provider.time_zone, clock).date()

    row_sets = [
        build_provider_date(db, provider, institution, start_date + timedelta(days=offset), slot_source)
        for offset in range(days_ahead)
    ]

    for row_set in row_sets:
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(format_availability_debug(provider_name, slot_classification, row_set))
        try:
            apply_row_set(db, row_set, clock=clock)
            db.commit()
        except Exception:
            db.rollback()
            raise
    return len(row_sets)


def sync_institution(
    db: Session,
    institution: Institution,
    *,
    days_ahead: int = PROVIDER_SCHEDULE_SYNC_DAYS_AHEAD,
    clock: Clock = utc_now,
    slot_source_for: SlotSourceFactory = get_slot_source,
    should_stop: Callable[[], bool] = _never_stop,
) -> tuple[int, int]:
    """Returns (providers synced, providers attempted)."""
    institution_id = institution.institution_id
    providers = find_active_providers_by_institution(db, institution_id, SchedulingSystemId.EPIC)
    slot_source = slot_source_for(institution_id)

    logger.info("Running provider schedule availability sync for %s providers in %s...", len(providers), institution_id)

    success_count = 0
    for provider in providers:
        if should_stop():
            logger.info("Provider schedule sync for %s stopped before completion.", institution_id)
            break
        provider_id, provider_name = provider.provider_id, provider.name
        try:
            sync_provider(db, provider, institution, slot_source, days_ahead=days_ahead, clock=clock)
            success_count += 1
        except Exception:
            db.rollback()
            logger.warning("Unable to sync provider ID %s (%s) with the EHR", provider_id, provider_name, exc_info=True)

    logger.info(
        "Provider schedule availability sync complete for %s. Successfully synced %s of %s providers.",
        institution_id,
        success_count,
        len(providers),
    )
    return success_count, len(providers)


def run_provider_schedule_sync(
    session_factory: sessionmaker = SessionLocal,
    *,
    days_ahead: int = PROVIDER_SCHEDULE_SYNC_DAYS_AHEAD,
    clock: Clock = utc_now,
    slot_source_for: SlotSourceFactory = get_slot_source,
    should_stop: Callable[[], bool] = _never_stop,
) -> dict[str, tuple[int, int]]:
    """One full pass over every institution with active EHR-scheduled providers."""
    results: dict[str, tuple[int, int]] = {}
    db = session_factory()
    try:
        institutions = find_institutions_with_active_providers(db, SchedulingSystemId.EPIC)
        for institution in institutions:
            if should_stop():
                break
            institution_id = institution.institution_id
            try:
                results[institution_id] = sync_institution(
                    db,
                    institution,
                    days_ahead=days_ahead,
                    clock=clock,
                    slot_source_for=slot_source_for,
                    should_stop=should_stop,
                )
            except Exception:
                db.rollback()
                logger.warning("Provider schedule sync failed for institution %s", institution_id, exc_info=True)
    finally:
        db.close()
    return results
