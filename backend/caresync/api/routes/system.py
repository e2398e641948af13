"""
System: operator endpoints for availability sync (health, on-demand provider/date sync, range backfill).
"""
import logging
import threading
from datetime import date
from typing import NoReturn

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from caresync.core.constants import SchedulingSystemId
from caresync.core.errors import ProviderNotFoundError, sync_error_to_http
from caresync.db.session import get_db
from caresync.services.availability.backfill import sync_provider_availability_range
from caresync.services.availability.directory import find_provider_by_id
from caresync.services.availability.sync_manager import SyncManager

logger = logging.getLogger(__name__)

router = APIRouter()

STATUS_ACCEPTED = 202


def _managers(request: Request) -> dict[str, SyncManager]:
    return getattr(request.app.state, "sync_managers", None) or {}


def _handle_sync_error(exc: Exception, log_message: str) -> NoReturn:
    logger.exception(log_message)
    raise sync_error_to_http(exc) from exc


@router.get("/health")
def health(request: Request) -> dict:
    managers = _managers(request)
    schedule = managers.get(SchedulingSystemId.EPIC.value)
    find = managers.get(SchedulingSystemId.EPIC_FHIR.value)
    return {
        "status": "ok",
        "provider_schedule_sync_running": bool(schedule and schedule.is_running()),
        "appointment_find_sync_running": bool(find and find.is_running()),
    }


@router.post("/system/availability/sync-provider")
def sync_provider(
    provider_id: str,
    request: Request,
    day: date = Query(alias="date"),
    db: Session = Depends(get_db),
):
    """Re-sync one provider/date now through the manager for the provider's scheduling system."""
    provider = find_provider_by_id(db, provider_id)
    if provider is None:
        logger.warning("No provider found with ID %s, ignoring request to sync", provider_id)
        return {"synced": False}
    manager = _managers(request).get(provider.scheduling_system_id)
    if manager is None:
        logger.info("Provider ID %s has no availability sync for %s", provider_id, provider.scheduling_system_id)
        return {"synced": False}
    try:
        return {"synced": manager.sync_provider_availability(provider_id, day, True)}
    except Exception as exc:
        _handle_sync_error(exc, f"On-demand availability sync failed for provider {provider_id} on {day}")


@router.post("/system/availability/sync-provider-range", status_code=STATUS_ACCEPTED)
def sync_provider_range(
    provider_id: str,
    request: Request,
    start_date: date | None = None,
    end_date: date | None = None,
    db: Session = Depends(get_db),
):
    """Kick off a range re-sync on a background thread; the sync log records each date's outcome."""
    if find_provider_by_id(db, provider_id) is None:
        raise sync_error_to_http(ProviderNotFoundError(f"No provider found with ID {provider_id}"))
    if start_date and end_date and start_date > end_date:
        raise sync_error_to_http(ValueError(f"Start date {start_date} is after end date {end_date}"))

    managers = _managers(request)

    def run_range():
        try:
            sync_provider_availability_range(provider_id, start_date, end_date, managers=managers)
        except Exception as e:
            logger.warning("Range sync for provider ID %s failed: %s", provider_id, e, exc_info=True)

    threading.Thread(target=run_range, name=f"range_sync_{provider_id}", daemon=True).start()
    return {"accepted": True, "provider_id": provider_id, "start_date": start_date, "end_date": end_date}
