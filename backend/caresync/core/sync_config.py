"""
Availability sync workload config. .env is the source of truth; these defaults apply only when
the env var is unset. All values read at import time.

Env vars: PROVIDER_SCHEDULE_SYNC_DAYS_AHEAD, PROVIDER_SCHEDULE_SYNC_INTERVAL_SECONDS,
PROVIDER_SCHEDULE_SYNC_INITIAL_DELAY_SECONDS, APPOINTMENT_FIND_SYNC_DAYS_AHEAD,
APPOINTMENT_FIND_SYNC_INTERVAL_SECONDS, APPOINTMENT_FIND_SYNC_INITIAL_DELAY_SECONDS,
APPOINTMENT_FIND_MAX_WORKERS, APPOINTMENT_FIND_TIMEOUT_SECONDS.
"""
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load backend/.env so scripts and workers that import this module see the same values as the app
_backend_dir = Path(__file__).resolve().parent.parent.parent
load_dotenv(_backend_dir / ".env", override=False)  # no-op if file missing

_log = logging.getLogger(__name__)


def _int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    raw = os.environ.get(key)
    if raw is None:
        v = default
    else:
        try:
            v = int(raw.strip())
        except ValueError:
            v = default
    if min_val is not None and v < min_val:
        v = min_val
    if max_val is not None and v > max_val:
        v = max_val
    return v


# -----------------------------------------------------------------------------
# Sequential per-provider schedule sync (7 weeks and 1 day ahead, every 10 minutes)
# -----------------------------------------------------------------------------
PROVIDER_SCHEDULE_SYNC_DAYS_AHEAD = _int("PROVIDER_SCHEDULE_SYNC_DAYS_AHEAD", 50, min_val=1, max_val=120)
PROVIDER_SCHEDULE_SYNC_INTERVAL_SECONDS = _int(
    "PROVIDER_SCHEDULE_SYNC_INTERVAL_SECONDS", 600, min_val=10, max_val=86400
)
PROVIDER_SCHEDULE_SYNC_INITIAL_DELAY_SECONDS = _int(
    "PROVIDER_SCHEDULE_SYNC_INITIAL_DELAY_SECONDS", 10, min_val=0, max_val=3600
)

# -----------------------------------------------------------------------------
# Fan-out appointment-find sync (one wide call per institution/date)
# -----------------------------------------------------------------------------
APPOINTMENT_FIND_SYNC_DAYS_AHEAD = _int("APPOINTMENT_FIND_SYNC_DAYS_AHEAD", 60, min_val=1, max_val=120)
APPOINTMENT_FIND_SYNC_INTERVAL_SECONDS = _int(
    "APPOINTMENT_FIND_SYNC_INTERVAL_SECONDS", 60, min_val=10, max_val=86400
)
APPOINTMENT_FIND_SYNC_INITIAL_DELAY_SECONDS = _int(
    "APPOINTMENT_FIND_SYNC_INITIAL_DELAY_SECONDS", 10, min_val=0, max_val=3600
)
# Caps outbound request concurrency against the EHR
APPOINTMENT_FIND_MAX_WORKERS = _int("APPOINTMENT_FIND_MAX_WORKERS", 10, min_val=1, max_val=32)
APPOINTMENT_FIND_TIMEOUT_SECONDS = _int("APPOINTMENT_FIND_TIMEOUT_SECONDS", 180, min_val=5, max_val=3600)

_log.info(
    "Availability sync config (from env): schedule_days_ahead=%s schedule_interval_sec=%s "
    "find_days_ahead=%s find_interval_sec=%s find_max_workers=%s find_timeout_sec=%s",
    PROVIDER_SCHEDULE_SYNC_DAYS_AHEAD,
    PROVIDER_SCHEDULE_SYNC_INTERVAL_SECONDS,
    APPOINTMENT_FIND_SYNC_DAYS_AHEAD,
    APPOINTMENT_FIND_SYNC_INTERVAL_SECONDS,
    APPOINTMENT_FIND_MAX_WORKERS,
    APPOINTMENT_FIND_TIMEOUT_SECONDS,
)


@dataclass(frozen=True)
class SyncConfig:
    """Snapshot of sync config for passing around (e.g. tests)."""
    schedule_days_ahead: int
    schedule_interval_seconds: int
    schedule_initial_delay_seconds: int
    find_days_ahead: int
    find_interval_seconds: int
    find_initial_delay_seconds: int
    find_max_workers: int
    find_timeout_seconds: int


def get_sync_config() -> SyncConfig:
    return SyncConfig(
        schedule_days_ahead=PROVIDER_SCHEDULE_SYNC_DAYS_AHEAD,
        schedule_interval_seconds=PROVIDER_SCHEDULE_SYNC_INTERVAL_SECONDS,
        schedule_initial_delay_seconds=PROVIDER_SCHEDULE_SYNC_INITIAL_DELAY_SECONDS,
        find_days_ahead=APPOINTMENT_FIND_SYNC_DAYS_AHEAD,
        find_interval_seconds=APPOINTMENT_FIND_SYNC_INTERVAL_SECONDS,
        find_initial_delay_seconds=APPOINTMENT_FIND_SYNC_INITIAL_DELAY_SECONDS,
        find_max_workers=APPOINTMENT_FIND_MAX_WORKERS,
        find_timeout_seconds=APPOINTMENT_FIND_TIMEOUT_SECONDS,
    )
