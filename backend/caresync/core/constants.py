"""
Centralized constants for the availability sync engine.

Change job IDs, lock names or enum values here instead of scattering literals
across managers, routes and scripts.
"""
import hashlib
from enum import Enum


class SchedulingSystemId(str, Enum):
    EPIC = "EPIC"  # per-provider schedule reads, sequential sync
    EPIC_FHIR = "EPIC_FHIR"  # wide-window appointment find, fan-out sync


class SlotClassification(str, Enum):
    VISIT_TYPE_FILTERED = "VISIT_TYPE_FILTERED"
    DURATION_MATCHED = "DURATION_MATCHED"


# Scheduler job IDs (one recurring job per manager)
PROVIDER_SCHEDULE_SYNC_JOB_ID = "provider_schedule_sync"
APPOINTMENT_FIND_SYNC_JOB_ID = "appointment_find_sync"

# Cluster-wide advisory locks (one per sync flavor)
PROVIDER_SCHEDULE_SYNC_LOCK = "PROVIDER_SCHEDULE_AVAILABILITY_SYNC"
APPOINTMENT_FIND_SYNC_LOCK = "APPOINTMENT_FIND_AVAILABILITY_SYNC"


def advisory_lock_key(lock_name: str) -> int:
    """Deterministic bigint for PostgreSQL advisory locks."""
    h = hashlib.sha256(lock_name.encode()).digest()[:8]
    return int.from_bytes(h, "big") % (2**63)
