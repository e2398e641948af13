"""Registry of slot sources per institution. Falls back to a shared default built from settings."""
import logging
import threading

from caresync.config import settings
from caresync.services.ehr.base import SlotSource

logger = logging.getLogger(__name__)

_sources: dict[str, SlotSource] = {}
_default: SlotSource | None = None
_lock = threading.Lock()


def register_slot_source(institution_id: str, source: SlotSource) -> None:
    """Register the slot source for one institution (e.g. a per-tenant client or a test fake)."""
    with _lock:
        _sources[institution_id] = source
    logger.info("Registered slot source for institution %s: %s", institution_id, type(source).__name__)


def unregister_slot_source(institution_id: str) -> None:
    with _lock:
        _sources.pop(institution_id, None)


def _build_default() -> SlotSource:
    if settings.ehr_use_mock:
        from caresync.services.ehr.mock_client import MockEhrClient

        return MockEhrClient()
    from caresync.services.ehr.client import EhrClient

    return EhrClient()


def get_slot_source(institution_id: str) -> SlotSource:
    global _default
    with _lock:
        source = _sources.get(institution_id)
        if source is not None:
            return source
        if _default is None:
            _default = _build_default()
        return _default
