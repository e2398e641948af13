"""
EHR slot sources: HTTP client, mock client, and the per-institution registry.
The sync engine depends only on the SlotSource protocol.
"""
from caresync.services.ehr.base import SlotSource
from caresync.services.ehr.registry import get_slot_source, register_slot_source, unregister_slot_source
from caresync.services.ehr.types import ProviderScheduleRequest, ScheduleSlot

__all__ = [
    "ProviderScheduleRequest",
    "ScheduleSlot",
    "SlotSource",
    "get_slot_source",
    "register_slot_source",
    "unregister_slot_source",
]
