from caresync.models.appointment_find_cache import AppointmentFindCache
from caresync.models.appointment_type import AppointmentType
from caresync.models.ehr_department import EhrDepartment
from caresync.models.institution import Institution
from caresync.models.provider import Provider
from caresync.models.provider_availability import ProviderAvailability
from caresync.models.provider_availability_sync_log import ProviderAvailabilitySyncLog

__all__ = [
    "AppointmentFindCache",
    "AppointmentType",
    "EhrDepartment",
    "Institution",
    "Provider",
    "ProviderAvailability",
    "ProviderAvailabilitySyncLog",
]
