"""Appointment type offered by a provider (e.g. 60-minute NPV, 30-minute RPV)."""
from sqlalchemy import Column, ForeignKey, Integer, String

from caresync.db.base import Base


class AppointmentType(Base):
    __tablename__ = "appointment_type"

    appointment_type_id = Column(String(36), primary_key=True)
    provider_id = Column(String(36), ForeignKey("provider.provider_id"), nullable=False, index=True)
    name = Column(String(256), nullable=False)
    scheduling_system_id = Column(String(32), nullable=False)
    duration_in_minutes = Column(Integer, nullable=False)
    # Only used by VISIT_TYPE_FILTERED providers
    ehr_visit_type_id = Column(String(64), nullable=True)
    ehr_visit_type_id_type = Column(String(32), nullable=True)
