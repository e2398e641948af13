"""
Bookable availability rows. Written only by the sync engine; read by booking flows.
date_time is naive and local to the provider's time zone.
"""
from sqlalchemy import Column, DateTime, Index, Integer, String

from caresync.db.base import Base


class ProviderAvailability(Base):
    __tablename__ = "provider_availability"

    provider_availability_id = Column(Integer, primary_key=True, autoincrement=True)
    provider_id = Column(String(36), nullable=False)
    appointment_type_id = Column(String(36), nullable=False)
    date_time = Column(DateTime(timezone=False), nullable=False)
    ehr_department_id = Column(String(36), nullable=False)

    __table_args__ = (Index("ix_provider_availability_provider_date_time", "provider_id", "date_time"),)
