"""Provider: one bookable clinician. Read-only for the sync engine."""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String
from sqlalchemy.sql import func

from caresync.db.base import Base


class Provider(Base):
    __tablename__ = "provider"

    provider_id = Column(String(36), primary_key=True)
    institution_id = Column(String(64), ForeignKey("institution.institution_id"), nullable=False, index=True)
    name = Column(String(256), nullable=False)
    time_zone = Column(String(64), nullable=False, default="America/New_York")
    scheduling_system_id = Column(String(32), nullable=False)  # EPIC | EPIC_FHIR | ...
    ehr_provider_id = Column(String(64), nullable=True)
    ehr_provider_id_type = Column(String(32), nullable=True)
    slot_classification = Column(String(32), nullable=False, default="DURATION_MATCHED")
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
