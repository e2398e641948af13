"""Institution: groups providers; owns the EHR user identity and the appointment-find cache window."""
from sqlalchemy import Boolean, Column, Integer, String

from caresync.db.base import Base


class Institution(Base):
    __tablename__ = "institution"

    institution_id = Column(String(64), primary_key=True)
    name = Column(String(256), nullable=False)
    time_zone = Column(String(64), nullable=False, default="America/New_York")
    # User the EHR attributes schedule reads to
    ehr_user_id = Column(String(64), nullable=True)
    ehr_user_id_type = Column(String(32), nullable=True)
    appointment_find_enabled = Column(Boolean, nullable=False, default=False)
    appointment_find_cache_expiration_seconds = Column(Integer, nullable=False, default=300)
