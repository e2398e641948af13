"""Verbatim appointment-find responses per (institution, date). Upserted, never deleted."""
from sqlalchemy import Column, Date, DateTime, String, Text

from caresync.db.base import Base


class AppointmentFindCache(Base):
    __tablename__ = "appointment_find_cache"

    institution_id = Column(String(64), primary_key=True)
    date = Column(Date, primary_key=True)
    api_response = Column(Text, nullable=False)
    last_updated = Column(DateTime(timezone=True), nullable=False)
