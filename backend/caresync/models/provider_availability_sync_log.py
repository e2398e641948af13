"""One row per provider/date range re-sync attempt."""
from sqlalchemy import Boolean, Column, Date, DateTime, Integer, String

from caresync.db.base import Base


class ProviderAvailabilitySyncLog(Base):
    __tablename__ = "provider_availability_sync_log"

    sync_log_id = Column(Integer, primary_key=True, autoincrement=True)
    provider_id = Column(String(36), nullable=False, index=True)
    date = Column(Date, nullable=False)
    success = Column(Boolean, nullable=False)
    sync_timestamp = Column(DateTime(timezone=True), nullable=False)
