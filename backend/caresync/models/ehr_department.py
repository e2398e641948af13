"""EHR location/unit under which a provider's schedule is organized."""
from sqlalchemy import Column, ForeignKey, String

from caresync.db.base import Base


class EhrDepartment(Base):
    __tablename__ = "ehr_department"

    ehr_department_id = Column(String(36), primary_key=True)
    provider_id = Column(String(36), ForeignKey("provider.provider_id"), nullable=False, index=True)
    department_id = Column(String(64), nullable=False)
    department_id_type = Column(String(32), nullable=False)
    name = Column(String(256), nullable=True)
