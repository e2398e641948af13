"""Read-only lookups over providers, institutions, appointment types and departments."""
from sqlalchemy.orm import Session

from caresync.core.constants import SchedulingSystemId
from caresync.models.appointment_type import AppointmentType
from caresync.models.ehr_department import EhrDepartment
from caresync.models.institution import Institution
from caresync.models.provider import Provider


def find_provider_by_id(db: Session, provider_id: str) -> Provider | None:
    return db.get(Provider, provider_id)


def find_institution_by_id(db: Session, institution_id: str) -> Institution | None:
    return db.get(Institution, institution_id)


def find_institutions_with_active_providers(db: Session, scheduling_system_id: SchedulingSystemId) -> list[Institution]:
    """Institutions that have at least one active provider scheduled through the given system."""
    provider_institutions = (
        db.query(Provider.institution_id)
        .filter(Provider.scheduling_system_id == scheduling_system_id.value, Provider.active.is_(True))
        .distinct()
    )
    return (
        db.query(Institution)
        .filter(Institution.institution_id.in_(provider_institutions.scalar_subquery()))
        .order_by(Institution.institution_id)
        .all()
    )


def find_appointment_find_institutions(db: Session) -> list[Institution]:
    return (
        db.query(Institution)
        .filter(Institution.appointment_find_enabled.is_(True))
        .order_by(Institution.institution_id)
        .all()
    )


def find_active_providers_by_institution(
    db: Session, institution_id: str, scheduling_system_id: SchedulingSystemId
) -> list[Provider]:
    return (
        db.query(Provider)
        .filter(
            Provider.institution_id == institution_id,
            Provider.scheduling_system_id == scheduling_system_id.value,
            Provider.active.is_(True),
        )
        .order_by(Provider.name, Provider.provider_id)
        .all()
    )


def find_appointment_types_by_provider(
    db: Session, provider_id: str, scheduling_system_id: SchedulingSystemId
) -> list[AppointmentType]:
    return (
        db.query(AppointmentType)
        .filter(
            AppointmentType.provider_id == provider_id,
            AppointmentType.scheduling_system_id == scheduling_system_id.value,
        )
        .order_by(AppointmentType.appointment_type_id)
        .all()
    )


def find_ehr_departments_by_provider(db: Session, provider_id: str) -> list[EhrDepartment]:
    return (
        db.query(EhrDepartment)
        .filter(EhrDepartment.provider_id == provider_id)
        .order_by(EhrDepartment.ehr_department_id)
        .all()
    )
