import logging

from extensions import db
from src.models import Patient
from src.services.db_context import db_context
from src.services.errors import ConflictError, NotFoundError

logger = logging.getLogger("patient_service")


# -------------------------------
# PATIENT HELPERS
# -------------------------------

def get_patient(patient_id: str) -> Patient:
    patient = db.session.get(Patient, patient_id)
    if patient is None:
        raise NotFoundError("Patient", patient_id)
    return patient


def find_patient_by_phone(phone: str) -> Patient | None:
    """Phone is the natural identity of a patient."""
    return Patient.query.filter_by(phone_number=phone).first()


def list_patients(search: str | None = None, limit: int = 100) -> list[Patient]:
    query = Patient.query
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(
            db.or_(Patient.full_name.ilike(like), Patient.phone_number.ilike(like))
        )
    return query.order_by(Patient.created_at.desc()).limit(limit).all()


def create_patient(
    *,
    full_name: str,
    phone_number: str,
    email: str | None = None,
    id_last4: str | None = None,
    actor: str | None = None,
) -> Patient:
    if find_patient_by_phone(phone_number):
        raise ConflictError(f"Patient with phone number {phone_number} already exists")

    with db_context() as session:
        patient = Patient(
            full_name=full_name.strip(),
            phone_number=phone_number,
            email=email or "",
            id_last4=id_last4,
            created_by=actor,
        )
        session.add(patient)
        session.flush()
    logger.info(f"[create_patient] Created patient id={patient.id} phone={phone_number}")
    return patient


def update_patient(patient_id: str, patch: dict, actor: str | None = None) -> Patient:
    patient = get_patient(patient_id)
    phone = patch.get("phone_number")
    if phone and phone != patient.phone_number and find_patient_by_phone(phone):
        raise ConflictError(f"Patient with phone number {phone} already exists")

    with db_context():
        for field in ("full_name", "phone_number", "email", "id_last4"):
            if patch.get(field) is not None:
                setattr(patient, field, patch[field])
        patient.updated_by = actor
    return patient


def resolve_patient(
    *,
    patient_id: str | None = None,
    full_name: str | None = None,
    phone_number: str | None = None,
    email: str | None = None,
    actor: str | None = None,
) -> Patient:
    """
    Find-or-create used by inline-patient booking:
    - patient_id given: must exist.
    - otherwise look up by phone; refresh name/email if they changed.
    - otherwise create a new patient record.
    """
    if patient_id:
        return get_patient(patient_id)

    existing = find_patient_by_phone(phone_number)
    if existing is None:
        return create_patient(
            full_name=full_name,
            phone_number=phone_number,
            email=email,
            actor=actor,
        )

    changed = False
    with db_context():
        if full_name and existing.full_name != full_name:
            existing.full_name = full_name
            changed = True
        if email and existing.email != email:
            existing.email = email
            changed = True
        if changed:
            existing.updated_by = actor
    if changed:
        logger.info(f"[resolve_patient] Refreshed details for patient id={existing.id}")
    return existing
