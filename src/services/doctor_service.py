import logging

from extensions import db
from src.models import Doctor, DoctorStatus, WEEKDAYS
from src.services.db_context import db_context
from src.services.errors import NotFoundError, ValidationError
from src.services.time_utils import to_minutes

logger = logging.getLogger("doctor_service")


def get_doctor(doctor_id: int) -> Doctor:
    doctor = db.session.get(Doctor, doctor_id)
    if doctor is None:
        raise NotFoundError("Doctor", doctor_id)
    return doctor


def lock_doctor(doctor_id: int) -> Doctor:
    """
    Load the doctor row with SELECT ... FOR UPDATE so conflict check + write
    for this doctor are serialized until the surrounding transaction ends.
    """
    doctor = (
        Doctor.query
        .filter(Doctor.id == doctor_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if doctor is None:
        raise NotFoundError("Doctor", doctor_id)
    return doctor


def list_doctors(status: DoctorStatus | None = None) -> list[Doctor]:
    query = Doctor.query
    if status is not None:
        query = query.filter(Doctor.status == status)
    return query.order_by(Doctor.name.asc()).all()


def normalize_working_hours(raw: dict | None) -> dict:
    """
    Validate a weekly template: {"monday": [{"start": "09:00", "end": "13:00"}]}.
    Keys are lower-cased weekday names; each range must have end > start.
    """
    if not raw:
        return {}
    if not isinstance(raw, dict):
        raise ValidationError("working_hours must be an object keyed by weekday")

    template = {}
    for day, ranges in raw.items():
        key = str(day).lower()
        if key not in WEEKDAYS:
            raise ValidationError(f"Unknown weekday in working_hours: {day}")
        if not isinstance(ranges, list):
            raise ValidationError(f"working_hours.{key} must be a list of ranges")

        cleaned = []
        for r in ranges:
            try:
                start, end = r["start"], r["end"]
                if to_minutes(end) <= to_minutes(start):
                    raise ValidationError(f"working_hours.{key}: range end must be after start")
            except (KeyError, TypeError, ValueError):
                raise ValidationError(f"working_hours.{key}: ranges need HH:MM start and end")
            cleaned.append({"start": start, "end": end})
        template[key] = sorted(cleaned, key=lambda x: x["start"])
    return template


def create_doctor(
    *,
    name: str,
    specialization: str = "",
    status: DoctorStatus = DoctorStatus.ACTIVE,
    services_offered: list[int] | None = None,
    working_hours: dict | None = None,
) -> Doctor:
    template = normalize_working_hours(working_hours)
    with db_context() as session:
        doctor = Doctor(
            name=name.strip(),
            specialization=specialization.strip(),
            status=status,
            services_offered=list(services_offered or []),
            working_hours=template,
        )
        session.add(doctor)
    logger.info(f"[create_doctor] Created doctor id={doctor.id} name={doctor.name!r}")
    return doctor


def update_doctor(doctor_id: int, patch: dict) -> Doctor:
    doctor = get_doctor(doctor_id)
    template = None
    if patch.get("working_hours") is not None:
        template = normalize_working_hours(patch["working_hours"])

    with db_context():
        for field in ("name", "specialization", "status"):
            if patch.get(field) is not None:
                setattr(doctor, field, patch[field])
        if patch.get("services_offered") is not None:
            doctor.services_offered = list(patch["services_offered"])
        if template is not None:
            doctor.working_hours = template
    return doctor
