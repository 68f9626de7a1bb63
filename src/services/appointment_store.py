"""Persistent collection of Appointment records.

All reads and writes of appointments go through ``AppointmentStore`` so the
scheduling operations never touch the ORM query API directly. Writes only
stage changes on the session; the caller's ``db_context()`` commits them.
"""
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from sqlalchemy.orm import joinedload

from extensions import db
from src.models import Appointment, AppointmentStatus, Patient
from src.services.time_utils import day_range
from src.services.time_window import TimeWindow


@dataclass
class AppointmentFilters:
    search: str | None = None
    doctor_id: int | None = None
    service_id: int | None = None
    status: AppointmentStatus | None = None
    patient_id: str | None = None
    date_from: date | None = None
    date_to: date | None = None
    newest_first: bool = True


class AppointmentStore:
    def __init__(self, session=None):
        self.session = session or db.session

    def get(self, appointment_id: str) -> Appointment | None:
        return (
            self.session.query(Appointment)
            .options(
                joinedload(Appointment.patient),
                joinedload(Appointment.doctor),
                joinedload(Appointment.service),
            )
            .filter(Appointment.id == appointment_id)
            .first()
        )

    def add(self, appointment: Appointment) -> Appointment:
        self.session.add(appointment)
        self.session.flush()
        return appointment

    def touch(self, appointment: Appointment) -> Appointment:
        appointment.updated_at = datetime.utcnow()
        self.session.flush()
        return appointment

    def delete(self, appointment: Appointment) -> None:
        self.session.delete(appointment)
        self.session.flush()

    def find_overlapping(
        self,
        doctor_id: int,
        window: TimeWindow,
        exclude_id: str | None = None,
    ) -> list[Appointment]:
        """Non-cancelled appointments of a doctor whose window overlaps ``window``."""
        query = (
            self.session.query(Appointment)
            .filter(Appointment.doctor_id == doctor_id)
            .filter(Appointment.status != AppointmentStatus.CANCELLED)
            .filter(Appointment.start_datetime < window.end)
            .filter(Appointment.end_datetime > window.start)
        )
        if exclude_id:
            query = query.filter(Appointment.id != exclude_id)
        return query.order_by(Appointment.start_datetime.asc()).all()

    def for_doctor_between(self, doctor_id: int, lower: datetime, upper: datetime) -> list[Appointment]:
        return (
            self.session.query(Appointment)
            .filter(Appointment.doctor_id == doctor_id)
            .filter(Appointment.status != AppointmentStatus.CANCELLED)
            .filter(Appointment.start_datetime < upper)
            .filter(Appointment.end_datetime > lower)
            .order_by(Appointment.start_datetime.asc())
            .all()
        )

    def for_day(self, day_start: datetime) -> list[Appointment]:
        """Every appointment starting on the calendar day beginning at ``day_start``."""
        return (
            self.session.query(Appointment)
            .filter(Appointment.start_datetime >= day_start)
            .filter(Appointment.start_datetime < day_start + timedelta(days=1))
            .order_by(Appointment.start_datetime.asc())
            .all()
        )

    def booked_before(self, moment: datetime) -> list[Appointment]:
        return (
            self.session.query(Appointment)
            .filter(Appointment.status == AppointmentStatus.BOOKED)
            .filter(Appointment.start_datetime < moment)
            .all()
        )

    def find_all(self, filters: AppointmentFilters | None = None) -> list[Appointment]:
        filters = filters or AppointmentFilters()
        query = (
            self.session.query(Appointment)
            .join(Patient, Appointment.patient_id == Patient.id)
            .options(
                joinedload(Appointment.patient),
                joinedload(Appointment.doctor),
                joinedload(Appointment.service),
            )
        )

        if filters.doctor_id:
            query = query.filter(Appointment.doctor_id == filters.doctor_id)
        if filters.service_id:
            query = query.filter(Appointment.service_id == filters.service_id)
        if filters.status:
            query = query.filter(Appointment.status == filters.status)
        if filters.patient_id:
            query = query.filter(Appointment.patient_id == filters.patient_id)

        lower, upper = day_range(filters.date_from, filters.date_to)
        if lower is not None:
            query = query.filter(Appointment.start_datetime >= lower)
        if upper is not None:
            query = query.filter(Appointment.start_datetime < upper)

        if filters.search:
            like = f"%{filters.search.strip()}%"
            query = query.filter(
                db.or_(
                    Patient.full_name.ilike(like),
                    Patient.phone_number.ilike(like),
                    Appointment.id.ilike(like),
                )
            )

        order = Appointment.start_datetime.desc() if filters.newest_first else Appointment.start_datetime.asc()
        return query.order_by(order).all()

    def count(self) -> int:
        return self.session.query(Appointment).count()
