import enum
import uuid
from datetime import datetime

from sqlalchemy import DDL, event

from extensions import db


class AppointmentStatus(str, enum.Enum):
    PENDING_CONFIRMATION = "pending_confirmation"
    BOOKED = "booked"
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked_in"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"
    RESCHEDULED = "rescheduled"


OVERLAP_CONSTRAINT = "appointments_no_overlap"


class Appointment(db.Model):
    __tablename__ = "appointments"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    patient_id = db.Column(db.String(36), db.ForeignKey("patients.id"), nullable=False)
    doctor_id = db.Column(db.Integer, db.ForeignKey("doctors.id"), nullable=False, index=True)
    service_id = db.Column(db.Integer, db.ForeignKey("services.id"), nullable=False)
    start_datetime = db.Column(db.DateTime, nullable=False)
    end_datetime = db.Column(db.DateTime, nullable=False)
    status = db.Column(
        db.Enum(AppointmentStatus, native_enum=False, length=32, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=AppointmentStatus.PENDING_CONFIRMATION,
    )
    calendar_event_id = db.Column(db.String(255))
    notes = db.Column(db.Text)
    created_by = db.Column(db.String(36))
    updated_by = db.Column(db.String(36))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    patient = db.relationship("Patient", backref=db.backref("appointments", lazy=True))
    doctor = db.relationship("Doctor")
    service = db.relationship("Service")

    __table_args__ = (
        db.CheckConstraint("end_datetime > start_datetime", name="appointments_end_after_start"),
        db.Index("ix_appointments_doctor_window", "doctor_id", "start_datetime", "end_datetime"),
    )

    def to_dict(self, resolved: bool = True):
        payload = {
            "id": self.id,
            "patient_id": self.patient_id,
            "doctor_id": self.doctor_id,
            "service_id": self.service_id,
            "start_datetime": self.start_datetime.isoformat(),
            "end_datetime": self.end_datetime.isoformat(),
            "status": self.status.value,
            "notes": self.notes,
            "calendar_event_id": self.calendar_event_id,
            "created_by": self.created_by,
            "updated_by": self.updated_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if resolved:
            payload["patient"] = self.patient.to_dict() if self.patient else None
            payload["doctor"] = self.doctor.to_dict() if self.doctor else None
            payload["service"] = self.service.to_dict() if self.service else None
        return payload

    def __repr__(self):
        return f"<Appointment {self.id} doctor={self.doctor_id} {self.start_datetime}-{self.end_datetime} {self.status}>"


# PostgreSQL enforces the no-overlap rule at commit time as well, closing the
# check-then-write race across processes.
event.listen(
    db.metadata,
    "before_create",
    DDL("CREATE EXTENSION IF NOT EXISTS btree_gist").execute_if(dialect="postgresql"),
)
event.listen(
    Appointment.__table__,
    "after_create",
    DDL(
        f"ALTER TABLE appointments ADD CONSTRAINT {OVERLAP_CONSTRAINT} "
        "EXCLUDE USING gist (doctor_id WITH =, tsrange(start_datetime, end_datetime) WITH &&) "
        "WHERE (status <> 'cancelled')"
    ).execute_if(dialect="postgresql"),
)
