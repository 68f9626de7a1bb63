import enum
from datetime import datetime

from extensions import db


class DoctorStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


class Doctor(db.Model):
    __tablename__ = "doctors"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    specialization = db.Column(db.String(255), nullable=False, default="")
    status = db.Column(
        db.Enum(DoctorStatus, native_enum=False, length=16, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=DoctorStatus.ACTIVE,
    )
    # list of service ids
    services_offered = db.Column(db.JSON, nullable=False, default=list)
    # {"monday": [{"start": "09:00", "end": "13:00"}, ...], ...}
    working_hours = db.Column(db.JSON, nullable=False, default=dict)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def ranges_for(self, weekday_name: str) -> list:
        """Working ranges for a weekday name ('Monday' or 'monday')."""
        ranges = (self.working_hours or {}).get(weekday_name.lower()) or []
        return ranges if isinstance(ranges, list) else []

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "specialization": self.specialization,
            "status": self.status.value if self.status else None,
            "services_offered": list(self.services_offered or []),
            "working_hours": dict(self.working_hours or {}),
        }
