from datetime import datetime

from extensions import db

ALL_WORKING_DAYS = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


class AppointmentSettings(db.Model):
    """Clinic-wide booking policy. Single row with id=1."""
    __tablename__ = "appointment_settings"

    id = db.Column(db.Integer, primary_key=True)
    buffer_minutes = db.Column(db.Integer, nullable=False, default=0)
    cancellation_window_hours = db.Column(db.Integer, nullable=False, default=24)
    enforce_cancellation_window = db.Column(db.Boolean, nullable=False, default=False)
    enforce_working_hours = db.Column(db.Boolean, nullable=False, default=False)
    strict_status_transitions = db.Column(db.Boolean, nullable=False, default=False)
    opening_time = db.Column(db.String(5), nullable=False, default="09:00")
    closing_time = db.Column(db.String(5), nullable=False, default="18:00")
    working_days = db.Column(db.JSON, nullable=False, default=lambda: list(ALL_WORKING_DAYS))
    updated_by = db.Column(db.String(36))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            "buffer_minutes": self.buffer_minutes,
            "cancellation_window_hours": self.cancellation_window_hours,
            "enforce_cancellation_window": self.enforce_cancellation_window,
            "enforce_working_hours": self.enforce_working_hours,
            "strict_status_transitions": self.strict_status_transitions,
            "opening_time": self.opening_time,
            "closing_time": self.closing_time,
            "working_days": list(self.working_days or []),
        }
