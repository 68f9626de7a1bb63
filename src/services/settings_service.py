import logging

from extensions import db
from src.models import AppointmentSettings, ALL_WORKING_DAYS
from src.services.db_context import db_context
from src.services.errors import ValidationError
from src.services.time_utils import to_minutes

logger = logging.getLogger("settings_service")

SETTINGS_ID = 1

BOUNDS = {
    "buffer_minutes": (0, 240),
    "cancellation_window_hours": (0, 168),
}
FLAGS = ("enforce_cancellation_window", "enforce_working_hours", "strict_status_transitions")


def get_settings() -> AppointmentSettings:
    """Return the settings row, creating it with defaults on first use."""
    settings = db.session.get(AppointmentSettings, SETTINGS_ID)
    if settings is None:
        with db_context() as session:
            settings = AppointmentSettings(
                id=SETTINGS_ID,
                buffer_minutes=0,
                cancellation_window_hours=24,
                enforce_cancellation_window=False,
                enforce_working_hours=False,
                strict_status_transitions=False,
                opening_time="09:00",
                closing_time="18:00",
                working_days=list(ALL_WORKING_DAYS),
            )
            session.add(settings)
            session.flush()
        logger.info("[get_settings] Created default appointment settings")
    return settings


def update_settings(patch: dict, actor: str | None = None) -> AppointmentSettings:
    settings = get_settings()

    for field, (low, high) in BOUNDS.items():
        if field in patch and patch[field] is not None:
            value = patch[field]
            if not (low <= value <= high):
                raise ValidationError(f"{field} must be between {low} and {high}")

    opening = patch.get("opening_time") or settings.opening_time
    closing = patch.get("closing_time") or settings.closing_time
    try:
        if to_minutes(opening) >= to_minutes(closing):
            raise ValidationError("opening_time must be before closing_time")
    except ValueError:
        raise ValidationError("opening_time and closing_time must be HH:MM")

    working_days = patch.get("working_days")
    if working_days is not None:
        unknown = [d for d in working_days if d not in ALL_WORKING_DAYS]
        if unknown:
            raise ValidationError(f"Unknown working days: {', '.join(unknown)}")

    with db_context():
        for field in (*BOUNDS, *FLAGS, "opening_time", "closing_time", "working_days"):
            if patch.get(field) is not None:
                setattr(settings, field, patch[field])
        settings.updated_by = actor

    logger.info(f"[update_settings] Settings updated by {actor}: {settings.to_dict()}")
    return settings
