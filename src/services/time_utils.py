from datetime import datetime, time, timedelta

import pytz
from flask import current_app, has_app_context

DEFAULT_TIMEZONE = "UTC"
HHMM_FORMAT = "%H:%M"
DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def clinic_tz():
    name = DEFAULT_TIMEZONE
    if has_app_context():
        name = current_app.config.get("CLINIC_TIMEZONE", DEFAULT_TIMEZONE)
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        return pytz.UTC


def to_clinic_naive(value: datetime) -> datetime:
    """Appointments are stored as naive clinic-local datetimes."""
    if value.tzinfo is None:
        return value
    return value.astimezone(clinic_tz()).replace(tzinfo=None)


def clinic_now() -> datetime:
    return datetime.now(clinic_tz()).replace(tzinfo=None)


def parse_hhmm(value: str) -> time:
    return datetime.strptime(value, HHMM_FORMAT).time()


def to_minutes(value: str) -> int:
    parsed = parse_hhmm(value)
    return parsed.hour * 60 + parsed.minute


def day_name(value: datetime) -> str:
    return DAY_NAMES[value.weekday()]


def start_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), time(0, 0))


def day_range(date_from=None, date_to=None):
    """
    Inclusive calendar-day range as [lower, upper) datetimes.
    date_to covers the whole of that day.
    """
    lower = upper = None
    if date_from is not None:
        lower = datetime.combine(date_from, time(0, 0))
    if date_to is not None:
        upper = datetime.combine(date_to, time(0, 0)) + timedelta(days=1)
    return lower, upper
