from datetime import datetime

FULL_WEEK = {
    day: [{"start": "09:00", "end": "17:00"}]
    for day in ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
}


def at(hour: int, minute: int = 0, day: int = 1) -> datetime:
    """2024-01-<day> at hh:mm (2024-01-01 is a Monday)."""
    return datetime(2024, 1, day, hour, minute)
