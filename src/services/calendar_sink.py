"""Best-effort calendar sync collaborators.

The scheduling core calls a sink only after its own transaction committed.
Sinks may return an external event id from ``on_created``/``on_updated``;
the core stores it on the appointment. Sink failures never fail the
scheduling operation.
"""
import logging

from flask import current_app

from src.models import Appointment
from src.services import redis_service

logger = logging.getLogger("calendar_sink")


def event_payload(appointment: Appointment) -> dict:
    return {
        "id": appointment.id,
        "doctor_id": appointment.doctor_id,
        "patient_id": appointment.patient_id,
        "service_id": appointment.service_id,
        "start_datetime": appointment.start_datetime.isoformat(),
        "end_datetime": appointment.end_datetime.isoformat(),
        "status": appointment.status.value,
        "calendar_event_id": appointment.calendar_event_id,
        "summary": _summary(appointment),
    }


def _summary(appointment: Appointment) -> str:
    service = appointment.service.name if appointment.service else "Appointment"
    patient = appointment.patient.full_name if appointment.patient else "patient"
    return f"{service} - {patient}"


class CalendarSink:
    def on_created(self, appointment: Appointment) -> str | None:
        return None

    def on_updated(self, appointment: Appointment) -> str | None:
        return None

    def on_deleted(self, appointment: Appointment) -> None:
        return None


class NullCalendarSink(CalendarSink):
    pass


class LoggingCalendarSink(CalendarSink):
    def on_created(self, appointment):
        logger.info(f"[calendar] created {event_payload(appointment)}")

    def on_updated(self, appointment):
        logger.info(f"[calendar] updated {event_payload(appointment)}")

    def on_deleted(self, appointment):
        logger.info(f"[calendar] deleted appointment={appointment.id} event={appointment.calendar_event_id}")


class RedisCalendarSink(CalendarSink):
    """Queues events for the calendar sync worker; event ids arrive later via update."""

    def on_created(self, appointment):
        redis_service.enqueue_calendar_event("created", event_payload(appointment))

    def on_updated(self, appointment):
        redis_service.enqueue_calendar_event("updated", event_payload(appointment))

    def on_deleted(self, appointment):
        redis_service.enqueue_calendar_event("deleted", event_payload(appointment))


SINKS = {
    "none": NullCalendarSink,
    "log": LoggingCalendarSink,
    "redis": RedisCalendarSink,
}


def build_sink(name: str) -> CalendarSink:
    try:
        return SINKS[name]()
    except KeyError:
        logger.warning(f"[calendar] Unknown CALENDAR_SINK={name!r}, falling back to none")
        return NullCalendarSink()


def get_calendar_sink() -> CalendarSink:
    sink = current_app.extensions.get("calendar_sink")
    if sink is None:
        sink = build_sink(current_app.config.get("CALENDAR_SINK", "none"))
        current_app.extensions["calendar_sink"] = sink
    return sink


def set_calendar_sink(app, sink: CalendarSink) -> None:
    app.extensions["calendar_sink"] = sink
