import pytest

from src.models import AppointmentStatus
from src.services import redis_service, scheduling_service
from src.services.calendar_sink import (
    CalendarSink,
    LoggingCalendarSink,
    NullCalendarSink,
    RedisCalendarSink,
    build_sink,
    set_calendar_sink,
)
from src.services.errors import ConflictError

from tests.helpers import at


class RecordingSink(CalendarSink):
    def __init__(self):
        self.calls = []

    def on_created(self, appointment):
        self.calls.append(("created", appointment.id))
        return f"evt-{appointment.id[:8]}"

    def on_updated(self, appointment):
        self.calls.append(("updated", appointment.id))

    def on_deleted(self, appointment):
        self.calls.append(("deleted", appointment.id))


class ExplodingSink(CalendarSink):
    def on_created(self, appointment):
        raise RuntimeError("calendar API down")

    on_updated = on_created
    on_deleted = on_created


class FakeRedis:
    def __init__(self):
        self.lists = {}

    def rpush(self, key, value):
        self.lists.setdefault(key, []).append(value)
        return len(self.lists[key])

    def lpop(self, key):
        items = self.lists.get(key) or []
        return items.pop(0) if items else None

    def llen(self, key):
        return len(self.lists.get(key, []))


def _book(clinic, hour=10):
    return scheduling_service.create(
        patient_id=clinic["patient_id"],
        doctor_id=clinic["doctor_id"],
        service_id=clinic["consult_id"],
        start=at(hour),
    )


def test_sink_sees_every_mutation_and_event_id_is_stored(app, clinic):
    sink = RecordingSink()
    set_calendar_sink(app, sink)

    appt = _book(clinic)
    assert appt.calendar_event_id == f"evt-{appt.id[:8]}"
    assert scheduling_service.find_one(appt.id).calendar_event_id == appt.calendar_event_id

    scheduling_service.update_status(appt.id, AppointmentStatus.CONFIRMED)
    scheduling_service.remove(appt.id)
    assert [kind for kind, _ in sink.calls] == ["created", "updated", "deleted"]


def test_sink_failure_does_not_fail_scheduling(app, clinic):
    set_calendar_sink(app, ExplodingSink())

    appt = _book(clinic)
    assert appt.calendar_event_id is None
    assert scheduling_service.update(appt.id, {"notes": "moved"}).notes == "moved"
    scheduling_service.remove(appt.id)


def test_sink_not_called_when_booking_conflicts(app, clinic):
    sink = RecordingSink()
    _book(clinic)
    set_calendar_sink(app, sink)

    with pytest.raises(ConflictError):
        _book(clinic)
    assert sink.calls == []


def test_redis_sink_queues_events(app, clinic):
    fake = FakeRedis()
    redis_service.set_redis(fake)
    set_calendar_sink(app, RedisCalendarSink())
    try:
        appt = _book(clinic)
        assert redis_service.calendar_queue_depth() == 1

        event = redis_service.pop_calendar_event()
        assert event["action"] == "created"
        assert event["payload"]["id"] == appt.id
        assert event["payload"]["summary"] == "Consultation - Alice Smith"
        assert event["payload"]["end_datetime"] == "2024-01-01T10:45:00"
        assert redis_service.pop_calendar_event() is None
    finally:
        redis_service.set_redis(None)


def test_corrupted_queue_entry_is_dropped(app_ctx):
    fake = FakeRedis()
    fake.rpush("calendar:events", "{not json")
    redis_service.set_redis(fake)
    try:
        assert redis_service.pop_calendar_event() is None
    finally:
        redis_service.set_redis(None)


def test_build_sink_by_name():
    assert isinstance(build_sink("none"), NullCalendarSink)
    assert isinstance(build_sink("log"), LoggingCalendarSink)
    assert isinstance(build_sink("redis"), RedisCalendarSink)
    assert isinstance(build_sink("carrier-pigeon"), NullCalendarSink)
