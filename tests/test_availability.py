from datetime import datetime

import pytest

from src.models import AppointmentStatus
from src.services import doctor_service, scheduling_service, settings_service
from src.services.errors import NotFoundError

MONDAY = datetime(2030, 1, 7)


@pytest.fixture
def frozen_now(monkeypatch):
    def freeze(hour=8, minute=0):
        monkeypatch.setattr(scheduling_service, "clinic_now", lambda: MONDAY.replace(hour=hour, minute=minute))
    freeze()
    return freeze


def _slots(clinic, **kwargs):
    return scheduling_service.get_availability(
        doctor_id=kwargs.pop("doctor_id", clinic["doctor_id"]),
        service_id=clinic["cleaning_id"],
        days=kwargs.pop("days", 1),
        **kwargs,
    )


def _book(clinic, hour, minute=0):
    return scheduling_service.create(
        patient_id=clinic["patient_id"],
        doctor_id=clinic["doctor_id"],
        service_id=clinic["cleaning_id"],
        start=MONDAY.replace(hour=hour, minute=minute),
        status=AppointmentStatus.BOOKED,
    )


def test_full_day_in_fifteen_minute_steps(clinic, frozen_now):
    slots = _slots(clinic)
    assert len(slots) == 31
    assert slots[0] == {"start": "2030-01-07T09:00:00", "end": "2030-01-07T09:30:00"}
    assert slots[-1] == {"start": "2030-01-07T16:30:00", "end": "2030-01-07T17:00:00"}


def test_booked_time_is_removed(clinic, frozen_now):
    _book(clinic, 10)
    starts = [s["start"][11:16] for s in _slots(clinic)]
    assert len(starts) == 28
    assert "09:30" in starts and "10:30" in starts
    assert not {"09:45", "10:00", "10:15"} & set(starts)


def test_buffer_blocks_neighbouring_slots(clinic, frozen_now):
    _book(clinic, 10)
    settings_service.update_settings({"buffer_minutes": 15})
    starts = [s["start"][11:16] for s in _slots(clinic)]
    assert len(starts) == 26
    assert not {"09:30", "10:30"} & set(starts)


def test_cancelled_and_excluded_bookings_free_the_slot(clinic, frozen_now):
    appt = _book(clinic, 10)
    assert len(_slots(clinic, exclude_appointment_id=appt.id)) == 31

    scheduling_service.update_status(appt.id, AppointmentStatus.CANCELLED)
    assert len(_slots(clinic)) == 31


def test_past_slots_are_skipped(clinic, frozen_now):
    frozen_now(11, 0)
    slots = _slots(clinic)
    assert slots[0]["start"] == "2030-01-07T10:45:00"
    assert len(slots) == 24


def test_only_clinic_working_days(clinic, frozen_now):
    settings_service.update_settings({"working_days": ["Tuesday"]})
    slots = _slots(clinic, days=2)
    assert len(slots) == 31
    assert all(s["start"].startswith("2030-01-08") for s in slots)


def test_doctor_without_template_has_no_slots(clinic, frozen_now):
    doctor = doctor_service.create_doctor(name="Dr. No Hours")
    assert _slots(clinic, doctor_id=doctor.id, days=7) == []


def test_doctor_breaks_split_the_day(clinic, frozen_now):
    doctor = doctor_service.create_doctor(
        name="Dr. Split Shift",
        working_hours={"Monday": [{"start": "14:00", "end": "15:00"}, {"start": "09:00", "end": "10:00"}]},
    )
    starts = [s["start"][11:16] for s in _slots(clinic, doctor_id=doctor.id)]
    assert starts == ["09:00", "09:15", "09:30", "14:00", "14:15", "14:30"]


def test_unknown_doctor_or_service(clinic, frozen_now):
    with pytest.raises(NotFoundError):
        scheduling_service.get_availability(doctor_id=999, service_id=clinic["cleaning_id"])
    with pytest.raises(NotFoundError):
        scheduling_service.get_availability(doctor_id=clinic["doctor_id"], service_id=999)
