"""Appointment scheduling operations.

Every mutating operation runs inside one ``db_context()`` transaction that
locks the affected doctor row, re-reads current state, runs the conflict
check and stages the write. Calendar sync happens only after the commit.
"""
import logging
from datetime import datetime, timedelta

from flask import current_app

from src.models import Appointment, AppointmentStatus
from src.services import catalog_service, doctor_service, patient_service
from src.services.appointment_store import AppointmentFilters, AppointmentStore
from src.services.calendar_sink import get_calendar_sink
from src.services.conflict_checker import ensure_no_overlap
from src.services.db_context import db_context
from src.services.errors import NotFoundError, SchedulingError, ValidationError
from src.services.settings_service import get_settings
from src.services.time_utils import (
    clinic_now,
    day_name,
    start_of_day,
    to_clinic_naive,
    to_minutes,
)
from src.services.time_window import TimeWindow

logger = logging.getLogger("scheduling_service")

S = AppointmentStatus

# Only consulted when settings.strict_status_transitions is on.
ALLOWED_TRANSITIONS = {
    S.PENDING_CONFIRMATION: {S.BOOKED, S.CONFIRMED, S.CANCELLED, S.NO_SHOW, S.RESCHEDULED},
    S.BOOKED: {S.CONFIRMED, S.CHECKED_IN, S.CANCELLED, S.NO_SHOW, S.RESCHEDULED},
    S.CONFIRMED: {S.CHECKED_IN, S.CANCELLED, S.NO_SHOW, S.RESCHEDULED},
    S.CHECKED_IN: {S.COMPLETED, S.CANCELLED, S.NO_SHOW},
    S.RESCHEDULED: {S.PENDING_CONFIRMATION, S.BOOKED, S.CONFIRMED, S.CANCELLED, S.NO_SHOW},
    S.COMPLETED: set(),
    S.CANCELLED: set(),
    S.NO_SHOW: set(),
}


# -------------------------------
# Policy checks
# -------------------------------

def _check_transition(settings, current: AppointmentStatus, target: AppointmentStatus) -> None:
    if not settings.strict_status_transitions or current == target:
        return
    if target not in ALLOWED_TRANSITIONS.get(current, set()):
        raise ValidationError(f"Cannot change status from {current.value} to {target.value}")


def _check_cancellation_window(settings, appointment: Appointment, target: AppointmentStatus) -> None:
    if target != S.CANCELLED or not settings.enforce_cancellation_window:
        return
    cutoff = appointment.start_datetime - timedelta(hours=settings.cancellation_window_hours or 0)
    if clinic_now() > cutoff:
        raise ValidationError("Cancellation window has passed for this appointment")


def _check_working_hours(settings, doctor, window: TimeWindow) -> None:
    """Opt-in: appointment must sit inside the clinic day and the doctor's template."""
    if not settings.enforce_working_hours:
        return

    weekday = day_name(window.start)
    if weekday not in (settings.working_days or []):
        raise ValidationError("Selected day is outside working days")

    start_minutes = window.start.hour * 60 + window.start.minute
    end_minutes = start_minutes + int(window.duration.total_seconds() // 60)

    ranges = doctor.ranges_for(weekday)
    if ranges:
        for r in ranges:
            low, high = to_minutes(r["start"]), to_minutes(r["end"])
            if low <= start_minutes and end_minutes <= high:
                return
        raise ValidationError("Appointment is outside doctor working hours for this day")

    if start_minutes < to_minutes(settings.opening_time) or end_minutes > to_minutes(settings.closing_time):
        raise ValidationError("Appointment is outside working hours")


def _lock_doctors(*doctor_ids):
    """Lock doctor rows in id order; returns {id: Doctor}."""
    return {doctor_id: doctor_service.lock_doctor(doctor_id) for doctor_id in sorted(set(doctor_ids))}


def _window(start: datetime, end: datetime) -> TimeWindow:
    return TimeWindow(to_clinic_naive(start), to_clinic_naive(end))


# -------------------------------
# Calendar sync (after commit)
# -------------------------------

def _notify_calendar(kind: str, appointment: Appointment) -> None:
    sink = get_calendar_sink()
    try:
        event_id = getattr(sink, f"on_{kind}")(appointment)
    except Exception as e:
        logger.exception(f"[calendar_sync] {kind} failed for appointment {appointment.id}: {e}")
        return

    if kind == "deleted" or not event_id or event_id == appointment.calendar_event_id:
        return
    try:
        with db_context():
            appointment.calendar_event_id = event_id
    except SchedulingError as e:
        logger.exception(f"[calendar_sync] Could not store event id for {appointment.id}: {e.message}")


# -------------------------------
# Reads
# -------------------------------

def find_one(appointment_id: str) -> Appointment:
    appointment = AppointmentStore().get(appointment_id)
    if appointment is None:
        raise NotFoundError("Appointment", appointment_id)
    return appointment


def find_all(filters: AppointmentFilters | None = None) -> list[Appointment]:
    return AppointmentStore().find_all(filters)


# -------------------------------
# Scheduling operations
# -------------------------------

def _create_in_transaction(
    store: AppointmentStore,
    *,
    patient_id: str,
    doctor_id: int,
    service_id: int,
    start: datetime,
    end: datetime | None,
    status: AppointmentStatus | None,
    notes: str | None,
    calendar_event_id: str | None,
    actor: str | None,
) -> Appointment:
    settings = get_settings()

    patient_service.get_patient(patient_id)
    doctor = _lock_doctors(doctor_id)[doctor_id]
    service = catalog_service.get_service(service_id)

    start = to_clinic_naive(start)
    if end is None:
        end = catalog_service.compute_end(service, start)
    window = _window(start, end)

    _check_working_hours(settings, doctor, window)
    ensure_no_overlap(store, doctor_id, window, buffer_minutes=settings.buffer_minutes or 0)

    appointment = Appointment(
        patient_id=patient_id,
        doctor_id=doctor_id,
        service_id=service_id,
        start_datetime=window.start,
        end_datetime=window.end,
        status=status or S.PENDING_CONFIRMATION,
        notes=notes,
        calendar_event_id=calendar_event_id,
        # null for public/self-service bookings
        created_by=actor,
    )
    return store.add(appointment)


def create(
    *,
    patient_id: str,
    doctor_id: int,
    service_id: int,
    start: datetime,
    end: datetime | None = None,
    status: AppointmentStatus | None = None,
    notes: str | None = None,
    calendar_event_id: str | None = None,
    actor: str | None = None,
) -> Appointment:
    """Book a new appointment; end defaults to start + service duration."""
    with db_context() as session:
        store = AppointmentStore(session)
        appointment = _create_in_transaction(
            store,
            patient_id=patient_id,
            doctor_id=doctor_id,
            service_id=service_id,
            start=start,
            end=end,
            status=status,
            notes=notes,
            calendar_event_id=calendar_event_id,
            actor=actor,
        )
        appointment_id = appointment.id

    logger.info(f"[create_appointment] Created {appointment_id} for doctor={doctor_id} patient={patient_id}")
    created = find_one(appointment_id)
    _notify_calendar("created", created)
    return created


def create_with_patient(
    *,
    patient: dict,
    doctor_id: int,
    service_id: int,
    start: datetime,
    end: datetime | None = None,
    status: AppointmentStatus | None = None,
    notes: str | None = None,
    actor: str | None = None,
) -> Appointment:
    """
    Resolve (or register) the patient, then book.
    Patient resolution and booking commit together: a rejected booking leaves
    no new patient behind.
    """
    with db_context() as session:
        resolved = patient_service.resolve_patient(
            patient_id=patient.get("id"),
            full_name=patient.get("full_name"),
            phone_number=patient.get("phone_number"),
            email=patient.get("email"),
            actor=actor,
        )
        appointment = _create_in_transaction(
            AppointmentStore(session),
            patient_id=resolved.id,
            doctor_id=doctor_id,
            service_id=service_id,
            start=start,
            end=end,
            status=status,
            notes=notes,
            calendar_event_id=None,
            actor=actor,
        )
        appointment_id = appointment.id

    logger.info(f"[create_with_patient] Created {appointment_id} for patient={resolved.id}")
    created = find_one(appointment_id)
    _notify_calendar("created", created)
    return created


UPDATABLE_FIELDS = (
    "patient_id",
    "doctor_id",
    "service_id",
    "start_datetime",
    "end_datetime",
    "status",
    "notes",
    "calendar_event_id",
)


def update(appointment_id: str, patch: dict, actor: str | None = None) -> Appointment:
    """
    Apply a partial update. Only keys present in ``patch`` change. The effective
    window is re-checked against the doctor's other appointments (never itself).
    """
    unknown = set(patch) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown appointment fields: {', '.join(sorted(unknown))}")

    with db_context() as session:
        store = AppointmentStore(session)
        settings = get_settings()

        appointment = store.get(appointment_id)
        if appointment is None:
            raise NotFoundError("Appointment", appointment_id)

        if patch.get("patient_id") is not None:
            patient_service.get_patient(patch["patient_id"])
        if patch.get("doctor_id") is not None:
            doctor_service.get_doctor(patch["doctor_id"])
        if patch.get("service_id") is not None:
            catalog_service.get_service(patch["service_id"])

        start = patch.get("start_datetime") or appointment.start_datetime
        end = patch.get("end_datetime") or appointment.end_datetime
        window = _window(start, end)

        doctor_id = patch.get("doctor_id") or appointment.doctor_id
        doctor = _lock_doctors(doctor_id)[doctor_id]

        target_status = patch.get("status")
        if target_status is not None:
            _check_transition(settings, appointment.status, target_status)
            _check_cancellation_window(settings, appointment, target_status)

        _check_working_hours(settings, doctor, window)
        ensure_no_overlap(
            store,
            doctor_id,
            window,
            exclude_appointment_id=appointment.id,
            buffer_minutes=settings.buffer_minutes or 0,
        )

        for field in ("patient_id", "doctor_id", "service_id", "status"):
            if patch.get(field) is not None:
                setattr(appointment, field, patch[field])
        if "notes" in patch:
            appointment.notes = patch["notes"]
        if "calendar_event_id" in patch:
            appointment.calendar_event_id = patch["calendar_event_id"]
        appointment.start_datetime = window.start
        appointment.end_datetime = window.end
        # null for public updates
        appointment.updated_by = actor
        store.touch(appointment)

    logger.info(f"[update_appointment] Updated {appointment_id} fields={sorted(patch)}")
    updated = find_one(appointment_id)
    _notify_calendar("updated", updated)
    return updated


def update_status(appointment_id: str, status: AppointmentStatus, actor: str | None = None) -> Appointment:
    """
    Overwrite the status. Leaving Cancelled re-enters the doctor's schedule,
    so only that move is re-checked for overlap.
    """
    with db_context() as session:
        store = AppointmentStore(session)
        settings = get_settings()

        appointment = store.get(appointment_id)
        if appointment is None:
            raise NotFoundError("Appointment", appointment_id)

        _check_transition(settings, appointment.status, status)
        _check_cancellation_window(settings, appointment, status)

        if appointment.status == S.CANCELLED and status != S.CANCELLED:
            _lock_doctors(appointment.doctor_id)
            ensure_no_overlap(
                store,
                appointment.doctor_id,
                TimeWindow(appointment.start_datetime, appointment.end_datetime),
                exclude_appointment_id=appointment.id,
                buffer_minutes=settings.buffer_minutes or 0,
            )

        previous = appointment.status
        appointment.status = status
        appointment.updated_by = actor
        store.touch(appointment)

    logger.info(f"[update_status] {appointment_id}: {previous.value} -> {status.value}")
    updated = find_one(appointment_id)
    _notify_calendar("updated", updated)
    return updated


def remove(appointment_id: str) -> None:
    with db_context() as session:
        store = AppointmentStore(session)
        appointment = store.get(appointment_id)
        if appointment is None:
            raise NotFoundError("Appointment", appointment_id)
        store.delete(appointment)

    logger.info(f"[remove_appointment] Deleted {appointment_id}")
    _notify_calendar("deleted", appointment)


def auto_cancel_past_booked(actor: str | None = None) -> dict:
    """Cancel every Booked appointment whose start time has already passed."""
    now = clinic_now()
    with db_context() as session:
        store = AppointmentStore(session)
        stale = store.booked_before(now)
        for appointment in stale:
            appointment.status = S.CANCELLED
            appointment.updated_by = actor
        cancelled_ids = [a.id for a in stale]

    logger.info(f"[auto_cancel_past_booked] Cancelled {len(cancelled_ids)} past booked appointments")
    for appointment_id in cancelled_ids:
        _notify_calendar("updated", find_one(appointment_id))
    return {"cancelled": len(cancelled_ids)}


# -------------------------------
# Availability
# -------------------------------

def get_availability(
    *,
    doctor_id: int,
    service_id: int,
    days: int | None = None,
    exclude_appointment_id: str | None = None,
) -> list[dict]:
    """
    Free slots for the doctor/service over the next ``days`` days (today
    included), generated from the doctor's weekly template on clinic
    working days. Slots never start in the past and never collide with a
    non-cancelled appointment widened by the configured buffer.
    """
    days = days or current_app.config.get("AVAILABILITY_WINDOW_DAYS", 30)
    if days <= 0:
        raise ValidationError("days must be positive")

    settings = get_settings()
    doctor = doctor_service.get_doctor(doctor_id)
    service = catalog_service.get_service(service_id)
    duration = service.duration_minutes or 0
    if duration <= 0:
        raise ValidationError("Service duration must be greater than 0 minutes")

    now = clinic_now()
    search_start = start_of_day(now)
    search_end = search_start + timedelta(days=days)
    buffer_minutes = settings.buffer_minutes or 0

    existing = [
        TimeWindow(a.start_datetime, a.end_datetime).widened(buffer_minutes)
        for a in AppointmentStore().for_doctor_between(
            doctor_id,
            search_start - timedelta(minutes=buffer_minutes),
            search_end + timedelta(minutes=buffer_minutes),
        )
        if a.id != exclude_appointment_id
    ]

    step = min(duration, 15)
    slots = []
    for offset in range(days):
        day = search_start + timedelta(days=offset)
        weekday = day_name(day)
        if weekday not in (settings.working_days or []):
            continue

        for r in doctor.ranges_for(weekday):
            try:
                low, high = to_minutes(r["start"]), to_minutes(r["end"])
            except (KeyError, TypeError, ValueError):
                continue
            if high <= low:
                continue

            minutes = low
            while minutes + duration <= high:
                candidate = TimeWindow.from_duration(day + timedelta(minutes=minutes), duration)
                minutes += step
                if candidate.end <= now:
                    continue
                if any(candidate.overlaps(busy) for busy in existing):
                    continue
                slots.append({
                    "start": candidate.start.isoformat(),
                    "end": candidate.end.isoformat(),
                })
    return slots
