import logging

from src.services.appointment_store import AppointmentStore
from src.services.errors import ConflictError, DOCTOR_BUSY
from src.services.time_window import TimeWindow

logger = logging.getLogger("conflict_checker")


def find_conflicts(
    store: AppointmentStore,
    doctor_id: int,
    window: TimeWindow,
    exclude_appointment_id: str | None = None,
    buffer_minutes: int = 0,
):
    """
    Non-cancelled appointments of ``doctor_id`` overlapping ``window``.
    The candidate window is widened by ``buffer_minutes`` on both sides.
    Pure query: nothing is written.
    """
    return store.find_overlapping(doctor_id, window.widened(buffer_minutes), exclude_id=exclude_appointment_id)


def has_conflict(
    store: AppointmentStore,
    doctor_id: int,
    window: TimeWindow,
    exclude_appointment_id: str | None = None,
    buffer_minutes: int = 0,
) -> bool:
    return bool(find_conflicts(store, doctor_id, window, exclude_appointment_id, buffer_minutes))


def ensure_no_overlap(
    store: AppointmentStore,
    doctor_id: int,
    window: TimeWindow,
    exclude_appointment_id: str | None = None,
    buffer_minutes: int = 0,
) -> None:
    conflicts = find_conflicts(store, doctor_id, window, exclude_appointment_id, buffer_minutes)
    if conflicts:
        logger.info(
            f"[ensure_no_overlap] doctor={doctor_id} window={window.start}-{window.end} "
            f"collides with {[c.id for c in conflicts]}"
        )
        message = DOCTOR_BUSY if not buffer_minutes else f"{DOCTOR_BUSY} (includes buffer)"
        raise ConflictError(message)
