import logging

from src.models import AppointmentStatus, Patient
from src.services.appointment_store import AppointmentStore
from src.services.time_utils import clinic_now, clinic_tz, start_of_day

logger = logging.getLogger("dashboard_service")

EMPTY_STATS = {
    "total_patients": 0,
    "total_appointments": 0,
    "today_total": 0,
    "today_by_status": {},
    "timezone": "UTC",
    "today_label": "",
    "as_of_human": "",
}


def get_dashboard_snapshot(recent_limit: int = 50) -> dict:
    """
    Aggregate data for the admin dashboard:
    - Today's appointments (clinic time, with patient/doctor/service)
    - Status breakdown for today
    - Recent patients list
    """
    try:
        now = clinic_now()
        today = start_of_day(now)

        store = AppointmentStore()
        todays_appointments = store.for_day(today)

        recent_patients = (
            Patient.query
            .order_by(Patient.created_at.desc())
            .limit(recent_limit)
            .all()
        )

        status_counts = {s.value: 0 for s in AppointmentStatus}
        today_payload = []
        for appt in todays_appointments:
            status_counts[appt.status.value] += 1
            today_payload.append(appt.to_dict())

        stats = {
            "total_patients": Patient.query.count(),
            "total_appointments": store.count(),
            "today_total": len(today_payload),
            "today_by_status": status_counts,
            "timezone": str(clinic_tz()),
            "today_label": now.strftime("%A, %b %d"),
            "as_of_human": now.strftime("%b %d, %Y %I:%M %p"),
        }

        return {
            "stats": stats,
            "today_appointments": today_payload,
            "patients": [p.to_dict() for p in recent_patients],
        }

    except Exception as e:
        logger.exception(f"[get_dashboard_snapshot] Failed: {e}")
        # In case of failure, return safe empty structures so UI still loads.
        return {
            "stats": dict(EMPTY_STATS),
            "today_appointments": [],
            "patients": [],
        }
