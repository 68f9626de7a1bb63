from datetime import datetime

import pytest

from src.services import dashboard_service, scheduling_service

from tests.helpers import FULL_WEEK

MONDAY = datetime(2030, 1, 7)


def _booking(clinic, start="2030-01-07T10:00:00", **extra):
    payload = {
        "patient_id": clinic["patient_id"],
        "doctor_id": clinic["doctor_id"],
        "service_id": clinic["consult_id"],
        "start_datetime": start,
        "status": "booked",
    }
    payload.update(extra)
    return payload


# -------------------------------
# Appointments
# -------------------------------

def test_create_appointment(client, clinic):
    res = client.post("/appointments", json=_booking(clinic), headers={"X-User-Id": "staff-1"})
    assert res.status_code == 201

    body = res.get_json()
    assert body["end_datetime"] == "2030-01-07T10:45:00"
    assert body["status"] == "booked"
    assert body["created_by"] == "staff-1"
    assert body["patient"]["full_name"] == "Alice Smith"
    assert body["doctor"]["name"] == "Dr. Sara Khan"
    assert body["service"]["name"] == "Consultation"


def test_overlap_is_reported_as_conflict(client, clinic):
    assert client.post("/appointments", json=_booking(clinic)).status_code == 201

    res = client.post("/appointments", json=_booking(clinic, start="2030-01-07T10:30:00"))
    assert res.status_code == 400
    body = res.get_json()
    assert body["error"] == "conflict"
    assert "Doctor already has an appointment" in body["message"]


def test_missing_reference_is_not_found(client, clinic):
    res = client.post("/appointments", json=_booking(clinic, doctor_id=999))
    assert res.status_code == 404
    assert res.get_json() == {"error": "not_found", "message": "Doctor with ID 999 not found"}


def test_malformed_request_is_rejected(client, clinic):
    res = client.post("/appointments", json={"doctor_id": "abc"})
    assert res.status_code == 400
    body = res.get_json()
    assert body["error"] == "validation"
    assert any(msg.startswith("patient_id") for msg in body["message"])

    res = client.post("/appointments", json=_booking(clinic, colour="blue"))
    assert res.status_code == 400


def test_end_before_start_is_a_validation_error(client, clinic):
    res = client.post("/appointments", json=_booking(clinic, end_datetime="2030-01-07T09:00:00"))
    assert res.status_code == 400
    assert res.get_json()["error"] == "validation"


def test_create_with_inline_patient(client, clinic):
    payload = {
        "patient": {"full_name": "Bob Stone", "phone_number": "+971 50 765 4321", "email": "bob@test.com"},
        "doctor_id": clinic["doctor_id"],
        "service_id": clinic["cleaning_id"],
        "start_datetime": "2030-01-07T11:00:00",
    }
    res = client.post("/appointments/with-patient", json=payload)
    assert res.status_code == 201
    body = res.get_json()
    assert body["patient"]["phone_number"] == "+971507654321"
    assert body["status"] == "pending_confirmation"
    assert body["end_datetime"] == "2030-01-07T11:30:00"

    res = client.post("/appointments/with-patient", json={**payload, "patient": {"full_name": "Nobody"}})
    assert res.status_code == 400


def test_list_filters(client, clinic):
    client.post("/appointments", json=_booking(clinic))
    client.post("/appointments", json=_booking(clinic, start="2030-01-08T10:00:00"))
    client.post("/appointments", json=_booking(clinic, doctor_id=clinic["other_doctor_id"]))

    res = client.get(f"/appointments?doctorId={clinic['doctor_id']}")
    assert [a["start_datetime"] for a in res.get_json()] == ["2030-01-08T10:00:00", "2030-01-07T10:00:00"]

    res = client.get("/appointments?dateFrom=2030-01-07&dateTo=2030-01-07")
    assert len(res.get_json()) == 2

    res = client.get("/appointments?search=alice")
    assert len(res.get_json()) == 3

    res = client.get("/appointments?search=zzz")
    assert res.get_json() == []

    res = client.get("/appointments?status=bogus")
    assert res.status_code == 400


def test_get_update_and_delete(client, clinic):
    created = client.post("/appointments", json=_booking(clinic)).get_json()
    url = f"/appointments/{created['id']}"

    assert client.get(url).get_json()["id"] == created["id"]

    res = client.patch(url, json={"start_datetime": "2030-01-07T10:15:00", "end_datetime": "2030-01-07T11:00:00"})
    assert res.status_code == 200
    assert res.get_json()["start_datetime"] == "2030-01-07T10:15:00"

    res = client.patch(url, json={"doctor": 3})
    assert res.status_code == 400

    res = client.patch(f"{url}/status", json={"status": "confirmed"}, headers={"X-User-Id": "staff-2"})
    assert res.status_code == 200
    assert res.get_json()["status"] == "confirmed"
    assert res.get_json()["updated_by"] == "staff-2"

    res = client.patch(f"{url}/status", json={"status": "teleported"})
    assert res.status_code == 400

    assert client.delete(url).status_code == 204
    assert client.get(url).status_code == 404
    assert client.delete(url).status_code == 404


def test_unknown_appointment_is_not_found(client, clinic):
    res = client.get("/appointments/does-not-exist")
    assert res.status_code == 404
    assert res.get_json()["message"] == "Appointment with ID does-not-exist not found"


def test_availability(client, clinic, monkeypatch):
    monkeypatch.setattr(scheduling_service, "clinic_now", lambda: MONDAY.replace(hour=8))
    client.post("/appointments", json=_booking(clinic))

    res = client.get(f"/appointments/availability?doctorId={clinic['doctor_id']}&serviceId={clinic['cleaning_id']}&days=1")
    assert res.status_code == 200
    starts = [slot["start"] for slot in res.get_json()]
    assert starts[0] == "2030-01-07T09:00:00"
    assert "2030-01-07T10:15:00" not in starts
    assert "2030-01-07T10:45:00" in starts

    res = client.get("/appointments/availability?doctorId=1")
    assert res.status_code == 400


def test_auto_cancel_past(client, clinic):
    client.post("/appointments", json=_booking(clinic, start="2020-01-06T10:00:00"))
    res = client.post("/appointments/auto-cancel-past")
    assert res.get_json() == {"cancelled": 1}


# -------------------------------
# Settings and directories
# -------------------------------

def test_settings_round_trip(client, app_ctx):
    assert client.get("/settings/appointments").get_json()["buffer_minutes"] == 0

    res = client.patch("/settings/appointments", json={"buffer_minutes": 10, "strict_status_transitions": True})
    assert res.status_code == 200
    assert res.get_json()["buffer_minutes"] == 10
    assert res.get_json()["strict_status_transitions"] is True

    res = client.patch("/settings/appointments", json={"opening_time": "20:00"})
    assert res.status_code == 400


def test_directory_endpoints(client, app_ctx):
    res = client.post("/doctors", json={"name": "Dr. Lina Haddad", "working_hours": FULL_WEEK})
    assert res.status_code == 201
    doctor = res.get_json()
    assert doctor["working_hours"]["monday"] == [{"start": "09:00", "end": "17:00"}]

    res = client.patch(f"/doctors/{doctor['id']}", json={"status": "inactive"})
    assert res.get_json()["status"] == "inactive"
    assert client.get("/doctors?status=active").get_json() == []
    assert client.get("/doctors?status=retired").status_code == 400
    assert client.get("/doctors/999").status_code == 404

    res = client.post("/services", json={"category": "Hygiene", "name": "Polish", "duration_minutes": 20})
    assert res.status_code == 201
    assert client.post("/services", json={"category": "Hygiene", "name": "Marathon", "duration_minutes": 900}).status_code == 400

    res = client.post("/patients", json={"full_name": "Omar Farouk", "phone_number": "0501234567"})
    assert res.status_code == 201
    assert client.post("/patients", json={"full_name": "Omar Twin", "phone_number": "0501234567"}).status_code == 400
    assert client.post("/patients", json={"full_name": "Short Phone", "phone_number": "123"}).status_code == 400
    assert [p["full_name"] for p in client.get("/patients?search=omar").get_json()] == ["Omar Farouk"]


@pytest.mark.parametrize("path", ["/", "/dashboard"])
def test_dashboard_snapshot(client, clinic, path):
    client.post("/appointments", json=_booking(clinic))
    res = client.get(path)
    assert res.status_code == 200
    body = res.get_json()
    assert body["stats"]["total_appointments"] == 1
    assert body["stats"]["total_patients"] == 1
    assert body["patients"][0]["full_name"] == "Alice Smith"


@pytest.mark.parametrize("email", ["alice@example..com", "not-an-email", "a@b"])
def test_malformed_patient_email_is_rejected(client, app_ctx, email):
    res = client.post("/patients", json={"full_name": "Eve Mail", "phone_number": "+971500000077", "email": email})
    assert res.status_code == 400
    assert any(msg.startswith("email") for msg in res.get_json()["message"])


def test_blank_patient_email_is_allowed(client, app_ctx):
    res = client.post("/patients", json={"full_name": "Eve Blank", "phone_number": "+971500000078", "email": ""})
    assert res.status_code == 201
    assert res.get_json()["email"] == ""

    res = client.post("/patients", json={"full_name": "Eve Valid", "phone_number": "+971500000079", "email": " eve@clinic.com "})
    assert res.get_json()["email"] == "eve@clinic.com"


def test_dashboard_lists_todays_appointments(client, clinic, monkeypatch):
    monkeypatch.setattr(dashboard_service, "clinic_now", lambda: MONDAY.replace(hour=8))
    client.post("/appointments", json=_booking(clinic, start="2030-01-07T15:00:00"))
    client.post("/appointments", json=_booking(clinic, start="2030-01-07T09:00:00"))
    client.post("/appointments", json=_booking(clinic, start="2030-01-08T09:00:00"))

    body = client.get("/dashboard").get_json()
    assert body["stats"]["today_total"] == 2
    assert body["stats"]["today_by_status"]["booked"] == 2
    assert [a["start_datetime"] for a in body["today_appointments"]] == ["2030-01-07T09:00:00", "2030-01-07T15:00:00"]
