from src.models.patient_db import Patient
from src.models.doctor_db import Doctor, DoctorStatus, WEEKDAYS
from src.models.service_db import Service
from src.models.settings_db import AppointmentSettings, ALL_WORKING_DAYS
from src.models.appointments_db import Appointment, AppointmentStatus, OVERLAP_CONSTRAINT

__all__ = [
    "Patient",
    "Doctor",
    "DoctorStatus",
    "WEEKDAYS",
    "Service",
    "AppointmentSettings",
    "ALL_WORKING_DAYS",
    "Appointment",
    "AppointmentStatus",
    "OVERLAP_CONSTRAINT",
]
