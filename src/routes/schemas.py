import re
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from src.models import AppointmentStatus, DoctorStatus

HHMM_RE = re.compile(r"^\d{2}:\d{2}$")


def normalize_phone(v: str) -> str:
    # Remove all characters except digits
    clean = re.sub(r"[^\d]", "", v)

    # Allow + only if it was originally at the start
    if v.strip().startswith("+"):
        clean = "+" + clean

    digits_only = clean.lstrip("+")
    if not (10 <= len(digits_only) <= 15):
        raise ValueError("Phone number must contain 10-15 digits.")
    return clean


def blank_email_to_none(v):
    # forms send "" for an omitted email
    if isinstance(v, str) and not v.strip():
        return None
    return v.strip() if isinstance(v, str) else v


# -------------------------------
# Appointments
# -------------------------------

class AppointmentCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    patient_id: str = Field(..., min_length=1)
    doctor_id: int
    service_id: int
    start_datetime: datetime
    end_datetime: Optional[datetime] = None
    status: Optional[AppointmentStatus] = None
    calendar_event_id: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None


class PatientInfo(BaseModel):
    id: Optional[str] = None
    full_name: Optional[str] = None
    phone_number: Optional[str] = None
    email: Optional[EmailStr] = None

    @field_validator("phone_number")
    @classmethod
    def validate_phone(cls, v):
        return normalize_phone(v) if v else v

    @field_validator("email", mode="before")
    @classmethod
    def validate_email(cls, v):
        return blank_email_to_none(v)

    @model_validator(mode="after")
    def require_identity(self):
        if not self.id and not (self.full_name and self.full_name.strip() and self.phone_number):
            raise ValueError("patient needs either an id or full_name and phone_number")
        return self


class AppointmentWithPatientCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    patient: PatientInfo
    doctor_id: int
    service_id: int
    start_datetime: datetime
    end_datetime: Optional[datetime] = None
    status: Optional[AppointmentStatus] = None
    notes: Optional[str] = None


class AppointmentUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    patient_id: Optional[str] = None
    doctor_id: Optional[int] = None
    service_id: Optional[int] = None
    start_datetime: Optional[datetime] = None
    end_datetime: Optional[datetime] = None
    status: Optional[AppointmentStatus] = None
    calendar_event_id: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None


class StatusUpdate(BaseModel):
    status: AppointmentStatus


class AppointmentQuery(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    search: Optional[str] = None
    doctor_id: Optional[int] = Field(None, alias="doctorId")
    service_id: Optional[int] = Field(None, alias="serviceId")
    status: Optional[AppointmentStatus] = None
    date_from: Optional[date] = Field(None, alias="dateFrom")
    date_to: Optional[date] = Field(None, alias="dateTo")
    patient_id: Optional[str] = Field(None, alias="patientId")


class AvailabilityQuery(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    doctor_id: int = Field(..., alias="doctorId")
    service_id: int = Field(..., alias="serviceId")
    days: Optional[int] = Field(None, gt=0, le=90)
    exclude_appointment_id: Optional[str] = Field(None, alias="excludeAppointmentId")


# -------------------------------
# Directories
# -------------------------------

class PatientCreate(BaseModel):
    full_name: str = Field(..., min_length=2, max_length=255)
    phone_number: str
    email: Optional[EmailStr] = None
    id_last4: Optional[str] = Field(None, pattern=r"^\d{4}$")

    @field_validator("phone_number")
    @classmethod
    def validate_phone(cls, v):
        return normalize_phone(v)

    @field_validator("email", mode="before")
    @classmethod
    def validate_email(cls, v):
        return blank_email_to_none(v)


class PatientUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    full_name: Optional[str] = Field(None, min_length=2, max_length=255)
    phone_number: Optional[str] = None
    email: Optional[EmailStr] = None
    id_last4: Optional[str] = Field(None, pattern=r"^\d{4}$")

    @field_validator("phone_number")
    @classmethod
    def validate_phone(cls, v):
        return normalize_phone(v) if v else v

    @field_validator("email", mode="before")
    @classmethod
    def validate_email(cls, v):
        return blank_email_to_none(v)


class TimeRange(BaseModel):
    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def validate_hhmm(cls, v):
        if not HHMM_RE.match(v):
            raise ValueError("time must be HH:MM")
        return v


class DoctorCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    specialization: str = ""
    status: DoctorStatus = DoctorStatus.ACTIVE
    services_offered: list[int] = Field(default_factory=list)
    working_hours: dict[str, list[TimeRange]] = Field(default_factory=dict)


class DoctorUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    specialization: Optional[str] = None
    status: Optional[DoctorStatus] = None
    services_offered: Optional[list[int]] = None
    working_hours: Optional[dict[str, list[TimeRange]]] = None


class ServiceCreate(BaseModel):
    category: str = Field(..., min_length=1, max_length=255)
    name: str = Field(..., min_length=1, max_length=255)
    duration_minutes: int
    active_status: bool = True


class ServiceUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    category: Optional[str] = Field(None, min_length=1, max_length=255)
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    duration_minutes: Optional[int] = None
    active_status: Optional[bool] = None


class SettingsUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    buffer_minutes: Optional[int] = Field(None, ge=0, le=240)
    cancellation_window_hours: Optional[int] = Field(None, ge=0, le=168)
    enforce_cancellation_window: Optional[bool] = None
    enforce_working_hours: Optional[bool] = None
    strict_status_transitions: Optional[bool] = None
    opening_time: Optional[str] = Field(None, pattern=r"^\d{2}:\d{2}$")
    closing_time: Optional[str] = Field(None, pattern=r"^\d{2}:\d{2}$")
    working_days: Optional[list[str]] = None
