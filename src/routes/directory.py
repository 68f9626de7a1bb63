"""Doctors, services and patients: thin CRUD over the directories."""
from flask import Blueprint, jsonify, request

from src.models import DoctorStatus
from src.routes.helpers import current_actor, json_body
from src.routes.schemas import (
    DoctorCreate,
    DoctorUpdate,
    PatientCreate,
    PatientUpdate,
    ServiceCreate,
    ServiceUpdate,
)
from src.services import catalog_service, doctor_service, patient_service
from src.services.errors import ValidationError

directory_bp = Blueprint("directory", __name__)


# -------------------------------
# Doctors
# -------------------------------

@directory_bp.route("/doctors", methods=["GET"])
def list_doctors():
    status = request.args.get("status")
    try:
        status = DoctorStatus(status) if status else None
    except ValueError:
        raise ValidationError(f"Unknown doctor status: {status}")
    doctors = doctor_service.list_doctors(status)
    return jsonify([d.to_dict() for d in doctors])


@directory_bp.route("/doctors", methods=["POST"])
def create_doctor():
    data = DoctorCreate.model_validate(json_body())
    doctor = doctor_service.create_doctor(**data.model_dump())
    return jsonify(doctor.to_dict()), 201


@directory_bp.route("/doctors/<int:doctor_id>", methods=["GET"])
def get_doctor(doctor_id: int):
    return jsonify(doctor_service.get_doctor(doctor_id).to_dict())


@directory_bp.route("/doctors/<int:doctor_id>", methods=["PATCH"])
def update_doctor(doctor_id: int):
    data = DoctorUpdate.model_validate(json_body())
    doctor = doctor_service.update_doctor(doctor_id, data.model_dump(exclude_unset=True))
    return jsonify(doctor.to_dict())


# -------------------------------
# Services
# -------------------------------

@directory_bp.route("/services", methods=["GET"])
def list_services():
    active_only = request.args.get("active") in ("1", "true", "yes")
    return jsonify([s.to_dict() for s in catalog_service.list_services(active_only)])


@directory_bp.route("/services", methods=["POST"])
def create_service():
    data = ServiceCreate.model_validate(json_body())
    service = catalog_service.create_service(**data.model_dump())
    return jsonify(service.to_dict()), 201


@directory_bp.route("/services/<int:service_id>", methods=["GET"])
def get_service(service_id: int):
    return jsonify(catalog_service.get_service(service_id).to_dict())


@directory_bp.route("/services/<int:service_id>", methods=["PATCH"])
def update_service(service_id: int):
    data = ServiceUpdate.model_validate(json_body())
    service = catalog_service.update_service(service_id, data.model_dump(exclude_unset=True))
    return jsonify(service.to_dict())


# -------------------------------
# Patients
# -------------------------------

@directory_bp.route("/patients", methods=["GET"])
def list_patients():
    patients = patient_service.list_patients(search=request.args.get("search"))
    return jsonify([p.to_dict() for p in patients])


@directory_bp.route("/patients", methods=["POST"])
def create_patient():
    data = PatientCreate.model_validate(json_body())
    patient = patient_service.create_patient(**data.model_dump(), actor=current_actor())
    return jsonify(patient.to_dict()), 201


@directory_bp.route("/patients/<patient_id>", methods=["GET"])
def get_patient(patient_id: str):
    return jsonify(patient_service.get_patient(patient_id).to_dict())


@directory_bp.route("/patients/<patient_id>", methods=["PATCH"])
def update_patient(patient_id: str):
    data = PatientUpdate.model_validate(json_body())
    patient = patient_service.update_patient(patient_id, data.model_dump(exclude_unset=True), actor=current_actor())
    return jsonify(patient.to_dict())
