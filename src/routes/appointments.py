from flask import Blueprint, jsonify, request

from src.routes.helpers import current_actor, json_body
from src.routes.schemas import (
    AppointmentCreate,
    AppointmentQuery,
    AppointmentUpdate,
    AppointmentWithPatientCreate,
    AvailabilityQuery,
    StatusUpdate,
)
from src.services import scheduling_service
from src.services.appointment_store import AppointmentFilters

appointments_bp = Blueprint("appointments", __name__, url_prefix="/appointments")


@appointments_bp.route("", methods=["POST"])
def create_appointment():
    data = AppointmentCreate.model_validate(json_body())
    appointment = scheduling_service.create(
        patient_id=data.patient_id,
        doctor_id=data.doctor_id,
        service_id=data.service_id,
        start=data.start_datetime,
        end=data.end_datetime,
        status=data.status,
        notes=data.notes,
        calendar_event_id=data.calendar_event_id,
        actor=current_actor(),
    )
    return jsonify(appointment.to_dict()), 201


@appointments_bp.route("/with-patient", methods=["POST"])
def create_appointment_with_patient():
    data = AppointmentWithPatientCreate.model_validate(json_body())
    appointment = scheduling_service.create_with_patient(
        patient=data.patient.model_dump(),
        doctor_id=data.doctor_id,
        service_id=data.service_id,
        start=data.start_datetime,
        end=data.end_datetime,
        status=data.status,
        notes=data.notes,
        actor=current_actor(),
    )
    return jsonify(appointment.to_dict()), 201


@appointments_bp.route("", methods=["GET"])
def list_appointments():
    query = AppointmentQuery.model_validate(request.args.to_dict())
    filters = AppointmentFilters(**query.model_dump())
    appointments = scheduling_service.find_all(filters)
    return jsonify([a.to_dict() for a in appointments])


@appointments_bp.route("/availability", methods=["GET"])
def availability():
    query = AvailabilityQuery.model_validate(request.args.to_dict())
    slots = scheduling_service.get_availability(
        doctor_id=query.doctor_id,
        service_id=query.service_id,
        days=query.days,
        exclude_appointment_id=query.exclude_appointment_id,
    )
    return jsonify(slots)


@appointments_bp.route("/auto-cancel-past", methods=["POST"])
def auto_cancel_past():
    return jsonify(scheduling_service.auto_cancel_past_booked(actor=current_actor()))


@appointments_bp.route("/<appointment_id>", methods=["GET"])
def get_appointment(appointment_id: str):
    return jsonify(scheduling_service.find_one(appointment_id).to_dict())


@appointments_bp.route("/<appointment_id>", methods=["PATCH"])
def update_appointment(appointment_id: str):
    data = AppointmentUpdate.model_validate(json_body())
    appointment = scheduling_service.update(
        appointment_id,
        data.model_dump(exclude_unset=True),
        actor=current_actor(),
    )
    return jsonify(appointment.to_dict())


@appointments_bp.route("/<appointment_id>/status", methods=["PATCH"])
def update_appointment_status(appointment_id: str):
    data = StatusUpdate.model_validate(json_body())
    appointment = scheduling_service.update_status(appointment_id, data.status, actor=current_actor())
    return jsonify(appointment.to_dict())


@appointments_bp.route("/<appointment_id>", methods=["DELETE"])
def delete_appointment(appointment_id: str):
    scheduling_service.remove(appointment_id)
    return "", 204
