from flask import Blueprint, jsonify

from src.routes.helpers import current_actor, json_body
from src.routes.schemas import SettingsUpdate
from src.services import settings_service

settings_bp = Blueprint("settings", __name__, url_prefix="/settings")


@settings_bp.route("/appointments", methods=["GET"])
def get_appointment_settings():
    return jsonify(settings_service.get_settings().to_dict())


@settings_bp.route("/appointments", methods=["PATCH"])
def update_appointment_settings():
    data = SettingsUpdate.model_validate(json_body())
    settings = settings_service.update_settings(data.model_dump(exclude_unset=True), actor=current_actor())
    return jsonify(settings.to_dict())
