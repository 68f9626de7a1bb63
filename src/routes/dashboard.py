from flask import Blueprint, jsonify


dashboard_bp = Blueprint("dashboard", __name__)


@dashboard_bp.route("/", methods=["GET"])
@dashboard_bp.route("/dashboard", methods=["GET"])
def dashboard_home():
    """
    Admin dashboard snapshot: today's appointments,
    status overview, and recent patients.
    """
    # Local import to avoid circular dependency during app startup.
    from src.services.dashboard_service import get_dashboard_snapshot
    from src.services.redis_service import calendar_queue_depth
    from flask import current_app

    context = get_dashboard_snapshot()
    if current_app.config.get("CALENDAR_SINK") == "redis":
        context["calendar_queue_depth"] = calendar_queue_depth()
    return jsonify(context)
