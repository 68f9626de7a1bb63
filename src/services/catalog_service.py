import logging
from datetime import datetime, timedelta

from flask import current_app

from extensions import db
from src.models import Service
from src.services.db_context import db_context
from src.services.errors import NotFoundError, ValidationError

logger = logging.getLogger("catalog_service")


def _duration_bounds():
    return (
        current_app.config.get("SERVICE_MIN_DURATION_MINUTES", 5),
        current_app.config.get("SERVICE_MAX_DURATION_MINUTES", 480),
    )


def validate_duration(minutes) -> int:
    low, high = _duration_bounds()
    if not isinstance(minutes, int) or isinstance(minutes, bool) or minutes <= 0:
        raise ValidationError("Service duration must be greater than 0 minutes")
    if not (low <= minutes <= high):
        raise ValidationError(f"Service duration must be between {low} and {high} minutes")
    return minutes


def get_service(service_id: int) -> Service:
    service = db.session.get(Service, service_id)
    if service is None:
        raise NotFoundError("Service", service_id)
    return service


def list_services(active_only: bool = False) -> list[Service]:
    query = Service.query
    if active_only:
        query = query.filter(Service.active_status.is_(True))
    return query.order_by(Service.category.asc(), Service.name.asc()).all()


def create_service(*, category: str, name: str, duration_minutes: int, active_status: bool = True) -> Service:
    validate_duration(duration_minutes)
    with db_context() as session:
        service = Service(
            category=category.strip(),
            name=name.strip(),
            duration_minutes=duration_minutes,
            active_status=active_status,
        )
        session.add(service)
    logger.info(f"[create_service] Created service id={service.id} name={service.name!r}")
    return service


def update_service(service_id: int, patch: dict) -> Service:
    service = get_service(service_id)
    if patch.get("duration_minutes") is not None:
        validate_duration(patch["duration_minutes"])

    with db_context():
        for field in ("category", "name", "duration_minutes", "active_status"):
            if patch.get(field) is not None:
                setattr(service, field, patch[field])
    return service


def compute_end(service: Service, start: datetime) -> datetime:
    """End time derived purely from the service duration."""
    if not service.duration_minutes or service.duration_minutes <= 0:
        raise ValidationError("Service duration must be greater than 0 minutes")
    return start + timedelta(minutes=service.duration_minutes)
