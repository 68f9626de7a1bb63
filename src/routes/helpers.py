from flask import request


def current_actor() -> str | None:
    """Dashboard operations send the staff user id; public bookings send nothing."""
    return request.headers.get("X-User-Id") or None


def json_body() -> dict:
    return request.get_json(silent=True) or {}
