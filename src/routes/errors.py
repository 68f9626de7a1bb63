import logging

from flask import jsonify
from pydantic import ValidationError as PydanticValidationError

from src.services.errors import SchedulingError

logger = logging.getLogger("routes.errors")


def _error(kind: str, message, status: int):
    return jsonify({"error": kind, "message": message}), status


def register_error_handlers(app) -> None:
    @app.errorhandler(SchedulingError)
    def handle_scheduling_error(e: SchedulingError):
        if e.status_code >= 500:
            logger.error(f"[{e.kind}] {e.message}", exc_info=e.__cause__)
        return _error(e.kind, e.message, e.status_code)

    @app.errorhandler(PydanticValidationError)
    def handle_request_validation(e: PydanticValidationError):
        messages = [
            f"{'.'.join(str(part) for part in err['loc']) or 'body'}: {err['msg']}"
            for err in e.errors()
        ]
        return _error("validation", messages, 400)

    @app.errorhandler(404)
    def handle_not_found(e):
        return _error("not_found", "Resource not found", 404)

    @app.errorhandler(405)
    def handle_method_not_allowed(e):
        return _error("method_not_allowed", "Method not allowed", 405)
