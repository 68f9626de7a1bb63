"""Error taxonomy for the scheduling core.

Every error carries an HTTP-ish ``status_code`` so the route layer can render
it without knowing which operation raised it.
"""


class SchedulingError(Exception):
    status_code = 500
    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(SchedulingError):
    """A referenced patient/doctor/service/appointment id does not resolve."""
    status_code = 404
    kind = "not_found"

    def __init__(self, entity: str, entity_id):
        super().__init__(f"{entity} with ID {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class ValidationError(SchedulingError):
    status_code = 400
    kind = "validation"


class ConflictError(SchedulingError):
    status_code = 400
    kind = "conflict"


DOCTOR_BUSY = "Doctor already has an appointment during this time range"


class StoreError(SchedulingError):
    """Backing store failure that is not a scheduling conflict."""
    status_code = 500
    kind = "store"
