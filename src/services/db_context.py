import logging
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from extensions import db
from src.models import OVERLAP_CONSTRAINT
from src.services.errors import ConflictError, DOCTOR_BUSY, SchedulingError, StoreError

logger = logging.getLogger("db_context")

_ACTIVE = "clinic_tx_active"


@contextmanager
def db_context():
    """Provide a transactional scope around a series of DB operations.

    Commits on success and rolls back on any exception. A nested db_context()
    joins the outermost one, so composed operations commit (or roll back)
    as a single unit. Must run inside a Flask app context.
    """
    session = db.session
    if session.info.get(_ACTIVE):
        yield session
        return

    session.info[_ACTIVE] = True
    try:
        yield session
        session.commit()
    except SchedulingError:
        session.rollback()
        raise
    except IntegrityError as e:
        session.rollback()
        if OVERLAP_CONSTRAINT in str(e.orig):
            logger.warning(f"[db_context] Overlap constraint rejected write: {e.orig}")
            raise ConflictError(DOCTOR_BUSY) from e
        logger.exception(f"[db_context] Integrity error: {e}")
        raise StoreError(f"Failed to persist changes: {e.orig}") from e
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"[db_context] Store failure: {e}")
        raise StoreError(f"Failed to persist changes: {e}") from e
    except Exception:
        session.rollback()
        raise
    finally:
        session.info.pop(_ACTIVE, None)
