import logging
from contextlib import contextmanager

from services.errors import RentError, InternalError

logger = logging.getLogger(__name__)


@contextmanager
def atomic(session):
    """Run a block as one transaction on ``session``.

    Commits when the block finishes. Domain errors roll back and propagate
    unchanged; anything else rolls back and surfaces as ``InternalError`` so
    no transaction is ever left open.
    """
    try:
        yield session
        session.commit()
    except RentError:
        session.rollback()
        raise
    except Exception as exc:
        session.rollback()
        logger.exception("Transaction rolled back after unexpected error")
        raise InternalError() from exc
