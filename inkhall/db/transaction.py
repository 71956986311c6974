# inkhall/db/transaction.py
import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """
    One all-or-nothing unit of work.

    Commits when the block exits normally; on any exception rolls back
    everything written since the last commit and re-raises.
    """
    try:
        yield db
        db.commit()
    except Exception:
        logger.debug("Rolling back unit of work")
        db.rollback()
        raise
