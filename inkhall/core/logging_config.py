# inkhall/core/logging_config.py
import logging

from inkhall.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str | None = None) -> None:
    """Configure root logging once for the API process."""
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format=LOG_FORMAT,
    )
    # SQL echo is controlled by SQLAlchemy itself
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
