# inkhall/db/init_db.py
import logging

from sqlalchemy.engine import Engine

from inkhall.db.base import Base
from inkhall.db.session import engine as default_engine

logger = logging.getLogger(__name__)


def init_db(engine: Engine | None = None) -> None:
    bind = engine or default_engine
    Base.metadata.create_all(bind=bind)
    logger.info("Database tables ensured on %s", bind.url.render_as_string(hide_password=True))
