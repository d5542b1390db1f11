import logging

from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from . import models  # noqa: F401  registers tables on SQLModel.metadata

logger = logging.getLogger(__name__)


def make_engine(database_url: str):
    connect_args = {}
    kwargs = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        # in-memory SQLite needs a single shared connection
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    return create_engine(database_url, connect_args=connect_args, **kwargs)


def init_db(engine):
    SQLModel.metadata.create_all(engine)
    logger.info("Database initialized at %s", engine.url)
