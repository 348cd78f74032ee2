import logging
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

import config
from errors import translate_errors

logger = logging.getLogger(__name__)

Base = declarative_base()


def make_engine(url: str = config.DATABASE_URL, timeout: float = config.TRANSACTION_TIMEOUT):
    """Build an engine with foreign keys enforced and a bounded lock wait."""
    connect_args = {}
    if url.startswith("sqlite"):
        # FastAPI may hand the session to a worker thread
        connect_args = {"check_same_thread": False, "timeout": timeout}
    elif url.startswith("postgresql"):
        connect_args = {"options": f"-c lock_timeout={int(timeout * 1000)}"}

    engine = create_engine(url, connect_args=connect_args)

    if url.startswith("sqlite"):
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


engine = make_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db):
    """One transaction boundary: commit everything or roll everything back."""
    try:
        with translate_errors():
            yield db
            db.commit()
    except Exception:
        db.rollback()
        raise


def init_db(bind=None, seed: bool = config.SEED_ON_STARTUP):
    """Create the tables and, on an empty catalogue, the sample data.

    Seeding errors are not caught here: a half-initialised store must stop startup.
    """
    # models registers the tables on Base
    import models  # noqa: F401
    import seed as seeding

    bind = bind or engine
    with translate_errors():
        Base.metadata.create_all(bind=bind)
    logger.info("Tables ready on %s", bind.url)

    if seed:
        factory = sessionmaker(autocommit=False, autoflush=False, bind=bind)
        db = factory()
        try:
            seeding.seed_db(db)
        finally:
            db.close()
