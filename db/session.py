import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from config import DATABASE_URL
from db.models import Base

logger = logging.getLogger(__name__)

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {},
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db() -> None:
    """Create all tables and indexes if they don't exist."""
    Base.metadata.create_all(bind=engine)
    # uq_contacts_active_email is created with the contacts table and backs
    # the active-contact email check in contacts.lifecycle.
    logger.info("Schema ready on %s.", engine.url.render_as_string(hide_password=True))


def get_session() -> Session:
    """Dependency-injectable session factory for FastAPI routes."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Session for scripts: rolled back if the block raises, always closed."""
    session = SessionLocal()
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
