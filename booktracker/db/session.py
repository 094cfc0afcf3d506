import logging

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from booktracker.core.config.settings import get_settings
from booktracker.core.exceptions import UpstreamFailure

logger = logging.getLogger("booktracker.errors")

DATABASE_URL = get_settings().DATABASE_URL


def _engine_options(url: str) -> dict:
    if not url.startswith("sqlite"):
        return {"pool_pre_ping": True}
    options = {"connect_args": {"check_same_thread": False}}
    # In-memory databases must share one connection across threads
    if url in ("sqlite://", "sqlite:///:memory:"):
        options["poolclass"] = StaticPool
    return options


# Create engine
engine = create_engine(DATABASE_URL, **_engine_options(DATABASE_URL))

# Create session
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Dependency
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def commit_or_fail(db: Session) -> None:
    """Commit, turning database errors into an UpstreamFailure"""
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database commit failed: {str(e)}")
        raise UpstreamFailure(f"Database error: {str(getattr(e, 'orig', e))}")
