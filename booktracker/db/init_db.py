from sqlalchemy.engine import Engine

from booktracker.db.base import Base
# Imported for their side effect of registering tables on Base.metadata
from booktracker.models.user import User  # noqa: F401
from booktracker.models.book import Book  # noqa: F401
from booktracker.models.user_book import UserBook  # noqa: F401

def init_db(engine: Engine) -> None:
    """Create all tables that do not exist yet"""
    Base.metadata.create_all(bind=engine)
