"""Database session management"""

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from learning_assistant.config import settings
import logging

logger = logging.getLogger(__name__)


def _engine_options(database_url: str) -> dict:
    """Connection options per backend"""
    if database_url.startswith("sqlite"):
        # Background tasks use their own sessions from other threads
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": 30,
        "max_overflow": 10,
        "pool_recycle": 3600,
        "pool_pre_ping": True,
    }


# Create engine with connection pooling
engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    **_engine_options(settings.DATABASE_URL)
)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Session:
    """Database session dependency"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@event.listens_for(engine, "connect")
def receive_connect(dbapi_conn, connection_record):
    """Handle new database connections"""
    logger.debug("New database connection established")
