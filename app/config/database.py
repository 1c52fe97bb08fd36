"""Database configuration and connection setup"""
import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.config.settings import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


def build_engine(database_url: str, **overrides):
    """Create an engine with pooling suited to the target database"""
    if database_url.startswith("sqlite"):
        # SQLite is only used for local runs and tests
        kwargs = {"connect_args": {"check_same_thread": False, "timeout": 30}}
    else:
        kwargs = {
            "pool_size": settings.DB_POOL_SIZE,
            "max_overflow": settings.DB_MAX_OVERFLOW,
            "pool_pre_ping": True,
        }
    kwargs.update(overrides)
    return create_engine(database_url, echo=False, **kwargs)


# Create database engine with connection pooling
engine = build_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Database dependency for FastAPI"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables(bind=None):
    """Create all booking tables that do not exist yet"""
    from app.models import Base

    target = bind or engine
    Base.metadata.create_all(bind=target)
    logger.info("Database tables created")


if __name__ == "__main__":
    create_tables()
