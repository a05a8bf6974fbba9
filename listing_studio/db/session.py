"""
Database session management
"""
from typing import Generator
from sqlalchemy.orm import Session
from listing_studio.db.base import SessionLocal


def get_db() -> Generator[Session, None, None]:
    """
    Dependency to get database session
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_db_and_tables():
    """
    Create database tables
    """
    from listing_studio.db.base import Base, engine
    import listing_studio.models  # noqa: F401  registers every table on Base.metadata
    Base.metadata.create_all(bind=engine)
