"""
Database setup

Job storage lives in SQLite by default; MISTRAL_OCR_DATABASE_URL overrides it.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from app.models import Base
from mistral_ocr.config import Settings

DATABASE_URL = Settings.from_env().database_url


def make_engine(url: str):
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args)


engine = make_engine(DATABASE_URL)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind=None):
    """
    Create tables (if missing)
    """
    Base.metadata.create_all(bind=bind or engine)


def get_db() -> Session:
    """
    Database session for FastAPI Depends

    Usage:
        @app.get("/jobs")
        def list_jobs(db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
