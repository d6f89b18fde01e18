"""
Database setup for saved campaigns.
One SQLite file beside the API by default; set SANGUO_DATABASE_URL or DATABASE_URL
(e.g. Heroku Postgres) to keep games elsewhere.
"""

import os
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from sanguo.config import DATABASE_URL as CONFIGURED_URL

DEFAULT_DB_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "sanguo.db")


def resolve_database_url(url: str | None) -> str:
    """SQLAlchemy URL for saved games; Heroku-style postgres:// becomes postgresql://."""
    if not url:
        return f"sqlite:///{DEFAULT_DB_PATH}"
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql://", 1)
    return url


def connect_args_for(url: str) -> dict:
    # Requests share the engine across threads; only SQLite objects to that
    return {"check_same_thread": False} if url.startswith("sqlite") else {}


DATABASE_URL = resolve_database_url(CONFIGURED_URL)
engine = create_engine(DATABASE_URL, connect_args=connect_args_for(DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """Yield a session for one request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Create the games table if it is missing."""
    Base.metadata.create_all(bind=engine)
