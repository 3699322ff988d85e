# PURPOSE: engine, Session factory and the declarative Base for tasktimer's tables.

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from .config import settings


def _connect_args(url: str) -> dict:
    # SQLite sessions are handed between FastAPI's threadpool workers
    return {"check_same_thread": False} if url.startswith("sqlite") else {}


engine = create_engine(
    settings.DATABASE_URL,
    connect_args=_connect_args(settings.DATABASE_URL),
    pool_pre_ping=True,
)

# One session per request (store_db.get_db); the startup migration opens its own
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    pass
