from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from database.base import Base
from core.config import settings

def is_memory_sqlite(database_url: str) -> bool:
    return database_url in ("sqlite://", "sqlite:///:memory:") or ":memory:" in database_url or "mode=memory" in database_url

def build_engine(database_url: str) -> Engine:
    """Engine for the given URL.

    In-memory SQLite shares one connection so every session sees the same
    database. File-backed SQLite keeps a connection per session, so one
    request's rollback cannot discard another request's pending writes.
    """
    if database_url.startswith("sqlite"):
        if is_memory_sqlite(database_url):
            return create_engine(
                database_url,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False}
            )
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False, "timeout": 30}
        )
    return create_engine(database_url, pool_pre_ping=True)

engine = build_engine(settings.DATABASE_URL)

# Create SessionLocal class
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Create all tables
def create_tables(bind: Engine = None):
    # Register every mapped class on Base.metadata
    from models import user, vendor, delivery, tracking, notification, payment  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)

# Dependency to get database session
def get_db() -> Session:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
