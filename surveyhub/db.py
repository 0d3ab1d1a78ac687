from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import settings


def build_engine(url: str) -> Engine:
    """
    Engine for a database URL. SQLite gets foreign keys switched on so
    ``ON DELETE SET NULL`` clears site/expense references the same way
    PostgreSQL does; an in-memory SQLite URL shares one connection.
    """
    if not url.startswith("sqlite"):
        return create_engine(url, future=True, pool_pre_ping=True, pool_recycle=3600)

    options = {"connect_args": {"check_same_thread": False}}
    if url in ("sqlite://", "sqlite:///:memory:"):
        options["poolclass"] = StaticPool
    sqlite_engine = create_engine(url, future=True, **options)

    @event.listens_for(sqlite_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return sqlite_engine


engine = build_engine(settings.database_url)

# One session per request; routes commit the primary write, cascades commit after it
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
