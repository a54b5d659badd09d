"""Base model configuration."""
from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from hellenika.config import settings


def _create_engine(url: str):
    """Create the SQLAlchemy engine, sharing one connection for in-memory SQLite."""
    if url.startswith("sqlite") and ":memory:" in url:
        return create_engine(
            url,
            echo=settings.database.echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(url, echo=settings.database.echo)


# Create SQLAlchemy engine
engine = _create_engine(settings.database.url)


@event.listens_for(engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    """Enable foreign key enforcement on SQLite connections."""
    if engine.dialect.name != "sqlite":
        return
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Create declarative base class
Base = declarative_base()


def utcnow() -> datetime:
    """Current time in UTC."""
    return datetime.now(UTC)


class TimestampMixin:
    """Mixin to add timestamp columns to models."""
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


def init_db() -> None:
    """Initialize database."""
    # Register the mapped classes on Base.metadata
    import hellenika.models.models  # noqa: F401

    Base.metadata.create_all(bind=engine)  # Create tables if they don't exist


def drop_db() -> None:
    """Drop all tables."""
    Base.metadata.drop_all(bind=engine)
