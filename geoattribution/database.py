"""
Database models for the visit and conversion logs.

Uses SQLAlchemy 2.0. The pipeline only reads the columns it asks for and only
ever writes the five location columns shared by both tables.
"""

from contextlib import contextmanager
from datetime import datetime
from typing import Optional

from loguru import logger
from sqlalchemy import (
    BigInteger,
    DateTime,
    Index,
    Integer,
    LargeBinary,
    Numeric,
    String,
    create_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker

from geoattribution.config import settings


# =============================================================================
# Database Engine and Session
# =============================================================================

def _engine_options(url: str) -> dict:
    """Pool and connection options for the configured backend."""
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}

    return {
        "pool_pre_ping": True,
        "pool_size": 5,           # single writer, one connection in use at a time
        "max_overflow": 5,
        "pool_timeout": 30,
        "pool_recycle": 1800,     # Recycle connections every 30 minutes
        "connect_args": {"connect_timeout": 10},
    }


engine = create_engine(
    settings.database.url,
    echo=settings.pipeline.log_level == "DEBUG",
    **_engine_options(settings.database.url),
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def get_session():
    """Context manager for database sessions."""
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# =============================================================================
# Base Model
# =============================================================================

class Base(DeclarativeBase):
    """Base class for all models."""
    pass


# SQLite only autoincrements INTEGER PRIMARY KEY columns
VisitId = BigInteger().with_variant(Integer, "sqlite")

# Stored at 6 decimal places, returned as float
Coordinate = Numeric(9, 6, asdecimal=False)


# =============================================================================
# Log Models
# =============================================================================

class LogVisit(Base):
    """
    One logged visit.

    ``idvisit`` is assigned by the store on insert and only grows; new visits
    are always appended at the tail of the log.
    """
    __tablename__ = "log_visit"

    idvisit: Mapped[int] = mapped_column(VisitId, primary_key=True, autoincrement=True)
    visit_last_action_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    # Packed IPv4 (4 bytes) or IPv6 (16 bytes)
    location_ip: Mapped[Optional[bytes]] = mapped_column(LargeBinary(16), nullable=True)

    # Location
    location_country: Mapped[Optional[str]] = mapped_column(String(3), nullable=True)
    location_region: Mapped[Optional[str]] = mapped_column(String(3), nullable=True)
    location_city: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    location_latitude: Mapped[Optional[float]] = mapped_column(Coordinate, nullable=True)
    location_longitude: Mapped[Optional[float]] = mapped_column(Coordinate, nullable=True)

    __table_args__ = (
        Index("idx_log_visit_last_action_time", "visit_last_action_time", "idvisit"),
    )

    def __repr__(self) -> str:
        return f"<LogVisit {self.idvisit} ({self.location_country}, {self.location_city})>"


class LogConversion(Base):
    """
    A conversion recorded during a visit.

    Carries a copy of the visit's location columns, so it is re-attributed in
    lockstep with its visit.
    """
    __tablename__ = "log_conversion"

    idvisit: Mapped[int] = mapped_column(VisitId, primary_key=True)
    idgoal: Mapped[int] = mapped_column(Integer, primary_key=True)
    buster: Mapped[int] = mapped_column(Integer, primary_key=True, default=0)
    server_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    location_country: Mapped[Optional[str]] = mapped_column(String(3), nullable=True)
    location_region: Mapped[Optional[str]] = mapped_column(String(3), nullable=True)
    location_city: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    location_latitude: Mapped[Optional[float]] = mapped_column(Coordinate, nullable=True)
    location_longitude: Mapped[Optional[float]] = mapped_column(Coordinate, nullable=True)

    def __repr__(self) -> str:
        return f"<LogConversion visit={self.idvisit} goal={self.idgoal}>"


def init_db(drop: bool = False, bind=None) -> None:
    """Create the log tables, optionally dropping them first."""
    bind = bind or engine
    if drop:
        logger.warning("Dropping log tables")
        Base.metadata.drop_all(bind)
    Base.metadata.create_all(bind)
    logger.info("Log tables ready")
