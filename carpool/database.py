# carpool/database.py
"""
Database connection, session management, and table creation.
Uses SQLAlchemy with PostgreSQL (SQLite for local runs and tests). All models
are auto-imported here so create_tables() creates every table in one call.
"""

from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker
from carpool.config import settings

Base = declarative_base()


def build_engine(url: str, **kwargs):
    """
    Create an engine for `url`.

    SQLite ignores SELECT ... FOR UPDATE, so every SQLite transaction is opened
    with BEGIN IMMEDIATE instead. Writers are then serialized database-wide,
    which covers the per-car lock reserve_seat relies on.
    """
    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": 30},
            **kwargs,
        )

        @event.listens_for(engine, "connect")
        def _disable_pysqlite_begin(dbapi_connection, connection_record):
            # Let SQLAlchemy emit BEGIN itself
            dbapi_connection.isolation_level = None

        @event.listens_for(engine, "begin")
        def _begin_immediate(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

        return engine

    return create_engine(
        url,
        pool_pre_ping=True,          # Auto-reconnect if DB connection drops
        pool_size=10,
        max_overflow=20,
        echo=False,                  # Set True to log all SQL queries (debug only)
        **kwargs,
    )


engine = build_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """FastAPI dependency — yields a DB session and closes it after request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables(bind=None):
    """
    Creates all DB tables on startup. Safe to call multiple times.
    Import all models here so SQLAlchemy knows about them.
    """
    from carpool.models.car import Car                      # noqa
    from carpool.models.passenger import Passenger          # noqa
    from carpool.models.reservation import Reservation      # noqa
    from carpool.models.payment import Payment              # noqa
    from carpool.models.arrival import Arrival              # noqa
    from carpool.models.vote import VoteForExtraCar         # noqa
    from carpool.models.anomaly import Anomaly              # noqa
    from carpool.models.audit_log import AuditLog           # noqa

    Base.metadata.create_all(bind=bind or engine)
