# app/database.py
"""
Database connection, session management, and versioned schema migrations.
Uses SQLAlchemy; SQLite by default, any SQLAlchemy URL works.
Migrations are applied once each, in order, and recorded in schema_migrations.
"""

from datetime import datetime

from sqlalchemy import create_engine, insert, select
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import sessionmaker
from app.config import settings
from app.utils.logger import get_logger

logger = get_logger(__name__)


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        # Handlers run on the event loop thread, OCR runs in a worker thread
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True, "pool_size": 10, "max_overflow": 20}


engine = create_engine(
    settings.DATABASE_URL,
    echo=False,                  # Set True to log all SQL queries (debug only)
    **_engine_kwargs(settings.DATABASE_URL),
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """FastAPI dependency: yields a DB session and closes it after request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# ── Migrations ───────────────────────────────────────────────────────────────

def _create_core_tables(conn):
    from app.models.parking_session import ParkingSession   # noqa
    from app.models.monthly_total import MonthlyTotal       # noqa
    Base.metadata.create_all(
        bind=conn,
        tables=[ParkingSession.__table__, MonthlyTotal.__table__],
    )


# (version, description, upgrade(connection)). Append only, never reorder.
MIGRATIONS = [
    (1, "create parking_sessions and monthly_totals", _create_core_tables),
]


def run_migrations(bind=None) -> list[int]:
    """
    Apply every migration not yet recorded in schema_migrations.
    Each migration runs in its own transaction together with its bookkeeping row.
    Returns the versions applied by this call.
    """
    from app.models.schema_migration import SchemaMigration

    bind = bind if bind is not None else engine
    SchemaMigration.__table__.create(bind=bind, checkfirst=True)

    with bind.connect() as conn:
        applied = set(conn.execute(select(SchemaMigration.version)).scalars())

    newly_applied = []
    for version, description, upgrade in MIGRATIONS:
        if version in applied:
            continue
        with bind.begin() as conn:
            upgrade(conn)
            conn.execute(insert(SchemaMigration).values(
                version=version,
                description=description,
                applied_at=datetime.utcnow(),
            ))
        logger.info(f"[DB] Applied migration {version}: {description}")
        newly_applied.append(version)

    if not newly_applied:
        logger.debug("[DB] Schema up to date")
    return newly_applied
