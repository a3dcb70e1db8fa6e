import logging
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from buildsetu.config import DATABASE_URL

logger = logging.getLogger(__name__)

# ======================================================
# DATABASE CONNECTION
# ======================================================

if DATABASE_URL.startswith("sqlite"):
    # Local dev / tests. In-memory SQLite must share one connection
    # across sessions or every session sees an empty database.
    engine = create_engine(
        DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool if DATABASE_URL in ("sqlite://", "sqlite:///:memory:") else None,
    )
else:
    engine = create_engine(
        DATABASE_URL,
        pool_pre_ping=True,       # drops stale connections after idle periods
        pool_size=5,
        max_overflow=2,
        pool_timeout=30,
        pool_recycle=300,
        connect_args={"connect_timeout": 10},
    )

SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
)

Base = declarative_base()


# ======================================================
# DEPENDENCY
# ======================================================

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# ======================================================
# UNIT OF WORK
# ======================================================

@contextmanager
def transaction(db: Session):
    """
    Single transaction boundary for multi-record writes.

    Commits when the block exits cleanly. Any exception rolls back
    everything written inside the block and is re-raised unchanged.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


# ======================================================
# DATABASE BOOTSTRAP
# ======================================================

def init_database():
    """
    Idempotent schema bootstrap. Creates every table and index
    declared on the ORM models; existing tables are left alone.
    """
    import buildsetu.models  # noqa: F401
    Base.metadata.create_all(bind=engine)

    logger.info("Database verified | tables=%s", len(Base.metadata.tables))
