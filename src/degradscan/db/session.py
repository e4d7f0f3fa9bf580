"""Engine and session factory."""

from functools import lru_cache

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from degradscan.config import get_settings
from degradscan.db.base import Base


def create_db_engine(database_url: str, create_tables: bool = True) -> Engine:
    """Create an engine and, by default, the DegradScan tables."""
    # Registers the ORM tables on Base.metadata.
    import degradscan.sqlalchemy.degradation_reports  # noqa: F401
    import degradscan.sqlalchemy.search_logs  # noqa: F401

    engine = create_engine(database_url)
    if create_tables:
        Base.metadata.create_all(engine)
    return engine


@lru_cache
def get_session_factory(database_url: str | None = None) -> sessionmaker[Session]:
    """Session factory for ``database_url`` (default: settings.database_url)."""
    engine = create_db_engine(database_url or get_settings().database_url)
    return sessionmaker(bind=engine, expire_on_commit=False)
