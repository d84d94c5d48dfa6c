"""Database engine and session factory."""

import logging
from typing import Any, Dict, Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

Base = declarative_base()


class Database:
    """Owns one SQLAlchemy engine and its session factory.

    Built once per process (FastAPI lifespan, Celery worker init) and
    disposed when the process stops.

    Example:
        >>> database = Database("sqlite://")
        >>> with database.session() as db:
        ...     db.query(Stampante).count()
    """

    def __init__(self, url: str, echo: bool = False, engine_options: Optional[Dict[str, Any]] = None):
        options: Dict[str, Any] = {"echo": echo}
        if url.startswith("sqlite"):
            # In-memory SQLite must share one connection across threads
            options.update(
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            options["pool_pre_ping"] = True
        if engine_options:
            options.update(engine_options)

        self.url = url
        self.engine = create_engine(url, **options)
        self.session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def session(self) -> Session:
        """Open a new session; callers close it (or use it as a context manager)."""
        return self.session_factory()

    def create_all(self) -> None:
        """Create every table known to the metadata (tests and local dev only)."""
        import printshop.models  # noqa: F401  register mappers

        Base.metadata.create_all(bind=self.engine)

    def dispose(self) -> None:
        logger.info("Disposing database engine")
        self.engine.dispose()
