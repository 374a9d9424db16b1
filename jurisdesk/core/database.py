"""
Database configuration and session management
"""

from contextlib import contextmanager
from typing import Iterator

from sqlmodel import Session, create_engine
from sqlalchemy.pool import StaticPool

from jurisdesk.core.config import get_settings

settings = get_settings()


def _engine_options(url: str) -> dict:
    if not url.startswith("sqlite"):
        return {"pool_pre_ping": True}
    options = {"connect_args": {"check_same_thread": False}}
    # In-memory SQLite must share one connection or every session sees an empty DB
    if url in ("sqlite://", "sqlite:///:memory:"):
        options["poolclass"] = StaticPool
    return options


engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    **_engine_options(settings.DATABASE_URL),
)


def get_session() -> Iterator[Session]:
    """Dependency to get database session"""
    with Session(engine) as session:
        yield session


@contextmanager
def session_scope() -> Iterator[Session]:
    """Standalone session for work that outlives the request (audit writes)"""
    with Session(engine) as session:
        yield session
