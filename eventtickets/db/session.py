import importlib.util
import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)


def normalize_database_url(url: str) -> str:
    """Point plain Postgres URLs at the psycopg (v3) driver.

    A plain 'postgresql://' (or legacy 'postgres://') URL makes SQLAlchemy load
    psycopg2. We depend on 'psycopg' v3 only, so inject the driver when
    psycopg2 is absent.
    """
    psycopg2_present = importlib.util.find_spec("psycopg2") is not None
    if psycopg2_present or not url.startswith(("postgres://", "postgresql://")) or "+psycopg" in url:
        return url
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    return url.replace("postgresql://", "postgresql+psycopg://", 1)


def make_engine(url: str) -> Engine:
    url = normalize_database_url(url)
    if url.startswith("sqlite"):
        kw: dict = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url.rstrip("/") in ("sqlite:", "sqlite+pysqlite:"):
            # one shared connection, otherwise every session sees an empty database
            kw["poolclass"] = StaticPool
        return create_engine(url, **kw)
    return create_engine(url, pool_pre_ping=True, pool_timeout=10)


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    # expire_on_commit=False: store methods hand loaded rows back after the session closes
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
