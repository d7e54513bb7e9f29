"""
Module: fop_kernel.db.engine
Responsibility: SQLAlchemy engine initialization and session factory
    management.  The single point of database connection configuration for
    the FOP core.
Architecture position: Kernel > DB.  May import from db/base.py.
    ``create_tables`` imports the ORM registry so all tables are known.

Invariants enforced:
    - Sessions do not expire attributes on commit; aggregates rehydrated from
      ORM rows remain readable after the unit of work commits.

Failure modes:
    - RuntimeError if get_engine/get_session_factory is called
      before init_engine_from_url().
"""

import atexit

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from fop_kernel.logging_config import get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None


def _is_memory_sqlite(database_url: str) -> bool:
    return database_url in ("sqlite://", "sqlite:///:memory:")


def build_engine(database_url: str, echo: bool = False, pool_pre_ping: bool = True) -> Engine:
    """
    Create an engine for ``database_url``.

    SQLite connections hand transaction control to SQLAlchemy so that the
    batch executor's per-item SAVEPOINTs nest inside one outer transaction.
    In-memory SQLite shares a single connection across sessions.
    """
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, echo=echo, pool_pre_ping=pool_pre_ping)

    kwargs: dict = {"connect_args": {"check_same_thread": False}}
    if _is_memory_sqlite(database_url):
        kwargs["poolclass"] = StaticPool
    engine = create_engine(database_url, echo=echo, **kwargs)

    @event.listens_for(engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_pre_ping: bool = True,
) -> Engine:
    """
    Initialize the engine from a SQLAlchemy URL (PostgreSQL or SQLite).

    A second call replaces the first engine.
    """
    global _engine, _SessionFactory
    if _engine is not None:
        _engine.dispose()
    _engine = build_engine(database_url, echo=echo, pool_pre_ping=pool_pre_ping)
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    logger.info(
        "engine_initialized",
        extra={"dialect": _engine.dialect.name, "echo": echo},
    )
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """
    Get the session factory.

    Each scheduled job builds its own session per run from this factory.
    """
    if _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _SessionFactory


def create_tables(engine: Engine | None = None) -> None:
    """Create every table known to the ORM registry."""
    from fop_kernel.db.base import Base
    from fop_modules._orm_registry import import_all_orm_models

    import_all_orm_models()
    Base.metadata.create_all(engine or get_engine())
    logger.info("tables_created", extra={"table_count": len(Base.metadata.tables)})


def reset_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _SessionFactory
    if _engine is not None:
        _engine.dispose()
        _engine = None
    _SessionFactory = None


atexit.register(reset_engine)
