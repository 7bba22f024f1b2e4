import threading
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, Iterator, Mapping, Optional

from sqlalchemy import Engine, StaticPool, create_engine, make_url, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from devevent.core.config import get_database_url, get_pool_size
from devevent.core.errors import DatabaseConnectionError, InvalidFormatError
from devevent.core.logging_config import get_logger

logger = get_logger("database")


class Base(DeclarativeBase):
    pass


@dataclass
class Database:
    """A live engine together with the session factory bound to it."""

    engine: Engine
    session_factory: sessionmaker

    def session(self) -> Session:
        return self.session_factory()


class _ConnectionCache:
    """Process-wide cell holding the live database and the attempt in flight, if any."""

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.database: Optional[Database] = None
        self.pending: Optional[Future] = None


_cache = _ConnectionCache()


def _engine_options(url: str) -> dict:
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return {"pool_size": get_pool_size(), "pool_pre_ping": True}

    options: dict = {"connect_args": {"check_same_thread": False}}
    if parsed.database in (None, "", ":memory:"):
        # An in-memory database lives inside one connection, share it across threads
        options["poolclass"] = StaticPool
    return options


def _establish(url: str) -> Database:
    # Register the tables on Base.metadata
    from devevent.models import bookings, events  # noqa: F401

    engine = None
    try:
        options = _engine_options(url)
        engine = create_engine(url, **options)
        logger.info("Connecting to database %s", engine.url.render_as_string(hide_password=True))
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        # No migrations, tables are created when missing
        Base.metadata.create_all(bind=engine)
    except (SQLAlchemyError, ImportError) as exc:
        if engine is not None:
            engine.dispose()
        logger.error("Database connection failed: %s", exc)
        raise DatabaseConnectionError(f"Could not connect to database: {exc}") from exc

    logger.info("Database connected")
    return Database(
        engine=engine,
        session_factory=sessionmaker(autocommit=False, autoflush=False, bind=engine),
    )


def connect_to_database() -> Database:
    """
    Return the shared database, establishing it on first use.

    Concurrent callers that arrive while an attempt is in flight wait for that
    same attempt and receive the same result. A failed attempt is forgotten so
    the next call starts a fresh one.
    """
    with _cache.lock:
        if _cache.database is not None:
            logger.debug("Database already connected")
            return _cache.database
        attempt = _cache.pending
        owner = attempt is None
        if owner:
            attempt = _cache.pending = Future()

    if not owner:
        return attempt.result()

    try:
        database = _establish(get_database_url())
    except BaseException as exc:
        # Interrupts too, or later callers would wait on this attempt forever
        with _cache.lock:
            _cache.pending = None
        attempt.set_exception(exc)
        raise

    with _cache.lock:
        _cache.database = database
        _cache.pending = None
    attempt.set_result(database)
    return database


def reset_connection() -> None:
    """Dispose the cached engine and forget it. Intended for test harnesses."""
    with _cache.lock:
        database, _cache.database = _cache.database, None
        _cache.pending = None
    if database is not None:
        database.engine.dispose()


def get_db() -> Iterator[Session]:
    db = connect_to_database().session()
    try:
        yield db
    finally:
        db.close()


def check_filter_keys(model: type[Base], filters: Mapping[str, Any]) -> None:
    """Reject query filters that do not name a column of ``model``."""
    unknown = sorted(set(filters) - set(model.__table__.columns.keys()))
    if unknown:
        raise InvalidFormatError(f"Unknown filter field(s): {', '.join(unknown)}.", field=unknown[0])


def column_length(model: type[Base], field: str) -> Optional[int]:
    """Declared maximum length of a string column, None when unbounded."""
    return getattr(model.__table__.columns[field].type, "length", None)
