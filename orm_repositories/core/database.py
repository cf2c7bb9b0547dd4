"""
Database engine and session management.

Provides synchronous SQLAlchemy engine setup, session factories and a
transactional session scope for code running outside a repository.
"""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import Engine, create_engine, event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, scoped_session, sessionmaker
from sqlalchemy.pool import StaticPool

from orm_repositories.core.logging_config import get_logger
from orm_repositories.models.base import Base

logger = get_logger(__name__)


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create and configure the SQLAlchemy engine.

    For SQLite:
    - Enables check_same_thread=False so scoped sessions may span threads
    - Uses StaticPool for in-memory databases (one shared connection)
    - Turns on foreign key enforcement for every new connection

    Args:
        database_url: SQLAlchemy database URL
        echo: Log emitted SQL

    Returns:
        Configured Engine instance
    """
    is_sqlite = database_url.startswith("sqlite")

    engine_kwargs: dict = {"echo": echo}

    if is_sqlite:
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        # Every connection to :memory: is a new empty database
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            engine_kwargs["poolclass"] = StaticPool

    engine = create_engine(database_url, **engine_kwargs)

    if is_sqlite:
        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_connection, connection_record):  # noqa: ANN001
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    logger.debug("Database engine created", extra={"dialect": engine.dialect.name})
    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """
    Build the session factory bound to an engine.

    Objects are not expired on commit so records returned by create()
    stay readable after the repository commits.
    """
    return sessionmaker(
        bind=engine,
        expire_on_commit=False,
        autoflush=False,
    )


def create_scoped_session(engine: Engine) -> scoped_session[Session]:
    """Thread-local session registry, one session per thread."""
    return scoped_session(create_session_factory(engine))


def init_db(engine: Engine) -> None:
    """
    Create all tables registered on the declarative Base.

    For production, run migrations instead. Models must be imported
    before calling this so their tables are present in the metadata.
    """
    Base.metadata.create_all(engine)
    logger.info("Database tables created", extra={"tables": sorted(Base.metadata.tables)})


def drop_db(engine: Engine) -> None:
    """Drop all tables registered on the declarative Base."""
    Base.metadata.drop_all(engine)


@contextmanager
def session_scope(factory: sessionmaker[Session]) -> Iterator[Session]:
    """
    Provide a transactional scope around a series of operations.

    Commits on success, rolls back on any exception and always closes.

    Example:
        with session_scope(factory) as session:
            session.add(User(email="a@example.com"))
    """
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


class DatabaseHealthCheck:
    """
    Database health check utilities.
    """

    @staticmethod
    def check_connection(engine: Engine) -> bool:
        """
        Check if database connection is healthy.

        Returns:
            True if database is reachable, False otherwise
        """
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            logger.warning("Database health check failed", exc_info=True)
            return False

    @staticmethod
    def get_database_info(engine: Engine) -> dict:
        """
        Get database information for monitoring.

        The password is masked in the returned URL.
        """
        return {
            "url": engine.url.render_as_string(hide_password=True),
            "dialect": engine.dialect.name,
            "driver": engine.dialect.driver,
        }
