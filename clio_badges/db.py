"""Database session and connection management"""

import logging
import threading
from contextlib import contextmanager, nullcontext
from typing import Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from clio_badges.models.db import Base
from clio_badges.db_config import DatabaseManager
from clio_badges.services.badges import seed_badge_catalog

logger = logging.getLogger(__name__)

def _enable_sqlite_savepoints(engine: Engine) -> None:
    """
    Let SQLAlchemy emit BEGIN itself so SAVEPOINT/RELEASE behave.

    pysqlite otherwise defers BEGIN until the first DML statement, which
    breaks nested transactions.
    """
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

class Database:
    """Database connection and session manager"""

    def __init__(self):
        """Initialize database manager state"""
        self._engine = None
        self._SessionLocal = None
        # Set for SQLite, which takes one writer at a time
        self._sqlite_lock = None

    @property
    def engine(self) -> Optional[Engine]:
        return self._engine

    def init(self, connection_string: Optional[str] = None) -> None:
        """
        Initialize database connection, create tables and seed the badge catalog.

        This should be called once at application startup.

        Args:
            connection_string: SQLAlchemy URL; resolved from settings when omitted

        Raises:
            SQLAlchemyError: If database initialization fails
        """
        if connection_string is None:
            connection_string = DatabaseManager.get_connection_string()

        try:
            if connection_string.startswith('sqlite'):
                engine_kwargs = {'connect_args': {'check_same_thread': False, 'timeout': 30}}
                if connection_string in ('sqlite://', 'sqlite:///:memory:'):
                    # One shared connection, otherwise each session sees an empty database
                    engine_kwargs['poolclass'] = StaticPool
                self._engine = create_engine(connection_string, **engine_kwargs)
                _enable_sqlite_savepoints(self._engine)
                self._sqlite_lock = threading.RLock()
            else:
                self._engine = create_engine(connection_string, pool_pre_ping=True)

            Base.metadata.create_all(self._engine)
            self._SessionLocal = sessionmaker(bind=self._engine)

            with self.session() as session:
                seed_badge_catalog(session)

            logger.info(f"Database initialized successfully ({self._engine.dialect.name})")

        except SQLAlchemyError as e:
            logger.error(f"Database initialization failed: {e}")
            raise

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """
        Provide a transactional scope around a series of database operations.

        On SQLite sessions are serialized process-wide: the in-memory
        database shares one connection and file databases allow one writer.

        Usage:
            with db.session() as session:
                session.add(some_object)

        Yields:
            Session: SQLAlchemy database session

        Raises:
            RuntimeError: If database not initialized
            SQLAlchemyError: If database operations fail
        """
        if not self._SessionLocal:
            raise RuntimeError("Database not initialized. Call init() first.")

        with self._sqlite_lock or nullcontext():
            session = self._SessionLocal()
            try:
                yield session
                session.commit()
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

    def dispose(self) -> None:
        """
        Clean up database connections.
        Should be called during application shutdown.
        """
        if self._engine:
            self._engine.dispose()
            self._engine = None
            self._SessionLocal = None
            self._sqlite_lock = None

# Global database instance
db = Database()
