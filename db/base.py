"""
Database Base

Declares the peewee model base class and the Store: the explicit storage
context every service receives in its constructor.

Models are declared against a DatabaseProxy. A Store binds the proxy to a
concrete database (pooled Postgres in production, SQLite for development
and tests), so no service reaches for a process-wide connection itself.
"""

import asyncio
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional

from peewee import Database, DatabaseProxy, Model, SqliteDatabase
from playhouse.db_url import connect, parse
from playhouse.pool import PooledPostgresqlDatabase

from core.logging import get_logger


database_proxy = DatabaseProxy()


class BaseModel(Model):
    class Meta:
        database = database_proxy


def create_database(database_url: str) -> Database:
    """
    Build a peewee database from a URL.

    Postgres URLs get a connection pool; anything else is handed to
    playhouse.db_url (e.g. sqlite:///predictor.db).
    """
    if database_url.startswith(("postgres://", "postgresql://")):
        parsed_url = parse(database_url)
        db_name = parsed_url.pop("database")
        return PooledPostgresqlDatabase(
            db_name,
            max_connections=20,
            stale_timeout=300,
            **parsed_url,
        )
    if database_url.startswith("sqlite"):
        return connect(database_url, pragmas={"foreign_keys": 1})
    return connect(database_url)


class Store:
    """
    Storage context shared by every component.

    Provides a scoped transaction contract: acquire, run a batch of writes,
    commit on success or roll back on any exception, release on all exit
    paths.

    Example:
        store = Store(create_database(settings.database_url))
        store.create_tables()
        with store.transaction():
            Prediction.update(points=3).where(...).execute()
    """

    def __init__(self, database: Database):
        self.database = database
        self.log = get_logger("store")
        database_proxy.initialize(database)

    @classmethod
    def from_url(cls, database_url: str) -> "Store":
        return cls(create_database(database_url))

    @classmethod
    def in_memory(cls) -> "Store":
        """SQLite in-memory store, used by tests and local scripts."""
        return cls(SqliteDatabase(":memory:", pragmas={"foreign_keys": 1}))

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """
        Scoped transaction.

        Nested calls become savepoints, so a service may open a transaction
        inside one that its caller already holds.
        """
        with self.database.atomic():
            yield

    @contextmanager
    def connection(self) -> Iterator[None]:
        """Open a connection for the current thread if needed, close it after."""
        opened = self.connect()
        try:
            yield
        finally:
            if opened:
                self.close()

    def connect(self) -> bool:
        """Connect if closed. Returns True when this call opened the connection."""
        if self.database.is_closed():
            self.database.connect()
            return True
        return False

    def close(self) -> None:
        if not self.database.is_closed():
            self.database.close()

    def create_tables(self) -> None:
        """Create every table if it does not exist (safe=True is idempotent)."""
        from db.models import ALL_MODELS

        self.connect()
        # Order matters for foreign key dependencies
        self.database.create_tables(ALL_MODELS, safe=True)
        self.log.info("tables_ready", count=len(ALL_MODELS))


_store: Optional[Store] = None


def init_db(database_url: Optional[str] = None) -> Store:
    """Initialize the application store and create tables if they don't exist."""
    global _store
    from core.settings import settings

    _store = Store.from_url(database_url or settings.database_url)
    _store.create_tables()
    return _store


def get_store() -> Store:
    """Get the application store created by init_db()."""
    if _store is None:
        raise RuntimeError("Store not initialized; call init_db() first")
    return _store


def close_db() -> None:
    """Close database connection."""
    if _store is not None:
        _store.close()


async def run_in_store(func: Callable[..., Any], *args: Any) -> Any:
    """
    Run a blocking store call in a worker thread, with its own connection.

    Async route handlers await this rather than querying on the event loop,
    which the scheduler's jobs share.
    """
    store = get_store()

    def call():
        with store.connection():
            return func(*args)

    return await asyncio.to_thread(call)
