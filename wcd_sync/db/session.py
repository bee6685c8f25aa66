"""Database session management for the local sync database.

The DatabaseSessionManager owns the SQLite connection, creates the schema
and runs repository operations off the event loop with retry on lock.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import peewee
from playhouse.sqlite_ext import SqliteExtDatabase

from wcd_sync.db.models import ALL_MODELS, database_proxy

# Default database operation constants
DB_OPERATION_TIMEOUT = 30.0
DB_MAX_RETRIES = 3


@dataclass
class DatabaseSessionManager:
    """Peewee-backed database session manager.

    Attributes:
        path: Path to the SQLite database file, or ":memory:" for in-memory
        operation_timeout: Default timeout for database operations in seconds
        max_retries: Maximum retries for transient database errors
    """

    path: str
    _logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))
    _database: peewee.SqliteDatabase = field(init=False)
    _write_lock: asyncio.Lock = field(init=False)

    operation_timeout: float = field(default=DB_OPERATION_TIMEOUT)
    max_retries: int = field(default=DB_MAX_RETRIES)

    def __post_init__(self) -> None:
        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)

        self._database = SqliteExtDatabase(
            self.path,
            pragmas={
                "journal_mode": "wal",
                "synchronous": "normal",
                "foreign_keys": 1,
            },
            check_same_thread=False,
        )
        database_proxy.initialize(self._database)
        self._write_lock = asyncio.Lock()

    def migrate(self) -> None:
        """Create tables that do not exist yet."""
        with self._database.connection_context(), self._database.bind_ctx(ALL_MODELS):
            self._database.create_tables(ALL_MODELS, safe=True)
        self._logger.info("db_migrated", extra={"path": self._mask_path(self.path)})

    def close(self) -> None:
        if not self._database.is_closed():
            self._database.close()

    async def _safe_db_operation(
        self,
        operation: Any,
        *args: Any,
        timeout: float | None = None,
        operation_name: str = "database_operation",
        read_only: bool = False,
        **kwargs: Any,
    ) -> Any:
        """Execute a database operation in a worker thread with timeout and retry.

        Writes are serialised through one lock; SQLite WAL mode lets reads run
        alongside them.

        Raises:
            TimeoutError: If the operation times out
            peewee.OperationalError: If the database stays locked after retries
        """
        if timeout is None:
            timeout = self.operation_timeout

        retries = 0
        while True:
            try:

                def _op_wrapper() -> Any:
                    with self._database.connection_context():
                        return operation(*args, **kwargs)

                async def _run() -> Any:
                    if read_only:
                        return await asyncio.to_thread(_op_wrapper)
                    async with self._write_lock:
                        return await asyncio.to_thread(_op_wrapper)

                return await asyncio.wait_for(_run(), timeout=timeout)

            except TimeoutError:
                self._logger.exception(
                    "db_operation_timeout",
                    extra={"operation": operation_name, "timeout": timeout, "retries": retries},
                )
                raise

            except peewee.OperationalError as e:
                error_msg = str(e).lower()
                if ("locked" in error_msg or "busy" in error_msg) and retries < self.max_retries:
                    retries += 1
                    wait_time = 0.1 * (2**retries)
                    self._logger.warning(
                        "db_locked_retrying",
                        extra={
                            "operation": operation_name,
                            "retry": retries,
                            "max_retries": self.max_retries,
                            "wait_time": wait_time,
                            "error": str(e),
                        },
                    )
                    await asyncio.sleep(wait_time)
                    continue

                self._logger.exception(
                    "db_operational_error",
                    extra={"operation": operation_name, "retries": retries, "error": str(e)},
                )
                raise

    @staticmethod
    def _mask_path(path: str) -> str:
        try:
            p = Path(path)
            return p.name
        except (OSError, ValueError, AttributeError):
            return "..."
