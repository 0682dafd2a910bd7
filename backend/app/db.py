"""
Database initialization and connection pooling.

Provides:
- ensure_schema(): programmatic Alembic migration runner
- ConnectionPool: a small pool of SQLite connections for asyncio callers
- AsyncConnection: runs blocking sqlite3 calls on a per-connection worker
  thread via run_in_executor, so statements on one connection never interleave

All table creation happens through Alembic migrations.
"""

import asyncio
import functools
import logging
import sqlite3
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Optional, Sequence

from alembic import command
from alembic.config import Config as AlembicConfig

from .config import Config

logger = logging.getLogger(__name__)

BACKEND_DIR = Path(__file__).parent.parent


def _casefold(value: Optional[str]) -> Optional[str]:
    return value.casefold() if isinstance(value, str) else value


def ensure_schema(db_path: str) -> None:
    """
    Run Alembic migrations to head for the given database.

    Safe to call multiple times - Alembic tracks applied migrations.

    Args:
        db_path: Path to the SQLite database file. Parent directory is
                 created if missing.
    """
    db_dir = Path(db_path).parent
    db_dir.mkdir(parents=True, exist_ok=True)

    # Configure Alembic programmatically (no alembic.ini needed)
    alembic_cfg = AlembicConfig()
    alembic_cfg.set_main_option("script_location", str(BACKEND_DIR / "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", f"sqlite:///{db_path}")

    # Suppress Alembic's default logging to avoid noise in tests
    logging.getLogger("alembic").setLevel(logging.WARNING)

    try:
        command.upgrade(alembic_cfg, "head")
        logger.debug(f"Schema initialized for {db_path}")
    except Exception as e:
        logger.error(f"Migration failed for {db_path}: {e}")
        raise


class AsyncConnection:
    """
    Awaitable wrapper around one sqlite3 connection.

    Every call is a round trip to a dedicated single-worker executor, which
    keeps statements on this connection strictly ordered even when a caller
    is cancelled mid-statement.
    """

    def __init__(self, db_path: str, timeout: float):
        self.db_path = db_path
        self._timeout = timeout
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="festival-db")
        self._conn: Optional[sqlite3.Connection] = None

    async def _run(self, fn, *args) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, functools.partial(fn, *args))

    def _connect(self) -> None:
        # isolation_level=None: transactions are opened explicitly with BEGIN
        conn = sqlite3.connect(
            self.db_path,
            timeout=self._timeout,
            isolation_level=None,
            check_same_thread=False,
        )
        conn.row_factory = sqlite3.Row
        # Unicode-aware case folding; built-in LOWER() only folds ASCII
        conn.create_function("casefold", 1, _casefold, deterministic=True)
        if Config.is_dev():
            conn.set_trace_callback(logger.debug)
        conn.execute("PRAGMA foreign_keys = ON")
        conn.execute("PRAGMA journal_mode = WAL")
        self._conn = conn

    async def connect(self) -> None:
        await self._run(self._connect)

    def _execute(self, sql: str, params: Sequence[Any]) -> int:
        cursor = self._conn.execute(sql, params)
        return cursor.rowcount

    def _fetchone(self, sql: str, params: Sequence[Any]) -> Optional[dict]:
        row = self._conn.execute(sql, params).fetchone()
        return dict(row) if row is not None else None

    def _fetchall(self, sql: str, params: Sequence[Any]) -> list[dict]:
        return [dict(row) for row in self._conn.execute(sql, params).fetchall()]

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Execute a statement. Returns the affected row count."""
        return await self._run(self._execute, sql, tuple(params))

    async def fetchone(self, sql: str, params: Sequence[Any] = ()) -> Optional[dict]:
        return await self._run(self._fetchone, sql, tuple(params))

    async def fetchall(self, sql: str, params: Sequence[Any] = ()) -> list[dict]:
        return await self._run(self._fetchall, sql, tuple(params))

    @property
    def in_transaction(self) -> bool:
        return self._conn is not None and self._conn.in_transaction

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["AsyncConnection"]:
        """
        Context manager for transactions with automatic commit/rollback.

        BEGIN IMMEDIATE takes the write lock up front. Any exception,
        including cancellation, rolls the whole unit of work back.
        """
        await self._run(self._conn.execute, "BEGIN IMMEDIATE")
        try:
            yield self
        except BaseException:
            try:
                await asyncio.shield(self._run(self._rollback))
            except Exception as rollback_error:
                # Keep the original failure as the one that propagates
                logger.error(f"Rollback failed: {rollback_error}")
            raise
        await self._run(self._conn.commit)

    def _rollback(self) -> None:
        if self._conn is not None and self._conn.in_transaction:
            self._conn.rollback()

    def reset_nowait(self) -> None:
        """Queue a rollback of any dangling transaction without awaiting it."""
        self._executor.submit(self._rollback)

    def _close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    async def close(self) -> None:
        await self._run(self._close)
        self._executor.shutdown(wait=False)


class ConnectionPool:
    """
    Fixed-size pool of AsyncConnections.

    The pool is owned by the caller (the API lifespan, a script, a test) and
    injected into DuplicateDetector and FestivalImporter.
    """

    def __init__(
        self,
        db_path: Optional[str] = None,
        size: Optional[int] = None,
        timeout: Optional[float] = None,
    ):
        """
        Initialize pool. Connections are opened lazily on first acquire().

        Args:
            db_path: Path to SQLite database. Defaults to Config.database_path()
            size: Number of connections. Defaults to Config.db_pool_size()
            timeout: Busy timeout in seconds. Defaults to Config.db_timeout_seconds()
        """
        self.db_path = str(db_path or Config.database_path())
        self.size = size or Config.db_pool_size()
        self._timeout = timeout if timeout is not None else Config.db_timeout_seconds()
        self._queue: Optional[asyncio.Queue] = None
        self._connections: list[AsyncConnection] = []
        self._open_lock = asyncio.Lock()

    async def open(self) -> None:
        """Open all pooled connections."""
        async with self._open_lock:
            if self._queue is not None:
                return
            queue: asyncio.Queue = asyncio.Queue()
            for _ in range(self.size):
                conn = AsyncConnection(self.db_path, self._timeout)
                await conn.connect()
                self._connections.append(conn)
                queue.put_nowait(conn)
            self._queue = queue
            logger.info(f"Opened {self.size} database connections to {self.db_path}")

    @property
    def available(self) -> int:
        """Connections currently idle in the pool."""
        if self._queue is None:
            return self.size
        return self._queue.qsize()

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[AsyncConnection]:
        """Borrow a connection; it is returned on every exit path."""
        if self._queue is None:
            await self.open()
        conn = await self._queue.get()
        try:
            yield conn
        finally:
            if conn.in_transaction:
                conn.reset_nowait()
            self._queue.put_nowait(conn)

    async def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            async with self.acquire() as conn:
                row = await conn.fetchone("SELECT 1 AS ok")
            return row is not None and row["ok"] == 1
        except Exception as e:
            logger.warning(f"Database ping failed: {e}")
            return False

    async def close(self) -> None:
        """Close every pooled connection."""
        for conn in self._connections:
            await conn.close()
        self._connections = []
        self._queue = None
