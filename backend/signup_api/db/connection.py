"""
Connection keeper: the single owner of the process-wide database connection.

CONNECTION STRATEGY: One Long-Lived Connection with Background Reconnect
=======================================================================

Problem:
  The database server restarts, or drops idle connections (wait_timeout),
  while the API keeps serving requests. A stale handle turns every request
  into a hang or a confusing driver error.

Solution:
  The keeper holds exactly one AsyncConnection and is the only code that
  ever assigns or clears it.

  1. On start, connect and ensure the schema (CREATE TABLE IF NOT EXISTS)
  2. When a statement reports that the connection was lost, discard the
     handle and start ONE background task that sleeps a fixed delay and
     reconnects, looping until it succeeds
  3. While the handle is gone, query() raises TransientDatabaseError at once;
     routes turn that into 503 instead of waiting for the reconnect
  4. A failure to connect that is not "server unreachable" (bad credentials,
     unknown database, broken URL) is fatal: it is recorded, logged at
     critical level and handed to the on_fatal hook

  Statements are serialised through an asyncio.Lock because a DBAPI
  connection runs one statement at a time. Every statement is committed
  (or rolled back) before the lock is released, so no caller ever holds
  the handle across a suspension point.
"""

import asyncio
from typing import Any, Callable, Mapping, Optional

from sqlalchemy import MetaData
from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from signup_api.core.exceptions import FatalDatabaseError, PersistenceError, TransientDatabaseError
from signup_api.core.logging import get_logger
from signup_api.core.metrics import db_connected, record_reconnect_attempt
from signup_api.db.base import Base

logger = get_logger(__name__)

DEFAULT_RECONNECT_DELAY_SECONDS = 10.0


def is_connection_lost(exc: BaseException) -> bool:
    """True when a statement failed because the connection itself went away."""
    if isinstance(exc, DBAPIError):
        return bool(exc.connection_invalidated)
    return isinstance(exc, OSError)


def is_retryable_connect_error(exc: BaseException) -> bool:
    """True when establishing a connection failed because the server is unreachable."""
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    return isinstance(exc, (OperationalError, InterfaceError, OSError))


class ConnectionKeeper:
    """Owns one database connection and reconnects it when it is lost."""

    def __init__(
        self,
        database_url: str,
        *,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY_SECONDS,
        metadata: MetaData = Base.metadata,
        on_fatal: Optional[Callable[[BaseException], None]] = None,
    ):
        self._engine: AsyncEngine = create_async_engine(database_url, poolclass=NullPool)
        self._metadata = metadata
        self._reconnect_delay = reconnect_delay
        self._on_fatal = on_fatal

        self._connection: Optional[AsyncConnection] = None
        self._lock = asyncio.Lock()
        self._connected = asyncio.Event()
        self._reconnect_task: Optional[asyncio.Task] = None
        self._fatal_error: Optional[BaseException] = None

    @property
    def connected(self) -> bool:
        return self._connection is not None

    @property
    def reconnecting(self) -> bool:
        return self._reconnect_task is not None and not self._reconnect_task.done()

    @property
    def fatal_error(self) -> Optional[BaseException]:
        return self._fatal_error

    async def start(self) -> None:
        """
        Connect and ensure the schema before the app serves traffic.

        If the server is unreachable the reconnect loop takes over and the app
        starts anyway, answering 503 until the connection is up. Any other
        connection error is raised as FatalDatabaseError.
        """
        try:
            await self._connect()
        except Exception as exc:
            if not is_retryable_connect_error(exc):
                self._fatal_error = exc
                logger.critical("db_connect_fatal", error=str(exc))
                raise FatalDatabaseError(str(exc)) from exc
            logger.error(
                "db_connect_failed",
                error=str(exc),
                retry_in_seconds=self._reconnect_delay,
            )
            self._start_reconnect()
            return
        logger.info("db_connected")

    async def wait_until_connected(self) -> None:
        await self._connected.wait()

    async def query(self, statement: Any, params: Optional[Mapping[str, Any]] = None) -> list:
        """Run a statement and return its rows as mappings (empty for DML without RETURNING)."""
        self._raise_if_fatal()
        if self._connection is None:
            raise TransientDatabaseError()

        async with self._lock:
            conn = self._connection
            if conn is None:
                raise TransientDatabaseError()
            try:
                result = await conn.execute(statement, params)
                rows = list(result.mappings().all()) if result.returns_rows else []
                await conn.commit()
                return rows
            except SQLAlchemyError as exc:
                if is_connection_lost(exc):
                    self.handle_connection_lost(exc)
                    raise TransientDatabaseError() from exc
                await self._rollback(conn)
                logger.error("db_statement_failed", error=str(exc))
                raise PersistenceError(str(exc)) from exc
            except OSError as exc:
                self.handle_connection_lost(exc)
                raise TransientDatabaseError() from exc

    def handle_connection_lost(self, exc: Optional[BaseException] = None) -> None:
        """Discard the current handle and make sure a reconnect loop is running."""
        stale = self._connection
        self._connection = None
        self._connected.clear()
        db_connected.set(0)

        if self.reconnecting:
            return

        logger.warning(
            "db_connection_lost",
            error=str(exc) if exc is not None else None,
            retry_in_seconds=self._reconnect_delay,
        )
        self._start_reconnect(stale)

    async def close(self) -> None:
        if self._reconnect_task is not None:
            self._reconnect_task.cancel()
            try:
                await self._reconnect_task
            except asyncio.CancelledError:
                pass
            self._reconnect_task = None

        conn = self._connection
        self._connection = None
        self._connected.clear()
        db_connected.set(0)
        if conn is not None:
            await conn.close()
        await self._engine.dispose()
        logger.info("db_closed")

    # Internals

    async def _open_connection(self) -> AsyncConnection:
        conn = await self._engine.connect()
        try:
            await conn.run_sync(self._metadata.create_all, checkfirst=True)
            await conn.commit()
        except BaseException:
            await conn.close()
            raise
        return conn

    async def _connect(self) -> None:
        conn = await self._open_connection()
        self._connection = conn
        self._connected.set()
        db_connected.set(1)

    def _start_reconnect(self, stale: Optional[AsyncConnection] = None) -> None:
        self._reconnect_task = asyncio.create_task(self._reconnect_loop(stale))

    async def _reconnect_loop(self, stale: Optional[AsyncConnection]) -> None:
        if stale is not None:
            await self._discard(stale)

        attempt = 0
        while True:
            await asyncio.sleep(self._reconnect_delay)
            attempt += 1
            try:
                await self._connect()
            except Exception as exc:
                if not is_retryable_connect_error(exc):
                    record_reconnect_attempt(success=False)
                    self._fail(exc)
                    return
                record_reconnect_attempt(success=False)
                logger.warning(
                    "db_reconnect_failed",
                    attempt=attempt,
                    error=str(exc),
                    retry_in_seconds=self._reconnect_delay,
                )
                continue

            record_reconnect_attempt(success=True)
            logger.info("db_reconnected", attempt=attempt)
            return

    def _fail(self, exc: BaseException) -> None:
        self._fatal_error = exc
        logger.critical("db_connect_fatal", error=str(exc))
        if self._on_fatal is not None:
            self._on_fatal(exc)

    def _raise_if_fatal(self) -> None:
        if self._fatal_error is not None:
            raise FatalDatabaseError(str(self._fatal_error)) from self._fatal_error

    async def _rollback(self, conn: AsyncConnection) -> None:
        try:
            await conn.rollback()
        except SQLAlchemyError as exc:
            if not is_connection_lost(exc):
                raise
            self.handle_connection_lost(exc)

    async def _discard(self, conn: AsyncConnection) -> None:
        # The server side is already gone; release whatever the driver still holds.
        try:
            await conn.invalidate()
            await conn.close()
        except (SQLAlchemyError, OSError) as exc:
            logger.debug("db_stale_connection_close_failed", error=str(exc))
