"""
Persistence sink for chat logins and relayed messages.

The coordinator calls record_login() and record_message() synchronously and
never waits on storage. SqlAlchemyPersistenceSink queues each record and a
background worker writes it; a second task purges messages older than the
retention window. Storage failures are logged and stop at the sink.
"""

import asyncio
from datetime import UTC, datetime, timedelta
from typing import Any, Protocol

from sqlalchemy import delete
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError

from ..app.task_registry import TaskRegistry
from ..exceptions import DatabaseError, ErrorContext
from ..realtime.connection_models import Identity, RelayedMessage
from ..structured_logging.enhanced_logging_config import get_logger
from .database import DatabaseManager
from .models import ChatMessage, ChatUser

logger = get_logger(__name__)


class PersistenceSink(Protocol):
    """Fire-and-forget storage boundary used by the coordinator."""

    def record_login(self, identity: Identity) -> None: ...

    def record_message(self, message: RelayedMessage) -> None: ...

    async def start(self) -> None: ...

    async def stop(self) -> None: ...


class NullPersistenceSink:
    """Sink used when no database is configured; records are discarded."""

    def __init__(self):
        self.logins = 0
        self.messages = 0

    def record_login(self, identity: Identity) -> None:
        self.logins += 1

    def record_message(self, message: RelayedMessage) -> None:
        self.messages += 1

    async def start(self) -> None:
        logger.info("Persistence disabled, no database configured")

    async def stop(self) -> None:
        return None


class SqlAlchemyPersistenceSink:
    """
    PostgreSQL-backed sink.

    Records are buffered on an asyncio.Queue and written by a single worker
    task in arrival order. Records submitted before start() wait in the queue.
    """

    def __init__(
        self,
        database: DatabaseManager,
        task_registry: TaskRegistry,
        retention_hours: int = 24,
        purge_interval_seconds: int = 600,
        max_pending: int = 10_000,
    ):
        self.database = database
        self.task_registry = task_registry
        self.retention = timedelta(hours=retention_hours)
        self.purge_interval_seconds = purge_interval_seconds
        self._queue: asyncio.Queue[tuple[str, Any]] = asyncio.Queue(maxsize=max_pending)
        self._started = False

    def record_login(self, identity: Identity) -> None:
        self._enqueue("login", identity)

    def record_message(self, message: RelayedMessage) -> None:
        self._enqueue("message", message)

    def _enqueue(self, kind: str, record: Any) -> None:
        try:
            self._queue.put_nowait((kind, record))
        except asyncio.QueueFull:
            logger.warning("Persistence queue full, record discarded", record_kind=kind, pending=self._queue.qsize())

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    async def start(self) -> None:
        """Ensure tables exist and start the writer and purge tasks."""
        await self.database.create_tables()
        self.task_registry.register_task(self._worker(), "persistence_worker", "persistence")
        self.task_registry.register_task(self._purge_loop(), "persistence_purge", "persistence")
        self._started = True
        logger.info(
            "Persistence sink started",
            retention_hours=self.retention.total_seconds() / 3600,
            purge_interval_seconds=self.purge_interval_seconds,
        )

    async def stop(self, drain_timeout: float = 5.0) -> None:
        """Flush queued records (bounded by drain_timeout), stop tasks and close the engine."""
        if self._started:
            try:
                await asyncio.wait_for(self._queue.join(), drain_timeout)
            except TimeoutError:
                logger.warning("Persistence queue not drained before shutdown", pending=self._queue.qsize())
            await self.task_registry.cancel_task("persistence_worker")
            await self.task_registry.cancel_task("persistence_purge")
            self._started = False
        await self.database.close()
        logger.info("Persistence sink stopped")

    async def _worker(self) -> None:
        while True:
            kind, record = await self._queue.get()
            try:
                if kind == "login":
                    await self.write_login(record)
                else:
                    await self.write_message(record)
            except DatabaseError as e:
                logger.warning("Chat record discarded", record_kind=kind, operation=e.operation)
            finally:
                self._queue.task_done()

    async def write_login(self, identity: Identity) -> None:
        """Insert or refresh the chat_users row for an identity."""
        now = datetime.now(UTC)
        stmt = pg_insert(ChatUser).values(
            user_ref=identity.user_ref,
            email=identity.email,
            display_name=identity.display_name,
            created_at=now,
            last_login_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[ChatUser.email],
            set_={"display_name": stmt.excluded.display_name, "last_login_at": stmt.excluded.last_login_at},
        )
        try:
            async with self.database.get_session_maker()() as session:
                await session.execute(stmt)
                await session.commit()
        except (SQLAlchemyError, OSError) as e:
            raise DatabaseError(
                f"Failed to record chat user: {e}",
                ErrorContext(user_ref=identity.user_ref),
                operation="upsert",
                table=ChatUser.__tablename__,
            ) from e
        logger.debug("Chat user recorded", user_ref=identity.user_ref)

    async def write_message(self, message: RelayedMessage) -> None:
        """Insert one relayed message."""
        row = ChatMessage(
            room_id=message.room_id,
            sender_ref=message.sender_ref,
            content=message.content,
            timestamp_ms=message.timestamp,
            sent_at=datetime.fromtimestamp(message.timestamp / 1000, tz=UTC),
        )
        try:
            async with self.database.get_session_maker()() as session:
                session.add(row)
                await session.commit()
        except (SQLAlchemyError, OSError) as e:
            raise DatabaseError(
                f"Failed to store chat message: {e}",
                ErrorContext(user_ref=message.sender_ref, room_id=message.room_id),
                operation="insert",
                table=ChatMessage.__tablename__,
            ) from e

    async def purge_expired(self, now: datetime | None = None) -> int:
        """
        Delete messages older than the retention window.

        Returns:
            Number of rows deleted
        """
        cutoff = (now or datetime.now(UTC)) - self.retention
        try:
            async with self.database.get_session_maker()() as session:
                result = await session.execute(delete(ChatMessage).where(ChatMessage.sent_at < cutoff))
                await session.commit()
        except (SQLAlchemyError, OSError) as e:
            raise DatabaseError(
                f"Failed to purge expired messages: {e}", operation="purge", table=ChatMessage.__tablename__
            ) from e
        deleted = result.rowcount or 0
        if deleted:
            logger.info("Purged expired chat messages", deleted=deleted, cutoff=cutoff.isoformat())
        return deleted

    async def _purge_loop(self) -> None:
        while True:
            try:
                await self.purge_expired()
            except DatabaseError as e:
                logger.warning("Message purge skipped", operation=e.operation)
            await asyncio.sleep(self.purge_interval_seconds)
