"""
Outbound delivery for USChika.

The coordinator never awaits a socket. It hands events to a Notifier, which
for real connections is WebSocketNotifier: one asyncio.Queue and one writer
task per connection, so events reach each client in the order they were
produced and a slow client never stalls anyone else.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Protocol

from fastapi import WebSocket, WebSocketDisconnect, status

from ..app.task_registry import TaskRegistry
from ..structured_logging.enhanced_logging_config import get_logger
from .envelope import encode_event

logger = get_logger(__name__)


class Notifier(Protocol):
    """Outbound boundary used by the lifecycle coordinator."""

    def send(self, connection_id: str, event: dict[str, Any]) -> None:
        """Queue an event for one connection; unknown ids are ignored."""

    def drop(self, connection_id: str, reason: str) -> None:
        """Close one connection after its already-queued events are delivered."""


@dataclass(frozen=True)
class _CloseRequest:
    code: int
    reason: str


class WebSocketNotifier:
    """Notifier backed by per-connection send queues and writer tasks."""

    def __init__(self, task_registry: TaskRegistry, max_queue_size: int = 1000):
        self._task_registry = task_registry
        self.max_queue_size = max_queue_size
        self._queues: dict[str, asyncio.Queue] = {}
        self._writers: dict[str, asyncio.Task[Any]] = {}

    def register(self, connection_id: str, websocket: WebSocket) -> None:
        """Start the writer for a newly accepted WebSocket."""
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.max_queue_size)
        self._queues[connection_id] = queue
        self._writers[connection_id] = self._task_registry.register_task(
            self._writer(connection_id, websocket, queue),
            f"websocket_writer_{connection_id}",
            "websocket",
        )

    async def unregister(self, connection_id: str) -> None:
        """Stop the writer of a closed connection, discarding anything still queued."""
        self._queues.pop(connection_id, None)
        writer = self._writers.pop(connection_id, None)
        if writer is not None and not writer.done():
            writer.cancel()
            try:
                await writer
            except asyncio.CancelledError:
                pass

    def send(self, connection_id: str, event: dict[str, Any]) -> None:
        queue = self._queues.get(connection_id)
        if queue is None:
            logger.debug(
                "Dropping event for unknown connection", connection_id=connection_id, event_type=event.get("event_type")
            )
            return
        try:
            queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning(
                "Send queue full, dropping slow connection", connection_id=connection_id, max_size=self.max_queue_size
            )
            self._close_now(connection_id, queue, "send queue overflow")

    def drop(self, connection_id: str, reason: str) -> None:
        queue = self._queues.get(connection_id)
        if queue is None:
            return
        try:
            queue.put_nowait(_CloseRequest(code=status.WS_1008_POLICY_VIOLATION, reason=reason))
        except asyncio.QueueFull:
            self._close_now(connection_id, queue, reason)

    def _close_now(self, connection_id: str, queue: asyncio.Queue, reason: str) -> None:
        """Discard undelivered events and queue a 1008 close; later sends are ignored."""
        while not queue.empty():
            queue.get_nowait()
        queue.put_nowait(_CloseRequest(code=status.WS_1008_POLICY_VIOLATION, reason=reason))
        # Detach so nothing else is queued behind the close
        self._queues.pop(connection_id, None)

    def is_registered(self, connection_id: str) -> bool:
        return connection_id in self._queues

    def __len__(self) -> int:
        return len(self._queues)

    async def _writer(self, connection_id: str, websocket: WebSocket, queue: asyncio.Queue) -> None:
        """Drain one connection's queue onto its socket until closed."""
        try:
            while True:
                item = await queue.get()
                if isinstance(item, _CloseRequest):
                    logger.info("Closing connection", connection_id=connection_id, reason=item.reason)
                    await websocket.close(code=item.code, reason=item.reason)
                    return
                await websocket.send_text(encode_event(item))
        except (WebSocketDisconnect, RuntimeError) as e:
            # Socket already gone; the read loop performs cleanup
            logger.debug("Writer stopped, socket closed", connection_id=connection_id, error=str(e))
