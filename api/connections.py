from fastapi import WebSocket
from typing import Any, Dict, Optional
from uuid import uuid4
import asyncio
import contextlib
import logging

from core.commands import Notification

logger = logging.getLogger(__name__)


class _Connection:
    def __init__(self, websocket: WebSocket, queue_size: int):
        self.websocket = websocket
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self.writer: Optional[asyncio.Task] = None


class ConnectionManager:
    """Tracks open websockets and fans engine notifications out to them.

    Implements the engine's EventPublisher: publish() only enqueues, one writer
    task per connection drains its queue in order.
    """

    def __init__(self, queue_size: int = 100):
        self.queue_size = queue_size
        self.active_connections: Dict[str, _Connection] = {}

    async def connect(self, websocket: WebSocket) -> str:
        """Accepts a websocket and starts its writer task

        Args:
            websocket (WebSocket):

        Returns:
            str: connection id used as the player's connection handle
        """
        await websocket.accept()
        connection_id = uuid4().hex
        connection = _Connection(websocket, self.queue_size)
        connection.writer = asyncio.create_task(
            self._writer(connection_id, connection), name=f"ws-writer-{connection_id}"
        )
        self.active_connections[connection_id] = connection
        logger.info(f"Connection opened: {connection_id} ({len(self.active_connections)} open)")
        return connection_id

    async def disconnect(self, connection_id: str):
        """Forgets a connection and stops its writer task

        Args:
            connection_id (str):
        """
        connection = self.active_connections.pop(connection_id, None)
        if connection is None:
            return
        connection.writer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await connection.writer
        logger.info(f"Connection closed: {connection_id} ({len(self.active_connections)} open)")

    async def close_all(self):
        for connection_id in list(self.active_connections):
            await self.disconnect(connection_id)

    def send_personal_message(self, message: Dict[str, Any], connection_id: str):
        connection = self.active_connections.get(connection_id)
        if connection is None:
            logger.debug(f"Dropping message for unknown connection {connection_id}")
            return
        try:
            connection.queue.put_nowait(message)
        except asyncio.QueueFull:
            logger.warning(
                f"Outbound queue full for {connection_id}, dropping {message.get('type')}"
            )

    def broadcast(self, message: Dict[str, Any], exclude: Optional[str] = None):
        logger.debug(f"Broadcasting {message.get('type')} to {len(self.active_connections)} connection(s)")
        for connection_id in list(self.active_connections):
            if connection_id != exclude:
                self.send_personal_message(message, connection_id)

    def publish(self, notification: Notification) -> None:
        message = notification.event.envelope()
        if notification.target is not None:
            self.send_personal_message(message, notification.target)
        else:
            self.broadcast(message, exclude=notification.exclude)

    async def _writer(self, connection_id: str, connection: _Connection):
        while True:
            message = await connection.queue.get()
            try:
                await connection.websocket.send_json(message)
            except Exception as e:
                # 對端已斷線，由讀取端負責清理
                logger.info(f"Stopped writing to {connection_id}: {e}")
                return
