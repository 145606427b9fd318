import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from exceptions import UnknownConnectionError

logger = logging.getLogger(__name__)

# Put on a closed connection's outbox to stop its writer
CLOSE_SENTINEL = None

# Events a connection may have queued before it is treated as stalled
OUTBOX_LIMIT = 256


@dataclass
class Connection:
    """One live transport session and its outbound queue"""
    connection_id: str
    room_id: Optional[str] = None
    outbox: asyncio.Queue = field(default_factory=lambda: asyncio.Queue(maxsize=OUTBOX_LIMIT))
    closed: bool = False

    def deliver(self, event: str, data: Any) -> bool:
        """Queue an outbound event. Returns False once the connection is closed."""
        if self.closed:
            return False
        try:
            self.outbox.put_nowait({"event": event, "data": data})
        except asyncio.QueueFull:
            logger.warning(f"Outbox full for connection {self.connection_id}, closing it")
            self.close()
            return False
        return True

    def close(self):
        if self.closed:
            return
        self.closed = True
        try:
            self.outbox.put_nowait(CLOSE_SENTINEL)
        except asyncio.QueueFull:
            # The writer sees the closed flag on the next queued item
            pass


class ConnectionRegistry:
    def __init__(self, outbox_limit: int = OUTBOX_LIMIT):
        self.outbox_limit = outbox_limit
        self._connections: Dict[str, Connection] = {}

    def register(self, connection_id: Optional[str] = None) -> Connection:
        connection_id = connection_id or str(uuid.uuid4())
        if connection_id in self._connections:
            raise ValueError(f"Connection {connection_id} is already registered")
        connection = Connection(
            connection_id=connection_id,
            outbox=asyncio.Queue(maxsize=self.outbox_limit),
        )
        self._connections[connection_id] = connection
        logger.debug(f"Registered connection {connection_id} ({len(self._connections)} live)")
        return connection

    def get(self, connection_id: str) -> Connection:
        connection = self._connections.get(connection_id)
        if connection is None:
            raise UnknownConnectionError(connection_id)
        return connection

    def lookup(self, connection_id: str) -> Optional[Connection]:
        return self._connections.get(connection_id)

    def unregister(self, connection_id: str) -> Optional[Connection]:
        connection = self._connections.pop(connection_id, None)
        if connection is not None:
            connection.close()
            logger.debug(f"Unregistered connection {connection_id} ({len(self._connections)} live)")
        return connection

    def connection_ids(self):
        return list(self._connections)

    def __contains__(self, connection_id: str) -> bool:
        return connection_id in self._connections

    def __len__(self) -> int:
        return len(self._connections)
