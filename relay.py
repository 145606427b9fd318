import logging
from typing import Any, Dict, Tuple

from connection_registry import OUTBOX_LIMIT, Connection, ConnectionRegistry
from negotiation import NegotiationRouter, RouteOutcome
from room_manager import JoinOutcome, LeaveOutcome, RoomManager
from session_lifecycle import SessionLifecycleManager

logger = logging.getLogger(__name__)


class SignalingRelay:
    """Owns all relay state for one process: connections, rooms and routing."""

    def __init__(self, outbox_limit: int = OUTBOX_LIMIT):
        self.registry = ConnectionRegistry(outbox_limit=outbox_limit)
        self.rooms = RoomManager(self.registry)
        self.router = NegotiationRouter(self.registry)
        self.lifecycle = SessionLifecycleManager(self.registry, self.rooms)

    def connect(self) -> Connection:
        return self.lifecycle.on_connect()

    async def join(self, connection_id: str, room_id: str) -> JoinOutcome:
        return await self.rooms.join(connection_id, room_id)

    async def leave(self, connection_id: str) -> LeaveOutcome:
        return await self.rooms.leave(connection_id)

    def route(self, kind, sender_id: str, payload: Any) -> RouteOutcome:
        return self.router.route(kind, sender_id, payload)

    async def disconnect(self, connection_id: str) -> LeaveOutcome:
        return await self.lifecycle.on_disconnect(connection_id)

    async def shutdown(self):
        await self.lifecycle.shutdown()

    def rooms_snapshot(self) -> Dict[str, Tuple[str, ...]]:
        return self.rooms.snapshot()

    @property
    def connection_count(self) -> int:
        return len(self.registry)

    @property
    def room_count(self) -> int:
        return self.rooms.room_count
