import logging

from connection_registry import Connection, ConnectionRegistry
from models.schemas import OutboundEvent
from room_manager import LeaveOutcome, RoomManager

logger = logging.getLogger(__name__)


class SessionLifecycleManager:
    def __init__(self, registry: ConnectionRegistry, rooms: RoomManager):
        self.registry = registry
        self.rooms = rooms

    def on_connect(self) -> Connection:
        connection = self.registry.register()
        connection.deliver(OutboundEvent.CONNECTED.value, connection.connection_id)
        logger.info(f"Connection {connection.connection_id} opened ({len(self.registry)} live)")
        return connection

    async def on_disconnect(self, connection_id: str) -> LeaveOutcome:
        """Terminal transition for a connection. Safe to call more than once."""
        connection = self.registry.lookup(connection_id)
        if connection is None:
            logger.debug(f"Disconnect for unknown connection {connection_id} ignored")
            return LeaveOutcome()

        # Stop accepting outbound events before the room is torn down
        connection.close()
        outcome = await self.rooms.leave(connection_id)
        self.registry.unregister(connection_id)
        logger.info(f"Connection {connection_id} closed ({len(self.registry)} live)")
        return outcome

    async def shutdown(self):
        connection_ids = self.registry.connection_ids()
        for connection_id in connection_ids:
            await self.on_disconnect(connection_id)
        if connection_ids:
            logger.info(f"Closed {len(connection_ids)} connections on shutdown")
