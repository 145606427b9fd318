import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Union

from connection_registry import ConnectionRegistry
from exceptions import AlreadyJoinedError, RoomFullError, UnknownConnectionError
from models.schemas import JoinRejection, OutboundEvent

logger = logging.getLogger(__name__)

ROOM_CAPACITY = 2


@dataclass(frozen=True)
class FirstArrival:
    room_id: str


@dataclass(frozen=True)
class Paired:
    room_id: str
    peer_id: str


@dataclass(frozen=True)
class RoomFull:
    room_id: str


@dataclass(frozen=True)
class AlreadyJoined:
    room_id: str
    current_room_id: str


JoinOutcome = Union[FirstArrival, Paired, RoomFull, AlreadyJoined]


@dataclass(frozen=True)
class LeaveOutcome:
    room_id: Optional[str] = None
    remaining_peer_id: Optional[str] = None
    room_deleted: bool = False


class RoomTable:
    """Room id -> ordered member list. Never holds an empty room."""

    def __init__(self, capacity: int = ROOM_CAPACITY):
        self.capacity = capacity
        self._rooms: Dict[str, List[str]] = {}

    def add(self, room_id: str, connection_id: str) -> Tuple[str, ...]:
        """Append a member and return the members that were there before it."""
        members = self._rooms.get(room_id)
        if members is None:
            self._rooms[room_id] = [connection_id]
            return ()
        if len(members) >= self.capacity:
            raise RoomFullError(room_id)
        existing = tuple(members)
        members.append(connection_id)
        return existing

    def remove(self, room_id: str, connection_id: str) -> Tuple[str, ...]:
        """Remove a member and return who is left. Deletes the room once empty."""
        members = self._rooms.get(room_id)
        if members is None:
            return ()
        if connection_id in members:
            members.remove(connection_id)
        if not members:
            del self._rooms[room_id]
            return ()
        return tuple(members)

    def members(self, room_id: str) -> Tuple[str, ...]:
        return tuple(self._rooms.get(room_id, ()))

    def snapshot(self) -> Dict[str, Tuple[str, ...]]:
        return {room_id: tuple(members) for room_id, members in self._rooms.items()}

    def __contains__(self, room_id: str) -> bool:
        return room_id in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)


class RoomManager:
    """Pairs connections into rooms and tells each side about the other.

    All membership changes go through ``join`` and ``leave`` which hold the
    same lock, so two joins racing on an empty room see a consistent table:
    one of them arrives first and the other is paired with it.
    """

    def __init__(self, registry: ConnectionRegistry, table: Optional[RoomTable] = None):
        self.registry = registry
        self.table = table or RoomTable()
        self._lock = asyncio.Lock()

    async def join(self, connection_id: str, room_id: str) -> JoinOutcome:
        async with self._lock:
            connection = self.registry.get(connection_id)
            if connection.closed:
                raise UnknownConnectionError(connection_id)
            try:
                if connection.room_id is not None:
                    raise AlreadyJoinedError(connection_id, connection.room_id)
                existing = self.table.add(room_id, connection_id)
            except AlreadyJoinedError as e:
                logger.warning(f"Join rejected: {e}")
                connection.deliver(
                    OutboundEvent.JOIN_REJECTED.value,
                    JoinRejection(roomID=room_id, reason="already-joined").model_dump(),
                )
                return AlreadyJoined(room_id=room_id, current_room_id=e.room_id)
            except RoomFullError as e:
                logger.warning(f"Join rejected for {connection_id}: {e}")
                connection.deliver(
                    OutboundEvent.JOIN_REJECTED.value,
                    JoinRejection(roomID=room_id, reason="room-full").model_dump(),
                )
                return RoomFull(room_id=room_id)

            connection.room_id = room_id

            if not existing:
                logger.info(f"Connection {connection_id} created room '{room_id}'")
                return FirstArrival(room_id=room_id)

            peer_id = existing[0]
            connection.deliver(OutboundEvent.OTHER_PEER.value, peer_id)
            peer = self.registry.lookup(peer_id)
            if peer is not None:
                peer.deliver(OutboundEvent.PEER_JOINED.value, connection_id)
            else:
                logger.warning(f"Peer {peer_id} in room '{room_id}' is not registered")
            logger.info(f"Connection {connection_id} paired with {peer_id} in room '{room_id}'")
            return Paired(room_id=room_id, peer_id=peer_id)

    async def leave(self, connection_id: str, notify: bool = True) -> LeaveOutcome:
        async with self._lock:
            connection = self.registry.lookup(connection_id)
            if connection is None or connection.room_id is None:
                return LeaveOutcome()

            room_id = connection.room_id
            connection.room_id = None
            remaining = self.table.remove(room_id, connection_id)

            if not remaining:
                logger.info(f"Connection {connection_id} left room '{room_id}', room removed")
                return LeaveOutcome(room_id=room_id, room_deleted=True)

            peer_id = remaining[0]
            if notify:
                peer = self.registry.lookup(peer_id)
                if peer is not None:
                    peer.deliver(OutboundEvent.PEER_LEFT.value, connection_id)
            logger.info(f"Connection {connection_id} left room '{room_id}', {peer_id} remains")
            return LeaveOutcome(room_id=room_id, remaining_peer_id=peer_id)

    def members(self, room_id: str) -> Tuple[str, ...]:
        return self.table.members(room_id)

    def snapshot(self) -> Dict[str, Tuple[str, ...]]:
        return self.table.snapshot()

    @property
    def room_count(self) -> int:
        return len(self.table)
