class RelayError(Exception):
    """Base class for signaling relay errors"""


class RoomFullError(RelayError):
    def __init__(self, room_id: str):
        self.room_id = room_id
        super().__init__(f"Room '{room_id}' is full")


class AlreadyJoinedError(RelayError):
    def __init__(self, connection_id: str, room_id: str):
        self.connection_id = connection_id
        self.room_id = room_id
        super().__init__(f"Connection {connection_id} is already in room '{room_id}'")


class UnknownConnectionError(RelayError):
    def __init__(self, connection_id: str):
        self.connection_id = connection_id
        super().__init__(f"Unknown connection: {connection_id}")


class InvalidMessageError(RelayError):
    pass
