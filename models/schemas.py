# models/schemas.py
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, List, Optional

# Signaling events
class InboundEvent(str, Enum):
    JOIN_ROOM = "join-room"
    LEAVE_ROOM = "leave-room"
    OFFER = "offer"
    ANSWER = "answer"
    ICE_CANDIDATE = "ice-candidate"

class OutboundEvent(str, Enum):
    CONNECTED = "connected"
    OTHER_PEER = "other-peer"
    PEER_JOINED = "peer-joined"
    PEER_LEFT = "peer-left"
    OFFER = "offer"
    ANSWER = "answer"
    ICE_CANDIDATE = "ice-candidate"
    JOIN_REJECTED = "join-rejected"
    TARGET_UNREACHABLE = "target-unreachable"
    ERROR = "error"

# Negotiation messages; extra fields pass through untouched
class SignalMessage(BaseModel):
    model_config = ConfigDict(extra="allow")

    event: str
    data: Any = None

class SessionDescriptionPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    target: str
    caller: Optional[str] = None
    sdp: Any = None

class IceCandidatePayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    target: str
    candidate: Any = None

class JoinRejection(BaseModel):
    roomID: str
    reason: str

# Room-related models
class RoomInfo(BaseModel):
    roomId: str
    numParticipants: int
    participants: List[str]
    isFull: bool

class RoomListResponse(BaseModel):
    rooms: List[RoomInfo]
    total: int

class ParticipantsResponse(BaseModel):
    roomId: str
    participants: List[str] = Field(default_factory=list)
    count: int

class HealthResponse(BaseModel):
    status: str
    connections: int
    rooms: int
    environment: str
    staticAssets: bool
