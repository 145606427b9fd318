from fastapi import APIRouter, HTTPException, Request, status
import logging
from models.schemas import ParticipantsResponse, RoomInfo, RoomListResponse
from room_manager import ROOM_CAPACITY

logger = logging.getLogger(__name__)
router = APIRouter()


def _room_info(room_id: str, members) -> RoomInfo:
    return RoomInfo(
        roomId=room_id,
        numParticipants=len(members),
        participants=list(members),
        isFull=len(members) >= ROOM_CAPACITY,
    )


def _get_members(request: Request, room_id: str):
    members = request.app.state.relay.rooms.members(room_id)
    if not members:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Room '{room_id}' not found"
        )
    return members


@router.get("/rooms", response_model=RoomListResponse)
async def list_rooms(request: Request):
    """
    List all rooms that currently have members
    """
    snapshot = request.app.state.relay.rooms_snapshot()
    room_list = [_room_info(room_id, members) for room_id, members in snapshot.items()]
    return RoomListResponse(rooms=room_list, total=len(room_list))


@router.get("/room/{room_id}", response_model=RoomInfo)
async def get_room_info(room_id: str, request: Request):
    """
    Get membership of a specific room
    """
    members = _get_members(request, room_id)
    return _room_info(room_id, members)


@router.get("/room/{room_id}/participants", response_model=ParticipantsResponse)
async def get_room_participants(room_id: str, request: Request):
    members = _get_members(request, room_id)
    logger.debug(f"Room '{room_id}' has {len(members)} participants")
    return ParticipantsResponse(
        roomId=room_id,
        participants=list(members),
        count=len(members),
    )
