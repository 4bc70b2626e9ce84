"""
Read-only participant views: occupancy, public guest list and the admin dump.
"""

from fastapi import APIRouter, Depends

from signup_api.api.deps import get_keeper
from signup_api.core.security import require_admin
from signup_api.db.connection import ConnectionKeeper
from signup_api.schemas.participant import ParticipantPublic, ParticipantResponse, SpotsResponse
from signup_api.services.registration_service import (
    count_participants,
    dump_participants,
    list_participants,
)

router = APIRouter(tags=["Participants"])


@router.get("/spots", response_model=SpotsResponse)
async def spots(keeper: ConnectionKeeper = Depends(get_keeper)):
    """Fixed capacity and the number of rows taken so far."""
    used = await count_participants(keeper)
    return SpotsResponse(used_spots=used)


@router.get("/participants", response_model=list[ParticipantPublic])
async def participants(keeper: ConnectionKeeper = Depends(get_keeper)):
    return await list_participants(keeper)


@router.get("/all", response_model=list[ParticipantResponse])
async def all_participants(
    keeper: ConnectionKeeper = Depends(get_keeper),
    _admin: str = Depends(require_admin),
):
    """Full records including diet, alcohol and organisation. Basic auth required."""
    return await dump_participants(keeper)
