from signup_api.schemas.participant import (
    MAX_SPOTS,
    ParticipantCreate,
    ParticipantPublic,
    ParticipantResponse,
    SpotsResponse,
)

__all__ = [
    "MAX_SPOTS",
    "ParticipantCreate", "ParticipantPublic", "ParticipantResponse",
    "SpotsResponse",
]
