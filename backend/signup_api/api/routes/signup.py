"""
Signup endpoints: window-gated submission and the window-open event stream.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import StreamingResponse

from signup_api.api.deps import get_keeper, get_mailer, get_now, get_publisher, get_schedule
from signup_api.core.config import Settings, get_settings
from signup_api.db.connection import ConnectionKeeper
from signup_api.schemas.participant import ParticipantCreate, ParticipantResponse
from signup_api.services.mail_service import Mailer
from signup_api.services.registration_service import sign_up
from signup_api.services.schedule import WindowSchedule
from signup_api.services.window_events import WindowEventPublisher

router = APIRouter(prefix="/signup", tags=["Signup"])


@router.post("", response_model=ParticipantResponse, status_code=status.HTTP_201_CREATED)
async def submit_signup(
    data: ParticipantCreate,
    keeper: ConnectionKeeper = Depends(get_keeper),
    mailer: Mailer = Depends(get_mailer),
    schedule: WindowSchedule = Depends(get_schedule),
    now: datetime = Depends(get_now),
    settings: Settings = Depends(get_settings),
):
    """
    Register a participant.

    Invited guests (`invited: true` plus a valid `inviteCode`) may sign up from
    the guest window, everybody else from the other window. Outside the
    window the answer is an empty 405. The confirmation email is sent in
    the background after the insert.
    """
    return await sign_up(keeper, mailer, schedule, data, now, settings)


@router.get("/enable")
async def window_events(
    request: Request,
    publisher: WindowEventPublisher = Depends(get_publisher),
    now: datetime = Depends(get_now),
):
    """
    Server-sent events announcing that a signup window opened.
    Sends at most one `{"guest": true}` and one `{"others": true}` per connection.
    """
    session = publisher.subscribe(now)
    return StreamingResponse(
        publisher.stream(session, request.is_disconnected),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
