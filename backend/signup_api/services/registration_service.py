"""
Registration store: writes and reads participant rows through the connection keeper.

Writes are single-statement inserts with no cross-row invariants, so no
transaction or locking beyond the keeper's own serialisation is needed.
The confirmation mail is only scheduled after the insert returned an id.
"""

from datetime import datetime

from sqlalchemy import func, insert, select

from signup_api.core.config import Settings
from signup_api.core.exceptions import DatabaseError, SignupWindowClosed, TransientDatabaseError
from signup_api.core.logging import get_logger
from signup_api.core.metrics import record_signup_attempt
from signup_api.core.security import invite_is_valid
from signup_api.db.connection import ConnectionKeeper
from signup_api.models.participant import Participant
from signup_api.schemas.participant import ParticipantCreate
from signup_api.services.mail_service import Mailer, dispatch_confirmation, run_in_background
from signup_api.services.schedule import WindowSchedule, category_for, is_open

logger = get_logger(__name__)

participants = Participant.__table__


async def create_participant(keeper: ConnectionKeeper, data: ParticipantCreate) -> dict:
    """Insert one participant and return the stored row, including id and timestamp."""
    values = data.to_row()
    rows = await keeper.query(
        insert(participants)
        .values(**values)
        .returning(participants.c.id, participants.c.created_at)
    )
    stored = {**values, "id": rows[0]["id"], "created_at": rows[0]["created_at"]}
    logger.info("participant_created", participant_id=stored["id"], invited=stored["invited"])
    return stored


async def count_participants(keeper: ConnectionKeeper) -> int:
    rows = await keeper.query(select(func.count().label("count")).select_from(participants))
    return rows[0]["count"]


async def list_participants(keeper: ConnectionKeeper) -> list[dict]:
    """Public guest list: names and table group only."""
    rows = await keeper.query(
        select(
            participants.c.id,
            participants.c.firstname,
            participants.c.lastname,
            participants.c.table_group,
        ).order_by(participants.c.id)
    )
    return [dict(row) for row in rows]


async def dump_participants(keeper: ConnectionKeeper) -> list[dict]:
    """Every column of every row. Exposes personal data; admin only."""
    rows = await keeper.query(select(participants).order_by(participants.c.id))
    return [dict(row) for row in rows]


async def sign_up(
    keeper: ConnectionKeeper,
    mailer: Mailer,
    schedule: WindowSchedule,
    data: ParticipantCreate,
    now: datetime,
    settings: Settings,
) -> dict:
    """
    Gate, store, then confirm.

    `invited: true` without a matching invitation code is stored as a regular
    submission and gated by the other window.

    Raises SignupWindowClosed when the submission falls outside its window. Database errors
    propagate to the app's exception handlers; in that case no mail is sent.
    """
    if data.invited and not invite_is_valid(data.invite_code, settings):
        logger.info("signup_invite_not_verified", email=str(data.email))
        data = data.model_copy(update={"invited": False})

    category = category_for(data.invited)
    if not is_open(schedule, category, now):
        record_signup_attempt("window_closed")
        logger.info("signup_rejected_window_closed", category=category.value, now=now.isoformat())
        raise SignupWindowClosed(category.value)

    try:
        stored = await create_participant(keeper, data)
    except TransientDatabaseError:
        record_signup_attempt("unavailable")
        raise
    except DatabaseError:
        record_signup_attempt("error")
        raise
    record_signup_attempt("created")

    run_in_background(dispatch_confirmation(mailer, stored, data.language))
    return stored
