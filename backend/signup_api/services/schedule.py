"""
Signup window schedule and the gate that consults it.

The schedule is three absolute instants read once from settings:

    guest_opens_at    guests (invited participants) may sign up from here
    other_opens_at    everybody else may sign up from here
    signup_closes_at  nobody may sign up from here on

A submission is accepted when  opens_at(category) <= now < signup_closes_at.
The open instant is inclusive, the close instant exclusive. An unset or
unparsable instant keeps the gate closed.
"""

import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from signup_api.core.config import Settings
from signup_api.core.logging import get_logger

logger = get_logger(__name__)


class Category(str, enum.Enum):
    GUEST = "guest"
    OTHER = "other"


@dataclass(frozen=True)
class WindowSchedule:
    guest_opens_at: Optional[datetime] = None
    other_opens_at: Optional[datetime] = None
    signup_closes_at: Optional[datetime] = None

    def opens_at(self, category: Category) -> Optional[datetime]:
        if category is Category.GUEST:
            return self.guest_opens_at
        return self.other_opens_at


def parse_instant(value: Optional[str], name: str = "instant") -> Optional[datetime]:
    """Parse an ISO-8601 instant. Naive values are taken as UTC; bad values become None."""
    if value is None or not value.strip():
        return None
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        logger.warning("schedule_instant_unparsable", setting=name, value=value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def load_schedule(settings: Settings) -> WindowSchedule:
    schedule = WindowSchedule(
        guest_opens_at=parse_instant(settings.GUEST_SIGNUP_OPENS_AT, "GUEST_SIGNUP_OPENS_AT"),
        other_opens_at=parse_instant(settings.OTHER_SIGNUP_OPENS_AT, "OTHER_SIGNUP_OPENS_AT"),
        signup_closes_at=parse_instant(settings.SIGNUP_CLOSES_AT, "SIGNUP_CLOSES_AT"),
    )
    logger.info(
        "schedule_loaded",
        guest_opens_at=_iso(schedule.guest_opens_at),
        other_opens_at=_iso(schedule.other_opens_at),
        signup_closes_at=_iso(schedule.signup_closes_at),
    )
    return schedule


def is_open(schedule: WindowSchedule, category: Category, now: datetime) -> bool:
    """Whether a submission of `category` made at `now` falls inside its window."""
    opens_at = schedule.opens_at(category)
    closes_at = schedule.signup_closes_at
    if opens_at is None or closes_at is None:
        return False
    return opens_at <= now < closes_at


def category_for(invited: bool) -> Category:
    return Category.GUEST if invited else Category.OTHER


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None
