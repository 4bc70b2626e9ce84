"""
Window event publisher: tells connected clients the moment a signup window opens.

Each subscriber gets its own session holding at most two one-shot timers
(guest, other) computed from its own subscribe time. A fired timer drops one
event into the session's queue; the SSE generator drains the queue. Sessions
live in a handle table keyed by session id, and unsubscribing cancels exactly
that session's timers.
"""

import asyncio
import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import AsyncIterator, Awaitable, Callable, Optional

from signup_api.core.logging import get_logger
from signup_api.core.metrics import record_window_notification, window_subscribers
from signup_api.services.schedule import Category, WindowSchedule

logger = get_logger(__name__)

# Wire payload per category, as the signup page expects it
EVENT_PAYLOADS = {
    Category.GUEST: {"guest": True},
    Category.OTHER: {"others": True},
}


@dataclass
class SubscriberSession:
    id: str
    queue: asyncio.Queue = field(default_factory=asyncio.Queue)
    timers: dict[Category, asyncio.TimerHandle] = field(default_factory=dict)
    alive: bool = True

    @property
    def pending(self) -> set[Category]:
        return set(self.timers)


def format_sse(payload: dict) -> str:
    return f"data: {json.dumps(payload)}\n\n"


class WindowEventPublisher:
    def __init__(self, schedule: WindowSchedule, keepalive_seconds: float = 15.0):
        self._schedule = schedule
        self._keepalive_seconds = keepalive_seconds
        self._sessions: dict[str, SubscriberSession] = {}

    @property
    def subscriber_count(self) -> int:
        return len(self._sessions)

    def get(self, session_id: str) -> Optional[SubscriberSession]:
        return self._sessions.get(session_id)

    def subscribe(self, now: Optional[datetime] = None) -> SubscriberSession:
        """Register a subscriber and arm a timer for every window still ahead of it."""
        now = now or datetime.now(timezone.utc)
        loop = asyncio.get_running_loop()
        session = SubscriberSession(id=uuid.uuid4().hex)

        closes_at = self._schedule.signup_closes_at
        if closes_at is not None and now < closes_at:
            for category in Category:
                opens_at = self._schedule.opens_at(category)
                if opens_at is None:
                    continue
                delay = (opens_at - now).total_seconds()
                if delay <= 0:
                    continue
                session.timers[category] = loop.call_later(
                    delay, self._fire, session.id, category
                )

        self._sessions[session.id] = session
        window_subscribers.set(len(self._sessions))
        logger.info(
            "window_subscriber_added",
            session_id=session.id,
            armed=sorted(c.value for c in session.pending),
            subscribers=len(self._sessions),
        )
        return session

    def unsubscribe(self, session_id: str) -> None:
        """
        Cancel the session's pending timers, end its stream and forget it.
        Safe to call more than once.
        """
        session = self._sessions.pop(session_id, None)
        if session is None:
            return
        session.alive = False
        # Wakes a stream blocked on the queue so it ends now, not at the next keepalive
        session.queue.put_nowait(None)
        cancelled = []
        for category, handle in session.timers.items():
            handle.cancel()
            cancelled.append(category.value)
        session.timers.clear()
        window_subscribers.set(len(self._sessions))
        logger.info(
            "window_subscriber_removed",
            session_id=session_id,
            cancelled=sorted(cancelled),
            subscribers=len(self._sessions),
        )

    def close(self) -> None:
        for session_id in list(self._sessions):
            self.unsubscribe(session_id)

    def _fire(self, session_id: str, category: Category) -> None:
        session = self._sessions.get(session_id)
        if session is None or not session.alive:
            return
        session.timers.pop(category, None)
        session.queue.put_nowait(EVENT_PAYLOADS[category])
        record_window_notification(category.value)
        logger.info("window_timer_fired", session_id=session_id, category=category.value)

    async def stream(
        self,
        session: SubscriberSession,
        is_disconnected: Callable[[], Awaitable[bool]],
    ) -> AsyncIterator[str]:
        """
        Yield SSE frames for one session until the client goes away.

        A keepalive comment is written after every quiet interval; that is also
        when the transport's disconnect flag is checked. Cancellation by the
        server and failed writes both end up in the finally block.
        """
        try:
            while session.alive:
                try:
                    payload = await asyncio.wait_for(
                        session.queue.get(), timeout=self._keepalive_seconds
                    )
                except asyncio.TimeoutError:
                    if await is_disconnected():
                        break
                    yield ": keepalive\n\n"
                    continue
                if payload is None:
                    break
                yield format_sse(payload)
        finally:
            self.unsubscribe(session.id)
