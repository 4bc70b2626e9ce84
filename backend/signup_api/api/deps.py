"""
Request dependencies. Long-lived collaborators are created in the app
lifespan and stored on app.state; tests swap them via dependency_overrides.
"""

from datetime import datetime, timezone

from fastapi import Request

from signup_api.db.connection import ConnectionKeeper
from signup_api.services.mail_service import Mailer
from signup_api.services.schedule import WindowSchedule
from signup_api.services.window_events import WindowEventPublisher


def get_keeper(request: Request) -> ConnectionKeeper:
    return request.app.state.keeper


def get_schedule(request: Request) -> WindowSchedule:
    return request.app.state.schedule


def get_publisher(request: Request) -> WindowEventPublisher:
    return request.app.state.publisher


def get_mailer(request: Request) -> Mailer:
    return request.app.state.mailer


def get_now() -> datetime:
    return datetime.now(timezone.utc)
