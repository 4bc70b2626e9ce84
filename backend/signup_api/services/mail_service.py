"""
Confirmation email for accepted signups.

Sending is fire-and-forget: the route schedules `dispatch_confirmation` as a
background task and answers the submitter immediately. SMTP runs in a worker
thread; any failure is logged and counted, never raised to the request and
never retried.
"""

import asyncio
import smtplib
from email.mime.text import MIMEText
from typing import Any, Coroutine, Optional

from signup_api.core.config import Settings
from signup_api.core.logging import get_logger
from signup_api.core.metrics import record_email_dispatch

logger = get_logger(__name__)

SUBJECTS = {
    "fi": "Ilmoittautuminen vastaanotettu",
    "en": "Sign up received",
}


def _yes_no(value: bool, language: str) -> str:
    if language == "fi":
        return "Kyllä" if value else "Ei"
    return "Yes" if value else "No"


def _show(value: Optional[str]) -> str:
    return value if value else "-"


def build_confirmation_text(record: dict, language: str = "en") -> str:
    """Plain-text summary of what the participant submitted."""
    def yn(flag: str) -> str:
        return _yes_no(bool(record.get(flag)), language)

    if language == "fi":
        lines = [
            "Kiitos ilmoittautumisesta",
            "",
            "Ilmoittauduit seuraavin tiedoin:",
            "",
            f"Nimi: {record['firstname']} {record['lastname']}",
            f"Sähköposti: {record['email']}",
            f"Erityisruokavaliot: {_show(record.get('diet'))}",
            f"Alkoholia: {yn('alcohol')}",
            f"Pöytäryhmä: {_show(record.get('table_group'))}",
            f"Avec: {_show(record.get('avec'))}",
            f"Edustamani taho: {_show(record.get('organisation'))}",
            f"Jätän tervehdyksen: {yn('gift')}",
            f"Alumni: {yn('alumni')}",
            f"Sillis: {yn('sillis')}",
        ]
    else:
        lines = [
            "Thank you for signing up",
            "",
            "You have registered with the following information:",
            "",
            f"Name: {record['firstname']} {record['lastname']}",
            f"Email: {record['email']}",
            f"Dietary restrictions: {_show(record.get('diet'))}",
            f"Alcohol: {yn('alcohol')}",
            f"Table group: {_show(record.get('table_group'))}",
            f"Avec: {_show(record.get('avec'))}",
            f"Represented organisation: {_show(record.get('organisation'))}",
            f"I shall leave a salute: {yn('gift')}",
            f"Alumni: {yn('alumni')}",
            f"Sillis: {yn('sillis')}",
        ]
    return "\n".join(lines)


class Mailer:
    """Sends plain-text mail through the configured SMTP relay."""

    def __init__(self, settings: Settings):
        self._settings = settings

    @property
    def enabled(self) -> bool:
        return self._settings.MAIL_ENABLED and bool(self._settings.SMTP_HOST)

    def send(self, to_email: str, subject: str, body: str) -> None:
        settings = self._settings
        msg = MIMEText(body, "plain", "utf-8")
        msg["Subject"] = subject
        msg["From"] = settings.MAIL_FROM
        msg["To"] = to_email

        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=settings.SMTP_TIMEOUT_SECONDS) as server:
            if settings.SMTP_STARTTLS:
                server.starttls()
            if settings.SMTP_USER and settings.SMTP_PASSWORD:
                server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
            server.send_message(msg)


async def dispatch_confirmation(mailer: Mailer, record: dict, language: str = "en") -> bool:
    """
    Send the confirmation for a stored participant.
    Returns True if sent, False if skipped or failed.
    """
    if not mailer.enabled:
        logger.debug("confirmation_email_skipped", participant_id=record.get("id"))
        record_email_dispatch("skipped")
        return False

    subject = SUBJECTS.get(language, SUBJECTS["en"])
    body = build_confirmation_text(record, language)
    try:
        await asyncio.to_thread(mailer.send, record["email"], subject, body)
    except (smtplib.SMTPException, OSError) as e:
        logger.error(
            "confirmation_email_failed",
            participant_id=record.get("id"),
            error=str(e),
        )
        record_email_dispatch("failed")
        return False

    logger.info("confirmation_email_sent", participant_id=record.get("id"))
    record_email_dispatch("sent")
    return True


_background_tasks: set[asyncio.Task] = set()


def run_in_background(coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
    """Start a coroutine without awaiting it; keep a reference until it finishes."""

    def _done(task: asyncio.Task) -> None:
        _background_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("background_task_failed", error=str(exc), exc_info=exc)

    task = asyncio.create_task(coro)
    _background_tasks.add(task)
    task.add_done_callback(_done)
    return task


async def drain_background_tasks() -> None:
    """Wait for in-flight background work, used on shutdown."""
    if _background_tasks:
        await asyncio.gather(*list(_background_tasks), return_exceptions=True)
