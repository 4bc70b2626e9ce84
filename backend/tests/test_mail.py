"""
Tests for the confirmation email body and the dispatch outcomes.
"""

import asyncio
import smtplib

import pytest

from signup_api.core.config import Settings
from signup_api.services.mail_service import (
    Mailer,
    build_confirmation_text,
    dispatch_confirmation,
    drain_background_tasks,
    run_in_background,
)

from tests.conftest import RecordingMailer

RECORD = {
    "id": 7,
    "firstname": "Ada",
    "lastname": "Lovelace",
    "email": "ada@example.com",
    "diet": None,
    "alcohol": True,
    "table_group": "Engines",
    "avec": None,
    "organisation": "Analytical Society",
    "gift": False,
    "alumni": True,
    "sillis": False,
}


def test_english_body_lists_submission():
    body = build_confirmation_text(RECORD, "en")
    assert body.startswith("Thank you for signing up")
    assert "Name: Ada Lovelace" in body
    assert "Dietary restrictions: -" in body
    assert "Alcohol: Yes" in body
    assert "Table group: Engines" in body
    assert "Alumni: Yes" in body
    assert "Sillis: No" in body


def test_finnish_body():
    body = build_confirmation_text(RECORD, "fi")
    assert body.startswith("Kiitos ilmoittautumisesta")
    assert "Alkoholia: Kyllä" in body
    assert "Jätän tervehdyksen: Ei" in body


@pytest.mark.asyncio
async def test_dispatch_sends_to_participant():
    mailer = RecordingMailer()
    assert await dispatch_confirmation(mailer, RECORD, "en") is True
    assert mailer.sent[0]["to"] == "ada@example.com"
    assert mailer.sent[0]["subject"] == "Sign up received"


@pytest.mark.asyncio
async def test_dispatch_skipped_without_relay():
    mailer = Mailer(Settings(SMTP_HOST=None))
    assert not mailer.enabled
    assert await dispatch_confirmation(mailer, RECORD) is False


@pytest.mark.asyncio
async def test_dispatch_skipped_when_disabled():
    mailer = Mailer(Settings(SMTP_HOST="smtp.test", MAIL_ENABLED=False))
    assert await dispatch_confirmation(mailer, RECORD) is False


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [smtplib.SMTPRecipientsRefused({}), ConnectionRefusedError("relay down"), TimeoutError()],
)
async def test_dispatch_failure_is_swallowed_and_reported(error):
    mailer = RecordingMailer(error=error)
    assert await dispatch_confirmation(mailer, RECORD) is False


@pytest.mark.asyncio
async def test_background_task_runs_without_being_awaited():
    done = asyncio.Event()

    async def work():
        done.set()

    run_in_background(work())
    await drain_background_tasks()
    assert done.is_set()
