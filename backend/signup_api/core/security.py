"""
Trust boundaries: the full participant dump and the invitation code.

HTTP Basic credentials are compared in constant time against ADMIN_USERNAME
and ADMIN_PASSWORD. With no admin credentials configured nobody gets in,
except through ADMIN_AUTH_BYPASS in the development environment.

A submission only counts as invited when it carries the configured
INVITE_CODE; with no code configured nobody is treated as invited.
"""

import secrets
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from signup_api.core.config import Settings, get_settings
from signup_api.core.logging import get_logger

logger = get_logger(__name__)

basic_auth = HTTPBasic(auto_error=False, realm="participants")

CHALLENGE = {"WWW-Authenticate": 'Basic realm="participants"'}


def _matches(given: str, expected: Optional[str]) -> bool:
    if not expected:
        return False
    return secrets.compare_digest(given.encode("utf-8"), expected.encode("utf-8"))


def require_admin(
    credentials: Optional[HTTPBasicCredentials] = Depends(basic_auth),
    settings: Settings = Depends(get_settings),
) -> str:
    """Return the admin username, or raise 401 with a Basic challenge."""
    if settings.ADMIN_AUTH_BYPASS and settings.ENVIRONMENT == "development":
        logger.warning("admin_auth_bypassed")
        return "development"

    if credentials is not None:
        # Evaluate both comparisons so timing does not reveal which one failed
        user_ok = _matches(credentials.username, settings.ADMIN_USERNAME)
        pass_ok = _matches(credentials.password, settings.ADMIN_PASSWORD)
        if user_ok and pass_ok:
            return credentials.username

    logger.warning(
        "admin_auth_failed",
        username=credentials.username if credentials else None,
    )
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Access denied",
        headers=CHALLENGE,
    )


def invite_is_valid(code: Optional[str], settings: Settings) -> bool:
    """Whether `code` matches the configured invitation code."""
    if code is None:
        return False
    return _matches(code, settings.INVITE_CODE)
