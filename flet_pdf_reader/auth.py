"""
Session cookie handling.

The session value is the JSON user record stored by the login flow in the
``user_session`` cookie. Verifying it is the login service's job; here it
only resolves who is reading.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from http.cookies import CookieError, SimpleCookie
from typing import Optional
from urllib.parse import unquote

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserSession:
    """The signed-in reader."""

    user_id: str
    email: str = ""
    name: Optional[str] = None
    picture: Optional[str] = None


def parse_session_cookie(value: Optional[str]) -> Optional[UserSession]:
    """Resolve the reader from a session cookie value.

    Returns:
        The session, or None for anonymous readers (missing, malformed, or
        id-less values)
    """
    if not value:
        return None

    text = value.strip()
    if text.startswith("%7B") or text.startswith("%7b"):
        text = unquote(text)
    try:
        record = json.loads(text)
    except ValueError:
        logger.warning("Ignoring malformed session cookie")
        return None

    if not isinstance(record, dict) or record.get("id") in (None, ""):
        logger.warning("Ignoring session cookie without a user id")
        return None

    return UserSession(
        user_id=str(record["id"]),
        email=str(record.get("email") or ""),
        name=record.get("name"),
        picture=record.get("picture"),
    )


def session_from_cookie_header(
    header: Optional[str], name: str = "user_session"
) -> Optional[UserSession]:
    """Resolve the reader from a full ``Cookie`` header."""
    if not header:
        return None
    cookies = SimpleCookie()
    try:
        cookies.load(header)
    except CookieError:
        logger.warning("Ignoring unparseable cookie header")
        return None
    morsel = cookies.get(name)
    return parse_session_cookie(morsel.value if morsel else None)
