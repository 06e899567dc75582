"""
Authentication middleware for bouncer handlers.
Clients send `Authorization: Bearer <base64(username)>`.
"""

import base64
import binascii
import functools
import hmac
import logging
import os

from common.request import header

logger = logging.getLogger(__name__)

JOCKEY_SECRET = os.environ.get("JOCKEY_SECRET", "")

ADMIN_MARKER = "indeed"


def _decode_credentials(auth_header: str) -> str:
    """Return the username carried by the header, or "" if there is none."""
    parts = auth_header.split()
    if len(parts) != 2:
        logger.warning("Authorization header was not what was expected")
        return ""

    scheme, token = parts[0].lower(), parts[1]
    if scheme not in ("bearer", "basic"):
        logger.warning("Unsupported authorization scheme %s", parts[0])
        return ""

    try:
        decoded = base64.b64decode(token, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        logger.warning("Failed to decode authorization header")
        return ""

    if scheme == "basic":
        decoded = decoded.split(":", 1)[0]
    return decoded.strip()


def is_admin(username: str, secret: str | None = None) -> bool:
    secret = JOCKEY_SECRET if secret is None else secret
    if not secret or not username:
        return False
    return hmac.compare_digest(username.encode("utf-8"), secret.encode("utf-8"))


def auth_middleware(handler):
    """Wrap `handler`, injecting `username` (and `ADMIN` for the jockey) into params."""

    @functools.wraps(handler)
    def wrapper(params: dict, event: dict) -> dict:
        auth_header = header(event, "authorization").strip()
        if not auth_header:
            return handler(params, event)

        username = _decode_credentials(auth_header)
        if not username:
            return handler(params, event)

        params["username"] = username
        if is_admin(username):
            params["ADMIN"] = ADMIN_MARKER
        return handler(params, event)

    return wrapper
