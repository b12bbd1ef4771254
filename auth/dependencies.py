"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication and sessions.

A protected request must carry BOTH:
  1. Authorization: Bearer <token> header
  2. The session cookie, whose identity slot holds the same token

validate() walks the check in a fixed order:
  read header      -- missing/malformed is not fatal yet, carried as None
  read identity    -- absent (never logged in, logged out, expired) -> NotLoggedIn
                      cookie authenticated but unreadable -> SessionDecodeError
  compare tokens   -- str(identity.token) != header token -> InvalidToken

It never writes to the session, so running it twice gives the same answer.
require_login() is the Depends() wrapper; rejections raise before the route
handler or any store is reached.

Layer rule: no imports from api/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging

from fastapi import Request

from auth.models import LoggedIdentity
from auth.session import SessionState, read_session
from auth.tokens import parse_bearer
from core.errors import InvalidToken, NotLoggedIn

logger = logging.getLogger("taskboard.auth")


def validate(request: Request) -> LoggedIdentity:
    """Accept the request if the bearer token matches the session identity.

    Returns the stored LoggedIdentity; the request itself passes through
    unmodified.
    """
    bearer = parse_bearer(request.headers.get("Authorization"))

    identity = read_session(request).identity
    if identity is None:
        logger.info("Rejected %s %s: not logged in", request.method, request.url.path)
        raise NotLoggedIn()

    if bearer != str(identity.token):
        logger.info("Rejected %s %s: token mismatch for user %d", request.method, request.url.path, identity.id)
        raise InvalidToken()
    return identity


def require_login(request: Request) -> LoggedIdentity:
    """Require a logged-in caller.

    Use as a FastAPI dependency:
        @router.delete("/logout")
        def route(identity: LoggedIdentity = Depends(require_login)): ...
    """
    return validate(request)


def get_session(request: Request) -> SessionState:
    """The request's session for reading and in-place updates.

    Raises SessionDecodeError when the cookie could not be read back.
    """
    return read_session(request)
