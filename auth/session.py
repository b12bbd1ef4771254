"""
auth/session.py -- The encrypted client-held session cookie.

There is no server-side session table. The whole session travels in one
cookie, sealed with Fernet (AES-128-CBC + HMAC-SHA256, with an embedded
timestamp). Three pieces:

  SessionState  -- the typed payload. One optional field per slot
                   (identity, favorite_task) plus a schema version `v`.
                   Encoded and decoded as a unit.

  SessionCodec  -- seal/open a SessionState. The key is passed to the
                   constructor; nothing here reads configuration.

  SessionCarrierMiddleware -- pure ASGI middleware, same shape as Starlette's
                   SessionMiddleware: opens the cookie into
                   scope["session_state"] on the way in, and re-seals it into
                   Set-Cookie on the way out only when the state changed.

Expiry: the TTL is measured from the Fernet timestamp, i.e. from the last
write. It is checked lazily when the cookie is opened; an expired cookie
reads as an empty session. Unchanged sessions are not re-sealed, so activity
does not extend the window.

Failure policy when opening a cookie:
  bad signature / wrong key / garbage  -> empty session (logged)
  expired                              -> empty session
  authenticates but payload unreadable -> SessionDecodeError, kept in
                                          scope["session_error"] and raised by
                                          read_session() for routes that need
                                          the stored state

Size: a sealed cookie may not exceed MAX_COOKIE_BYTES (4064), or browsers
drop it and the identity with it. Handlers that grow the session do so inside
bounded_session(), which restores the previous slots and raises
SessionTooLarge instead of letting an oversized cookie out.

Schema versions: cookies written by an older schema (v <= SESSION_SCHEMA_VERSION)
are accepted; slots they lack default to None. A newer version is a decode
error.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import base64
import hashlib
import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Literal, Optional

from cryptography.fernet import Fernet, InvalidToken
from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError
from starlette.datastructures import MutableHeaders
from starlette.requests import HTTPConnection
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from auth.models import LoggedIdentity
from core.errors import SessionDecodeError, SessionTooLarge
from tasks.models import Task

logger = logging.getLogger("taskboard.session")

SESSION_SCHEMA_VERSION = 1

_STATE_KEY = "session_state"
_ERROR_KEY = "session_error"
_CARRIER_KEY = "session_carrier"

# Largest "name=value" pair a browser is guaranteed to keep.
MAX_COOKIE_BYTES = 4064


class SessionState(BaseModel):
    """Everything the service remembers about a client between requests."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    v: int = SESSION_SCHEMA_VERSION
    identity: Optional[LoggedIdentity] = None
    favorite_task: Optional[Task] = None

    def is_empty(self) -> bool:
        return self.identity is None and self.favorite_task is None


# ---------------------------------------------------------------------------
# Codec
# ---------------------------------------------------------------------------


def derive_fernet_key(secret_key: str) -> bytes:
    """Stretch an arbitrary-length secret into a Fernet key (32 url-safe b64 bytes)."""
    return base64.urlsafe_b64encode(hashlib.sha256(secret_key.encode("utf-8")).digest())


class SessionCodec:
    """Seal and open SessionState values.

    Usage:
        codec = SessionCodec(settings.secret_key, ttl_seconds=120)
        token = codec.encode(SessionState(identity=identity))
        state = codec.decode(token)   # None when forged or expired
    """

    def __init__(self, secret_key: str, ttl_seconds: int) -> None:
        self._fernet = Fernet(derive_fernet_key(secret_key))
        self.ttl_seconds = ttl_seconds

    def encode(self, state: SessionState, now: int | None = None) -> str:
        payload = state.model_dump_json().encode("utf-8")
        issued_at = int(time.time()) if now is None else now
        return self._fernet.encrypt_at_time(payload, issued_at).decode("ascii")

    def decode(self, token: str, now: int | None = None) -> SessionState | None:
        """Open a sealed session.

        Returns None for anything that does not authenticate or has outlived
        the TTL. Raises SessionDecodeError when the cookie is genuine but its
        payload does not fit the schema.
        """
        raw = token.encode("ascii", errors="ignore")
        try:
            issued_at = self._fernet.extract_timestamp(raw)
            payload = self._fernet.decrypt(raw)
        except InvalidToken:
            logger.warning("Session cookie failed authentication; treating as empty")
            return None

        current = int(time.time()) if now is None else now
        if current - issued_at > self.ttl_seconds:
            logger.info("Session cookie expired (age=%ds ttl=%ds)", current - issued_at, self.ttl_seconds)
            return None

        try:
            state = SessionState.model_validate_json(payload)
        except PydanticValidationError as exc:
            raise SessionDecodeError(detail=str(exc)) from exc
        if state.v > SESSION_SCHEMA_VERSION:
            raise SessionDecodeError(detail=f"unsupported session schema version {state.v}")
        state.v = SESSION_SCHEMA_VERSION
        return state


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------


class SessionCarrierMiddleware:
    """Attach the decoded SessionState to every HTTP request.

    The cookie is rewritten as a whole whenever the state at response time
    differs from what was read. An emptied session expires the cookie.
    """

    def __init__(
        self,
        app: ASGIApp,
        codec: SessionCodec,
        cookie_name: str = "session-cookie",
        path: str = "/",
        same_site: Literal["lax", "strict", "none"] = "lax",
        https_only: bool = False,
    ) -> None:
        self.app = app
        self.codec = codec
        self.cookie_name = cookie_name
        self.path = path
        self.security_flags = "httponly; samesite=" + same_site
        if https_only:
            self.security_flags += "; secure"

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        connection = HTTPConnection(scope)
        raw = connection.cookies.get(self.cookie_name)
        state: SessionState | None = None
        scope[_ERROR_KEY] = None
        scope[_CARRIER_KEY] = self
        if raw:
            try:
                state = self.codec.decode(raw)
            except SessionDecodeError as exc:
                logger.warning("Session cookie payload unreadable: %s", exc.detail)
                scope[_ERROR_KEY] = exc
        scope[_STATE_KEY] = state if state is not None else SessionState()
        initial = scope[_STATE_KEY].model_copy(deep=True)

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                current: SessionState = scope[_STATE_KEY]
                if current != initial:
                    headers = MutableHeaders(scope=message)
                    if current.is_empty():
                        headers.append("Set-Cookie", self._expired_cookie())
                    else:
                        sealed = self.codec.encode(current)
                        if self.fits(sealed):
                            headers.append("Set-Cookie", self._cookie(sealed))
                        else:
                            # Writers go through bounded_session(); reaching this is a bug.
                            # The client keeps its previous cookie.
                            logger.error("Session of %d bytes not written: over the cookie limit", len(sealed))
            await send(message)

        await self.app(scope, receive, send_wrapper)

    def fits(self, sealed: str) -> bool:
        """True if `sealed` is small enough to be stored as this cookie."""
        return len(self.cookie_name) + 1 + len(sealed) <= MAX_COOKIE_BYTES

    def _cookie(self, value: str) -> str:
        return "{name}={value}; path={path}; Max-Age={max_age}; {flags}".format(
            name=self.cookie_name,
            value=value,
            path=self.path,
            max_age=self.codec.ttl_seconds,
            flags=self.security_flags,
        )

    def _expired_cookie(self) -> str:
        return "{name}=null; path={path}; expires=Thu, 01 Jan 1970 00:00:00 GMT; Max-Age=0; {flags}".format(
            name=self.cookie_name,
            path=self.path,
            flags=self.security_flags,
        )


# ---------------------------------------------------------------------------
# Accessors
# ---------------------------------------------------------------------------


def read_session(connection: HTTPConnection) -> SessionState:
    """Return the request's session, raising if the cookie was unreadable."""
    if _STATE_KEY not in connection.scope:
        raise RuntimeError("SessionCarrierMiddleware must be installed to use sessions")
    error = connection.scope.get(_ERROR_KEY)
    if error is not None:
        raise error
    return connection.scope[_STATE_KEY]


def writable_session(connection: HTTPConnection) -> SessionState:
    """Return the request's session for overwriting.

    An unreadable cookie is discarded here: the caller is about to replace
    its contents, so the fresh state is sealed on the way out.
    """
    if _STATE_KEY not in connection.scope:
        raise RuntimeError("SessionCarrierMiddleware must be installed to use sessions")
    connection.scope[_ERROR_KEY] = None
    return connection.scope[_STATE_KEY]


@contextmanager
def bounded_session(connection: HTTPConnection, writable: bool = False) -> Iterator[SessionState]:
    """Yield the session for an update that must still fit in one cookie.

    When the block finishes normally and the sealed result would exceed
    MAX_COOKIE_BYTES, every slot is put back as it was and SessionTooLarge is
    raised. An exception raised inside the block propagates unchanged and
    whatever the block already changed is kept.

        with bounded_session(request) as session:
            toggle_favorite(session, task_id, store)
    """
    session = writable_session(connection) if writable else read_session(connection)
    before = session.model_copy(deep=True)

    yield session

    if session == before or session.is_empty():
        return
    carrier: SessionCarrierMiddleware = connection.scope[_CARRIER_KEY]
    sealed = carrier.codec.encode(session)
    if not carrier.fits(sealed):
        for name in SessionState.model_fields:
            setattr(session, name, getattr(before, name))
        raise SessionTooLarge(detail=f"sealed session is {len(sealed)} bytes, limit {MAX_COOKIE_BYTES}")
