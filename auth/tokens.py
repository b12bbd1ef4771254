"""
auth/tokens.py -- Login token derivation, login and logout.

Security design decisions:
  The token is a 64-bit unsigned integer derived from the full Account record
  (id, username, password). It is NOT a secret and NOT a capability on its
  own: protected routes accept it only when it equals the token stored in the
  caller's encrypted session cookie (see auth/dependencies.py). The cookie's
  authenticated encryption is the trust anchor; the token binds the bearer
  header to that cookie.

  Derivation: keyless BLAKE2b over a JSON array of the fields, lower 8 bytes
  of a 16-byte digest read as little-endian. Nothing here relies on BLAKE2b
  being cryptographic; it is used as a stable 64-bit hash, the same role a
  non-cryptographic hash would fill. JSON encoding keeps field
  boundaries unambiguous ("ab" + "c" never collides with "a" + "bc"). The
  value is stable across processes and platforms, unlike builtins.hash().

  Login failures raise one generic LoginFailed for both unknown usernames and
  wrong passwords.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import hashlib
import json
import logging
from typing import TYPE_CHECKING

from auth.models import Account, LoggedIdentity
from core.errors import LoginFailed

if TYPE_CHECKING:
    from auth.session import SessionState
    from auth.store import AccountStore

logger = logging.getLogger("taskboard.auth")


# ---------------------------------------------------------------------------
# Token issuer
# ---------------------------------------------------------------------------


def _hash64(data: bytes) -> int:
    """Return a 64-bit integer derived from a BLAKE2b hash."""
    h = hashlib.blake2b(data, digest_size=16).digest()
    return int.from_bytes(h[8:], "little", signed=False)


def issue_token(account: Account) -> int:
    """Return the login token for an account. Pure and total."""
    payload = json.dumps([account.id, account.username, account.password], ensure_ascii=False).encode("utf-8")
    return _hash64(payload)


def parse_bearer(header_value: str | None) -> str | None:
    """Extract the raw token from an ``Authorization: Bearer <token>`` value.

    Returns None for a missing or malformed header. The scheme match is
    case-insensitive; the token itself is returned verbatim.
    """
    if not header_value:
        return None
    scheme, _, token = header_value.partition(" ")
    if scheme.lower() != "bearer":
        return None
    token = token.strip()
    return token or None


# ---------------------------------------------------------------------------
# Login / logout
# ---------------------------------------------------------------------------


def log_in(store: AccountStore, session: SessionState, username: str, password: str) -> LoggedIdentity:
    """Authenticate and bind the new identity into the session.

    Raises LoginFailed without touching the session when no account matches.
    """
    account = store.find_by_credentials(username, password)
    if account is None:
        logger.info("Login failed for username=%r", username)
        raise LoginFailed()
    identity = LoggedIdentity.from_account(account, issue_token(account))
    session.identity = identity
    logger.info("User %d logged in", account.id)
    return identity


def log_out(session: SessionState) -> None:
    """Clear the identity slot. Safe to call when nobody is logged in."""
    session.identity = None
