"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in tasks/models.py -- dataclasses own domain shape; stores and routes do the
work.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Account:
    """A registered user.

    password is stored and compared as given -- this service does not hash
    credentials. Field rules (non-empty, no whitespace, minimum lengths) are
    enforced by the request extractor before an Account is ever built.
    """

    username: str
    password: str
    id: int | None = None


@dataclass
class LoggedIdentity:
    """An Account plus the token issued for it at login.

    Lives only inside the session cookie. token is echoed back by clients in
    the Authorization header and must match this value for protected routes.
    """

    id: int
    username: str
    password: str
    token: int

    @classmethod
    def from_account(cls, account: Account, token: int) -> "LoggedIdentity":
        return cls(id=account.id, username=account.username, password=account.password, token=token)
