"""
API request and response models for Taskboard REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
tasks/models.py, which own the internal domain representation. Route handlers
map between the two.

Request bodies are "commands". Pydantic only checks their SHAPE (fields
present, right JSON types). The field rules -- blank titles, short or
whitespace-bearing usernames and passwords -- live in each command's check()
method and are run by api/extract.py after decoding, stopping at the first
rule that fails. Handlers receive commands that already passed check().
"""

from __future__ import annotations

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from auth.models import Account, LoggedIdentity
from core.errors import (
    MIN_PASSWORD_LENGTH,
    MIN_USERNAME_LENGTH,
    EmptyPassword,
    EmptyTitle,
    EmptyUsername,
    PasswordInvalidCharacter,
    PasswordLength,
    UsernameInvalidCharacter,
    UsernameLength,
)
from tasks.models import Task

# ---------------------------------------------------------------------------
# Field rules
# ---------------------------------------------------------------------------


def _has_whitespace(value: str) -> bool:
    return any(ch.isspace() for ch in value)


def check_credentials(username: str, password: str) -> None:
    """Username rules, then password rules. Raises the first violation."""
    if not username.strip():
        raise EmptyUsername()
    if len(username) < MIN_USERNAME_LENGTH:
        raise UsernameLength()
    if _has_whitespace(username):
        raise UsernameInvalidCharacter()
    if not password.strip():
        raise EmptyPassword()
    if len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordLength()
    if _has_whitespace(password):
        raise PasswordInvalidCharacter()


def check_title(title: str) -> None:
    if not title.strip():
        raise EmptyTitle()


# ---------------------------------------------------------------------------
# Commands (request bodies)
# ---------------------------------------------------------------------------


class Command(BaseModel):
    """Base for request bodies decoded by api.extract.validated_body()."""

    model_config = ConfigDict(populate_by_name=True)

    def check(self) -> None:
        """Run the semantic rules. Default: none."""


class RegisterUser(Command):
    """Request body for POST /users/register.

    Accepts `username`/`password` or the older `valid_username`/`valid_password`.
    """

    username: str = Field(validation_alias=AliasChoices("username", "valid_username"))
    password: str = Field(validation_alias=AliasChoices("password", "valid_password"))

    def check(self) -> None:
        check_credentials(self.username, self.password)


class UpdateUser(Command):
    """Request body for PUT /users."""

    id: int
    username: str = Field(validation_alias=AliasChoices("username", "valid_username"))
    password: str = Field(validation_alias=AliasChoices("password", "valid_password"))

    def check(self) -> None:
        check_credentials(self.username, self.password)


class LoginUser(Command):
    """Request body for POST /login. Only the shape is checked; the store decides."""

    username: str
    password: str


class InsertTask(Command):
    """Request body for POST /tasks."""

    non_empty_title: str
    details: str = ""

    def check(self) -> None:
        check_title(self.non_empty_title)


class UpdateTask(Command):
    """Request body for PUT /tasks."""

    id: int
    new_title: str
    details: str = ""

    def check(self) -> None:
        check_title(self.new_title)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class AccountResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    password: str

    @classmethod
    def from_account(cls, account: Account) -> "AccountResponse":
        return cls(id=account.id, username=account.username, password=account.password)


class LoggedIdentityResponse(BaseModel):
    """Response body for POST /login. token is also sent as X-Auth-Token."""

    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    password: str
    token: int

    @classmethod
    def from_identity(cls, identity: LoggedIdentity) -> "LoggedIdentityResponse":
        return cls(id=identity.id, username=identity.username, password=identity.password, token=identity.token)


class TaskResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    details: str

    @classmethod
    def from_task(cls, task: Task) -> "TaskResponse":
        return cls(id=task.id, title=task.title, details=task.details)


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
