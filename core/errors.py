"""
core/errors.py -- The single error hierarchy for Taskboard.

Every failure the service can report to a client is an AppError subclass.
Each subclass fixes its HTTP status and a machine-readable code; the message
is the human-readable reason surfaced verbatim to the caller. api/main.py has
one exception handler for AppError that renders the ErrorResponse envelope,
so route handlers, dependencies and stores just raise.

Families:
  Auth        -- NotLoggedIn, InvalidToken (401)
  Login       -- LoginFailed (401, generic -- never says which field was wrong)
  Validation  -- one class per violated rule and field (422)
  Lookup      -- TaskNotFound, UserNotFound, NoneFavorite, TasksEmpty,
                 UsersEmpty (404)
  Transport   -- PayloadTooLarge (413), DecodeError (400)
  Session     -- SessionDecodeError (500): the cookie authenticated but its
                 payload could not be read back; SessionTooLarge (500): the
                 updated session would not fit in one cookie
  Conflict    -- UsernameTaken (409)

Persistence errors are not wrapped: SQLAlchemy exceptions propagate to their
own handler in api/main.py.

Layer rule: core/ is the kernel. No imports from api/, auth/, or tasks/.
"""

from __future__ import annotations

MIN_USERNAME_LENGTH = 3
MIN_PASSWORD_LENGTH = 4


class AppError(Exception):
    """Base class. Subclasses set status_code, code and message."""

    status_code: int = 500
    code: str = "internal_error"
    message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None, detail: str | None = None) -> None:
        if message is not None:
            self.message = message
        self.detail = detail
        super().__init__(self.message)


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class AuthError(AppError):
    status_code = 401


class NotLoggedIn(AuthError):
    code = "not_logged_in"
    message = "User is not logged in!"


class InvalidToken(AuthError):
    code = "invalid_token"
    message = "Invalid authorization token!"


class LoginFailed(AuthError):
    code = "login_failed"
    message = "Failed to login user!"


# ---------------------------------------------------------------------------
# Validation -- first violated rule wins
# ---------------------------------------------------------------------------


class ValidationError(AppError):
    status_code = 422
    code = "validation_error"


class EmptyTitle(ValidationError):
    code = "empty_title"
    message = "`title` field of `Task` cannot be empty!"


class EmptyUsername(ValidationError):
    code = "empty_username"
    message = "`username` field of `User` cannot be empty!"


class UsernameLength(ValidationError):
    code = "username_length"
    message = f"`username` field of `User` must be at least {MIN_USERNAME_LENGTH} characters!"


class UsernameInvalidCharacter(ValidationError):
    code = "username_invalid_character"
    message = "`username` field of `User` cannot contain whitespaces!"


class EmptyPassword(ValidationError):
    code = "empty_password"
    message = "`password` field of `User` cannot be empty!"


class PasswordLength(ValidationError):
    code = "password_length"
    message = f"`password` field of `User` must be at least {MIN_PASSWORD_LENGTH} characters!"


class PasswordInvalidCharacter(ValidationError):
    code = "password_invalid_character"
    message = "`password` field of `User` cannot contain whitespaces!"


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


class LookupFailed(AppError):
    status_code = 404
    code = "not_found"


class TaskNotFound(LookupFailed):
    code = "task_not_found"

    def __init__(self, task_id: int) -> None:
        self.task_id = task_id
        super().__init__(f"Could not find any `Task` for id: `{task_id}`!")


class UserNotFound(LookupFailed):
    code = "user_not_found"

    def __init__(self, user_id: int) -> None:
        self.user_id = user_id
        super().__init__(f"Could not find any `User` for id: `{user_id}`!")


class NoneFavorite(LookupFailed):
    code = "none_favorite"
    message = "You have not favorited any `Task` yet!"


class TasksEmpty(LookupFailed):
    code = "tasks_empty"
    message = "Could not find any `Task`!"


class UsersEmpty(LookupFailed):
    code = "users_empty"
    message = "Could not find any `User`!"


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------


class PayloadTooLarge(AppError):
    status_code = 413
    code = "payload_too_large"
    message = "Request body exceeds the maximum allowed size."


class DecodeError(AppError):
    status_code = 400
    code = "decode_error"
    message = "Request body is not valid JSON for this command."


class SessionDecodeError(AppError):
    status_code = 500
    code = "session_decode_error"
    message = "Session cookie could not be decoded."


class SessionTooLarge(AppError):
    status_code = 500
    code = "session_too_large"
    message = "Session would not fit in the session cookie."


# ---------------------------------------------------------------------------
# Conflicts
# ---------------------------------------------------------------------------


class UsernameTaken(AppError):
    status_code = 409
    code = "conflict"
    message = "A user with that username already exists."
