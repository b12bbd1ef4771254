"""
api/extract.py -- Decode-then-validate request bodies.

validated_body(Command) builds a FastAPI dependency that turns the raw body
into a checked command. Steps, strictly in order:

  1. size     -- Content-Length above the limit, or a streamed body that
                 grows past it, is rejected before anything is parsed
                 (PayloadTooLarge, 413)
  2. shape    -- Command.model_validate_json(); any pydantic failure becomes
                 DecodeError (400), never a field-rule error
  3. rules    -- command.check(); the first violated rule is raised (422)

Only a command that survived all three reaches the route handler, so
handlers never re-validate and nothing invalid reaches a store.

FastAPI's own body parsing is bypassed on purpose for these routes: it
reports every field error at once with a 422, while this stage keeps
transport errors (400/413) separate from rule errors and stops at the first.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TypeVar

from fastapi import Request
from pydantic import ValidationError as PydanticValidationError

from api.models import Command
from core.config import get_settings
from core.errors import DecodeError, PayloadTooLarge

C = TypeVar("C", bound=Command)


def decode(command_type: type[C], raw: bytes, max_bytes: int) -> C:
    """Decode and check a complete body. Usable without a request (tests, CLI)."""
    if len(raw) > max_bytes:
        raise PayloadTooLarge(detail=f"{len(raw)} bytes > limit {max_bytes}")
    try:
        command = command_type.model_validate_json(raw)
    except PydanticValidationError as exc:
        raise DecodeError(detail=str(exc)) from exc
    command.check()
    return command


async def read_limited(request: Request, max_bytes: int) -> bytes:
    """Read the request body, refusing to buffer more than max_bytes (+1)."""
    declared = request.headers.get("content-length")
    if declared is not None and declared.isdigit() and int(declared) > max_bytes:
        raise PayloadTooLarge(detail=f"{declared} bytes > limit {max_bytes}")

    chunks: list[bytes] = []
    size = 0
    async for chunk in request.stream():
        size += len(chunk)
        if size > max_bytes:
            raise PayloadTooLarge(detail=f"body exceeds limit {max_bytes}")
        chunks.append(chunk)
    return b"".join(chunks)


def validated_body(command_type: type[C]) -> Callable[[Request], Awaitable[C]]:
    """Return a dependency yielding a checked `command_type` from the request body.

    Use as a FastAPI dependency:
        @router.post("/tasks")
        def route(body: InsertTask = Depends(validated_body(InsertTask))): ...
    """

    async def dependency(request: Request) -> C:
        max_bytes = get_settings().max_body_bytes
        raw = await read_limited(request, max_bytes)
        return decode(command_type, raw, max_bytes)

    dependency.__name__ = f"validated_{command_type.__name__}"
    return dependency
