"""
tests/test_session_codec.py -- Unit tests for the encrypted session codec.

Covers:
  - encode/decode of a full state (identity + favorite)
  - TTL measured from the seal time, boundary inclusive
  - forged, tampered and foreign-key cookies read as "no session"
  - genuine cookies with unreadable payloads raise SessionDecodeError
  - older schema payloads load with missing slots defaulted
"""

from __future__ import annotations

import pytest
from cryptography.fernet import Fernet

from auth.models import LoggedIdentity
from auth.session import SESSION_SCHEMA_VERSION, SessionCodec, SessionState, derive_fernet_key
from core.errors import SessionDecodeError
from tasks.models import Task

SECRET = "x" * 48
TTL = 120
T0 = 1_700_000_000


@pytest.fixture
def codec() -> SessionCodec:
    return SessionCodec(SECRET, ttl_seconds=TTL)


def _state() -> SessionState:
    return SessionState(
        identity=LoggedIdentity(id=1, username="yusuke", password="toguro", token=987654321),
        favorite_task=Task(id=42, title="Defeat Toguro", details="Dark Tournament"),
    )


def _seal_raw(payload: bytes, at: int = T0) -> str:
    return Fernet(derive_fernet_key(SECRET)).encrypt_at_time(payload, at).decode("ascii")


class TestSessionCodec:
    def test_decode_returns_what_was_encoded(self, codec: SessionCodec) -> None:
        state = _state()
        assert codec.decode(codec.encode(state, now=T0), now=T0 + 1) == state

    def test_cookie_is_opaque(self, codec: SessionCodec) -> None:
        token = codec.encode(_state(), now=T0)
        assert "toguro" not in token
        assert "yusuke" not in token

    def test_expired_cookie_reads_as_none(self, codec: SessionCodec) -> None:
        token = codec.encode(_state(), now=T0)
        assert codec.decode(token, now=T0 + TTL + 1) is None

    def test_cookie_valid_at_exact_ttl(self, codec: SessionCodec) -> None:
        token = codec.encode(_state(), now=T0)
        assert codec.decode(token, now=T0 + TTL) is not None

    def test_tampered_cookie_reads_as_none(self, codec: SessionCodec) -> None:
        token = codec.encode(_state(), now=T0)
        flipped = token[:20] + ("A" if token[20] != "A" else "B") + token[21:]
        assert codec.decode(flipped, now=T0) is None

    def test_other_key_reads_as_none(self, codec: SessionCodec) -> None:
        other = SessionCodec("y" * 48, ttl_seconds=TTL)
        assert codec.decode(other.encode(_state(), now=T0), now=T0) is None

    def test_garbage_reads_as_none(self, codec: SessionCodec) -> None:
        assert codec.decode("not-a-session", now=T0) is None

    def test_unreadable_payload_raises(self, codec: SessionCodec) -> None:
        with pytest.raises(SessionDecodeError):
            codec.decode(_seal_raw(b"not json"), now=T0)

    def test_wrong_slot_shape_raises(self, codec: SessionCodec) -> None:
        with pytest.raises(SessionDecodeError):
            codec.decode(_seal_raw(b'{"v": 1, "identity": {"id": "abc"}}'), now=T0)

    def test_newer_schema_version_raises(self, codec: SessionCodec) -> None:
        payload = ('{"v": %d}' % (SESSION_SCHEMA_VERSION + 1)).encode()
        with pytest.raises(SessionDecodeError):
            codec.decode(_seal_raw(payload), now=T0)

    def test_missing_slots_default_to_empty(self, codec: SessionCodec) -> None:
        state = codec.decode(_seal_raw(b'{"v": 0}'), now=T0)
        assert state is not None
        assert state.is_empty()
        assert state.v == SESSION_SCHEMA_VERSION

    def test_unknown_slots_are_ignored(self, codec: SessionCodec) -> None:
        state = codec.decode(_seal_raw(b'{"v": 1, "theme": "dark"}'), now=T0)
        assert state == SessionState()


class TestSessionState:
    def test_empty_by_default(self) -> None:
        assert SessionState().is_empty()

    def test_favorite_alone_is_not_empty(self) -> None:
        assert not SessionState(favorite_task=Task(id=1, title="t", details="")).is_empty()
