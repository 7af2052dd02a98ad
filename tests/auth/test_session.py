"""Tests for SessionManager - token lookup and sliding expiry."""

from datetime import timedelta
from unittest.mock import Mock

import pytest

from auth.session import SessionManager
from auth.config import AuthConfig
from auth.exceptions import SessionExpiredError
from clients.valkey_client import ValkeyClient
from utils.timezone import now_utc


@pytest.fixture
def store() -> dict:
    return {}


@pytest.fixture
def valkey(store):
    """ValkeyClient stand-in backed by a dict."""
    mock = Mock(spec=ValkeyClient)
    mock.set_json.side_effect = lambda key, value, expire_seconds=None: store.__setitem__(key, value)
    mock.get_json.side_effect = lambda key: store.get(key)
    mock.delete.side_effect = lambda key: store.pop(key, None) is not None
    return mock


@pytest.fixture
def config():
    return AuthConfig(session_expiry_hours=48, session_extend_threshold_hours=24)


@pytest.fixture
def session_manager(valkey, config):
    return SessionManager(valkey, config)


def _write_session(store, token, user_id, expires_in: timedelta):
    now = now_utc()
    store[f"session:{token}"] = {
        "user_id": str(user_id),
        "created_at": now.isoformat(),
        "expires_at": (now + expires_in).isoformat(),
        "last_activity_at": now.isoformat(),
    }


class TestValidateSession:

    def test_valid_session_returns_user(self, session_manager, store, test_user_id):
        _write_session(store, "tok", test_user_id, timedelta(hours=40))

        session = session_manager.validate_session("tok")

        assert session.user_id == test_user_id
        assert session.token == "tok"

    def test_unknown_token_raises(self, session_manager):
        with pytest.raises(SessionExpiredError):
            session_manager.validate_session("nope")

    def test_expired_session_is_deleted(self, session_manager, store, test_user_id):
        _write_session(store, "old", test_user_id, timedelta(minutes=-1))

        with pytest.raises(SessionExpiredError):
            session_manager.validate_session("old")

        assert "session:old" not in store

    def test_extends_when_close_to_expiry(self, session_manager, store, test_user_id):
        _write_session(store, "tok", test_user_id, timedelta(hours=1))

        session = session_manager.validate_session("tok")

        assert session.expires_at - now_utc() > timedelta(hours=47)

    def test_no_extension_with_plenty_of_time_left(self, session_manager, valkey, store, test_user_id):
        _write_session(store, "tok", test_user_id, timedelta(hours=40))

        session_manager.validate_session("tok")

        valkey.set_json.assert_not_called()

    def test_extension_disabled(self, valkey, store, test_user_id):
        manager = SessionManager(valkey, AuthConfig(session_extend_on_activity=False))
        _write_session(store, "tok", test_user_id, timedelta(hours=1))

        manager.validate_session("tok")

        valkey.set_json.assert_not_called()

    def test_extension_ttl_matches_new_expiry(self, session_manager, valkey, store, test_user_id):
        _write_session(store, "tok", test_user_id, timedelta(hours=1))

        session_manager.validate_session("tok")

        ttl = valkey.set_json.call_args.kwargs["expire_seconds"]
        assert 48 * 3600 - 5 <= ttl <= 48 * 3600
