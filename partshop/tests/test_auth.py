"""Tests for admin login sessions."""

import json
from unittest.mock import patch

import pytest

from partshop import auth
from partshop.config import ADMIN_SESSION_KEY, REMEMBER_ME_TTL_SECONDS, SESSION_TTL_SECONDS


class TestLogin:
    """Tests for login and session lifetime."""

    def test_valid_credentials(self, memory_storage):
        user = auth.login("admin", "admin123", memory_storage)
        assert user is not None
        assert user.username == "admin"
        assert json.loads(memory_storage.data[ADMIN_SESSION_KEY])["token"] == user.token

    @pytest.mark.parametrize("username,password", [
        ("admin", "wrong"),
        ("root", "admin123"),
        ("ädmin", "x"),
        ("admin", "pässwörd"),
        ("", ""),
    ])
    def test_invalid_credentials(self, memory_storage, username, password):
        assert auth.login(username, password, memory_storage) is None
        assert ADMIN_SESSION_KEY not in memory_storage.data

    @pytest.mark.parametrize("remember_me,ttl", [(False, SESSION_TTL_SECONDS), (True, REMEMBER_ME_TTL_SECONDS)])
    def test_session_lifetime(self, memory_storage, remember_me, ttl):
        with patch("partshop.auth.time.time", return_value=1000.0):
            user = auth.login("admin", "admin123", memory_storage, remember_me=remember_me)
        assert user.expires_at == 1000.0 + ttl

    def test_tokens_differ_per_login(self, memory_storage):
        first = auth.login("admin", "admin123", memory_storage)
        second = auth.login("admin", "admin123", memory_storage)
        assert first.token != second.token


class TestCurrentUser:
    """Tests for reading and expiring sessions."""

    def test_no_session(self, memory_storage):
        assert auth.get_current_user(memory_storage) is None
        assert not auth.is_authenticated(memory_storage)

    def test_active_session(self, memory_storage):
        user = auth.login("admin", "admin123", memory_storage)
        assert auth.get_current_user(memory_storage) == user
        assert auth.is_authenticated(memory_storage)
        assert auth.is_authenticated(memory_storage, user.token)
        assert not auth.is_authenticated(memory_storage, "forged")

    def test_non_ascii_token_is_rejected(self, memory_storage):
        auth.login("admin", "admin123", memory_storage)
        assert not auth.is_authenticated(memory_storage, "tökén")

    def test_expired_session_is_discarded(self, memory_storage):
        with patch("partshop.auth.time.time", return_value=1000.0):
            auth.login("admin", "admin123", memory_storage)
        with patch("partshop.auth.time.time", return_value=1000.0 + SESSION_TTL_SECONDS + 1):
            assert auth.get_current_user(memory_storage) is None
        assert ADMIN_SESSION_KEY not in memory_storage.data

    @pytest.mark.parametrize("raw", ["garbage", '{"username": "admin"}', "[]"])
    def test_corrupt_session_is_discarded(self, memory_storage, raw):
        memory_storage.write(ADMIN_SESSION_KEY, raw)
        assert auth.get_current_user(memory_storage) is None
        assert ADMIN_SESSION_KEY not in memory_storage.data

    def test_logout(self, memory_storage):
        auth.login("admin", "admin123", memory_storage)
        auth.logout(memory_storage)
        assert not auth.is_authenticated(memory_storage)
