"""
Tests for the revoked-token registry
"""
import pytest
import redis

from config import Settings
from services.errors import AppError
from services.token_blacklist import TokenBlacklist


def test_memory_revocation():
    blacklist = TokenBlacklist()
    assert blacklist.is_revoked("jti-1") is False

    blacklist.revoke("jti-1", 60)
    assert blacklist.is_revoked("jti-1") is True
    assert blacklist.is_revoked("jti-2") is False


def test_missing_jti_is_never_revoked():
    blacklist = TokenBlacklist()
    blacklist.revoke(None, 60)
    assert blacklist.is_revoked(None) is False
    assert blacklist.is_revoked("") is False


def test_memory_entries_expire(monkeypatch):
    now = [1000.0]
    monkeypatch.setattr("services.token_blacklist.time.time", lambda: now[0])

    blacklist = TokenBlacklist()
    blacklist.revoke("jti-1", 30)
    blacklist.revoke("jti-2", 300)

    now[0] += 31
    assert blacklist.is_revoked("jti-1") is False
    assert blacklist.is_revoked("jti-2") is True
    assert blacklist.purge_expired() == 0

    now[0] += 300
    assert blacklist.purge_expired() == 1


def test_redis_backend_uses_blacklist_keys(mock_redis):
    blacklist = TokenBlacklist(redis_client=mock_redis)
    blacklist.revoke("jti-1", 120)

    mock_redis.setex.assert_called_once_with("blacklist:jti-1", 120, "1")
    assert blacklist.is_revoked("jti-1") is True
    assert blacklist.is_revoked("jti-2") is False


def test_redis_write_failure_falls_back_to_memory(mock_redis):
    mock_redis.setex.side_effect = redis.ConnectionError("down")
    blacklist = TokenBlacklist(redis_client=mock_redis)

    blacklist.revoke("jti-1", 120)
    assert blacklist.is_revoked("jti-1") is True


def test_redis_read_failure_fails_closed_in_production(mock_redis):
    mock_redis.exists.side_effect = redis.ConnectionError("down")

    open_blacklist = TokenBlacklist(redis_client=mock_redis, fail_closed=False)
    assert open_blacklist.is_revoked("jti-1") is False

    closed_blacklist = TokenBlacklist(redis_client=mock_redis, fail_closed=True)
    with pytest.raises(AppError) as exc:
        closed_blacklist.is_revoked("jti-1")
    assert exc.value.status_code == 503


def test_from_settings_memory_backend():
    blacklist = TokenBlacklist.from_settings(Settings(token_blacklist_backend="memory"))
    assert blacklist.redis_client is None
    assert blacklist.fail_closed is False


def test_from_settings_unreachable_redis(monkeypatch):
    monkeypatch.setattr("services.token_blacklist.create_redis_client", lambda settings: None)
    blacklist = TokenBlacklist.from_settings(Settings(environment="production", token_blacklist_backend="redis"))
    assert blacklist.redis_client is None
    assert blacklist.fail_closed is True
