"""Tests for the namespaced local storage."""

from unittest.mock import MagicMock

import pytest
import redis

from zenmedix.core.exceptions import StorageUnavailableError
from zenmedix.core.redis_client import LocalStorage


def test_storage_get_json():
    """Test LocalStorage get_json method."""
    mock_redis = MagicMock()
    storage = LocalStorage(redis_client=mock_redis, namespace="zm")

    # Missing key
    mock_redis.get.return_value = None
    assert storage.get_json("backup_info") is None
    mock_redis.get.assert_called_once_with("zm:backup_info")

    # Stored value
    mock_redis.reset_mock()
    mock_redis.get.return_value = '{"lastBackup": "2025-03-10T15:00:00", "keysBackedUp": 4}'
    assert storage.get_json("backup_info") == {
        "lastBackup": "2025-03-10T15:00:00",
        "keysBackedUp": 4,
    }

    # Corrupt value
    mock_redis.get.return_value = "not json"
    assert storage.get_json("backup_info") is None


def test_storage_set_json():
    """Test LocalStorage set_json method."""
    mock_redis = MagicMock()
    storage = LocalStorage(redis_client=mock_redis, namespace="zm")

    # Without TTL
    assert storage.set_json("appointments", [{"id": "a1"}]) is True
    mock_redis.set.assert_called_once_with("zm:appointments", '[{"id": "a1"}]')

    # With TTL
    mock_redis.reset_mock()
    assert storage.set_json("appointments", [], ttl=60) is True
    mock_redis.setex.assert_called_once_with("zm:appointments", 60, "[]")


def test_storage_errors_degrade_to_no_value():
    """Redis failures are logged and reported as missing values."""
    mock_redis = MagicMock()
    mock_redis.get.side_effect = redis.ConnectionError("down")
    mock_redis.set.side_effect = redis.ConnectionError("down")
    mock_redis.keys.side_effect = redis.ConnectionError("down")
    storage = LocalStorage(redis_client=mock_redis, namespace="zm")

    assert storage.get("theme") is None
    assert storage.set("theme", "x") is False
    assert storage.keys() == []


def test_strict_access_raises_when_redis_fails():
    """Strict reads and writes surface the outage instead of pretending the key is empty."""
    mock_redis = MagicMock()
    mock_redis.get.side_effect = redis.ConnectionError("down")
    mock_redis.setex.side_effect = redis.ConnectionError("down")
    mock_redis.delete.side_effect = redis.ConnectionError("down")
    mock_redis.incr.side_effect = redis.ConnectionError("down")
    storage = LocalStorage(redis_client=mock_redis, namespace="zm")

    with pytest.raises(StorageUnavailableError):
        storage.get("lockout:1.2.3.4", strict=True)
    with pytest.raises(StorageUnavailableError):
        storage.set("lockout:1.2.3.4", "x", ttl=300, strict=True)
    with pytest.raises(StorageUnavailableError):
        storage.delete("login_attempts:1.2.3.4", strict=True)
    with pytest.raises(StorageUnavailableError) as exc_info:
        storage.incr("login_attempts:1.2.3.4")
    assert exc_info.value.status_code == 503


def test_storage_incr_sets_expiry_on_new_counter():
    """The expiry is applied once, when the counter is created."""
    mock_redis = MagicMock()
    mock_redis.incr.return_value = 1
    storage = LocalStorage(redis_client=mock_redis, namespace="zm")

    assert storage.incr("login_attempts:a", ttl=60) == 1
    mock_redis.incr.assert_called_once_with("zm:login_attempts:a", 1)
    mock_redis.expire.assert_called_once_with("zm:login_attempts:a", 60)

    mock_redis.reset_mock()
    mock_redis.incr.return_value = 2
    assert storage.incr("login_attempts:a", ttl=60) == 2
    mock_redis.expire.assert_not_called()


def test_storage_keys_strip_namespace():
    """Listed keys come back relative to the namespace, sorted."""
    mock_redis = MagicMock()
    mock_redis.keys.return_value = ["zm:session:abc", "zm:appointments"]
    storage = LocalStorage(redis_client=mock_redis, namespace="zm")

    assert storage.keys("*") == ["appointments", "session:abc"]
    mock_redis.keys.assert_called_once_with("zm:*")
