"""Redis client and the namespaced local key/value storage built on it."""

import json
from typing import Any, cast

import redis
import structlog

from zenmedix.config import settings
from zenmedix.core.exceptions import StorageUnavailableError

logger = structlog.get_logger(__name__)

# Global Redis client instance
_redis_client: redis.Redis | None = None


def get_redis_client() -> redis.Redis:
    """
    Get or create Redis client instance.

    Returns:
        Redis client instance
    """
    global _redis_client

    if _redis_client is None:
        _redis_client = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            username=settings.redis_username,
            password=settings.redis_password,
            decode_responses=settings.redis_decode_responses,
            socket_connect_timeout=5,
            socket_keepalive=True,
            health_check_interval=30,
        )

    return _redis_client


def close_redis_connection() -> None:
    """Close Redis connection."""
    global _redis_client

    if _redis_client is not None:
        _redis_client.close()
        _redis_client = None


class StorageKeys:
    """Key names used in local storage (without the namespace prefix)."""

    LAST_ACCESS = "last_access:{user_id}"
    LOCKOUT = "lockout:{client}"
    LOGIN_ATTEMPTS = "login_attempts:{client}"
    SESSION = "session:{session_id}"
    APPOINTMENTS = "appointments"
    BACKUP_INFO = "backup_info"


class LocalStorage:
    """
    Namespaced key/value storage.

    Every key is stored as ``<namespace>:<key>`` so the application's entries
    can be enumerated for backups without touching unrelated data. By default
    a storage outage degrades to "no value"; callers that must not proceed
    without the value pass ``strict=True`` and get StorageUnavailableError.
    """

    def __init__(self, redis_client: redis.Redis, namespace: str | None = None):
        """Initialize storage with a Redis client and key namespace."""
        self.redis = redis_client
        self.namespace = namespace or settings.storage_namespace

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    def strip_namespace(self, full_key: str) -> str:
        """Turn a stored key back into an application key."""
        prefix = f"{self.namespace}:"
        return full_key[len(prefix) :] if full_key.startswith(prefix) else full_key

    def ping(self) -> bool:
        """Check whether the backing Redis server answers."""
        try:
            return bool(self.redis.ping())
        except redis.RedisError as e:
            logger.warning("storage_unreachable", error=str(e))
            return False

    def _unavailable(self, event: str, key: str, error: redis.RedisError, strict: bool) -> None:
        logger.warning(event, key=key, error=str(error))
        if strict:
            raise StorageUnavailableError() from error

    def get(self, key: str, strict: bool = False) -> str | None:
        """
        Get a raw value.

        Args:
            key: Storage key
            strict: Raise instead of returning None when Redis fails

        Raises:
            StorageUnavailableError: If ``strict`` and Redis cannot be read
        """
        try:
            return cast(str | None, self.redis.get(self._key(key)))
        except redis.RedisError as e:
            self._unavailable("storage_get_failed", key, e, strict)
            return None

    def set(self, key: str, value: str, ttl: int | None = None, strict: bool = False) -> bool:
        """
        Set a raw value.

        Args:
            key: Storage key
            value: Value to store
            ttl: Time to live in seconds
            strict: Raise instead of returning False when Redis fails

        Returns:
            True if successful, False otherwise
        """
        try:
            if ttl:
                self.redis.setex(self._key(key), ttl, value)
            else:
                self.redis.set(self._key(key), value)
            return True
        except redis.RedisError as e:
            self._unavailable("storage_set_failed", key, e, strict)
            return False

    def delete(self, key: str, strict: bool = False) -> bool:
        """Delete a key."""
        try:
            self.redis.delete(self._key(key))
            return True
        except redis.RedisError as e:
            self._unavailable("storage_delete_failed", key, e, strict)
            return False

    def incr(self, key: str, amount: int = 1, ttl: int | None = None) -> int:
        """
        Atomically add to a counter.

        The expiry is set when the counter is created, so a window starts at
        the first increment.

        Args:
            key: Storage key
            amount: Value to add, negative to decrement
            ttl: Time to live in seconds for a new counter

        Returns:
            The counter value after the increment

        Raises:
            StorageUnavailableError: If Redis fails
        """
        try:
            count = int(cast(int, self.redis.incr(self._key(key), amount)))
            if ttl and count == amount:
                self.redis.expire(self._key(key), ttl)
            return count
        except redis.RedisError as e:
            logger.warning("storage_incr_failed", key=key, error=str(e))
            raise StorageUnavailableError() from e

    def get_json(self, key: str) -> Any | None:
        """Get a JSON value and deserialize it."""
        value = self.get(key)
        if not value:
            return None
        try:
            return json.loads(value)
        except ValueError:
            logger.warning("storage_value_not_json", key=key)
            return None

    def set_json(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """Serialize a value to JSON and store it."""
        return self.set(key, json.dumps(value, default=str), ttl=ttl)

    def keys(self, pattern: str = "*") -> list[str]:
        """
        List application keys matching a pattern.

        Args:
            pattern: Redis glob pattern relative to the namespace

        Returns:
            Keys without the namespace prefix
        """
        try:
            found = cast(list[str], self.redis.keys(self._key(pattern)))
        except redis.RedisError as e:
            logger.warning("storage_keys_failed", pattern=pattern, error=str(e))
            return []
        return sorted(self.strip_namespace(k) for k in found)
