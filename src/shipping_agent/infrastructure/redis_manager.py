from __future__ import annotations

import json
from typing import Any

from redis import Redis


class RedisManager:
    """
    High-level Redis utilities for JSON documents and ordered indexes of them.

    This class is designed for dependency injection: callers provide a configured
    Redis client (e.g., via Redis.from_url or Redis(host=..., ...)) and a key namespace.

    Args:
        redis_client (Redis): A configured Redis client instance.
        namespace (str): Key namespace/prefix for generated keys.

    Note:
        - This module intentionally avoids importing service-specific settings.
          Construct the manager in your service layer using your local config and
          pass it into call sites.
    """

    def __init__(self, redis_client: Redis, *, namespace: str = "shipping:agent") -> None:
        self._redis: Redis = redis_client
        self._namespace: str = namespace.rstrip(":")

    # -----------------------------
    # Key helpers
    # -----------------------------
    def key(self, *parts: str) -> str:
        """
        Build a namespaced key from its parts.

        Args:
            *parts (str): Key segments, joined with ':'.

        Returns:
            str: The namespaced Redis key.
        """
        return ":".join([self._namespace, *parts])

    # -----------------------------
    # JSON helpers
    # -----------------------------
    def set_json(self, key: str, value: dict[str, Any]) -> None:
        """
        Set a JSON value at `key`.

        Args:
            key (str): The Redis key to set.
            value (dict[str, Any]): The JSON-serializable mapping to store.
        """
        self._redis.set(key, json.dumps(value))

    def get_json(self, key: str) -> dict[str, Any] | None:
        """
        Get a JSON value stored at `key`.

        Args:
            key (str): The Redis key to get.

        Returns:
            dict[str, Any] | None: Parsed dict if present and valid; otherwise None.
        """
        raw = self._redis.get(key)
        return _parse_json_dict(raw)

    def get_json_many(self, keys: list[str]) -> list[dict[str, Any]]:
        """
        Get several JSON values in one round trip, skipping missing or invalid entries.

        Args:
            keys (list[str]): The Redis keys to get, in the order results should follow.

        Returns:
            list[dict[str, Any]]: Parsed dicts in key order.
        """
        if not keys:
            return []
        results = []
        for raw in self._redis.mget(keys):
            parsed = _parse_json_dict(raw)
            if parsed is not None:
                results.append(parsed)
        return results

    # -----------------------------
    # Ordered index helpers
    # -----------------------------
    def next_sequence(self, counter_key: str) -> int:
        """
        Atomically increment and return the counter stored at `counter_key`.

        Args:
            counter_key (str): The Redis key holding the counter.

        Returns:
            int: The new counter value (starts at 1).
        """
        return int(self._redis.incr(counter_key))

    def save_indexed_json(
        self, key: str, value: dict[str, Any], *, index_key: str, member: str, score: float
    ) -> None:
        """
        Store a JSON document and add it to a sorted-set index in one MULTI/EXEC transaction.

        Readers of the index never see a member whose document has not been written.

        Args:
            key (str): The Redis key for the document.
            value (dict[str, Any]): The JSON-serializable document.
            index_key (str): The sorted set holding the index.
            member (str): The index member (usually the document id).
            score (float): The ordering score of the member.
        """
        pipe = self._redis.pipeline(transaction=True)
        pipe.set(key, json.dumps(value))
        pipe.zadd(index_key, {member: score})
        pipe.execute()

    def index_members(self, index_key: str, *, newest_first: bool = True) -> list[str]:
        """
        Return all members of a sorted-set index.

        Args:
            index_key (str): The sorted set holding the index.
            newest_first (bool): Order by descending score when True.

        Returns:
            list[str]: Index members in the requested order.
        """
        if newest_first:
            members = self._redis.zrevrange(index_key, 0, -1)
        else:
            members = self._redis.zrange(index_key, 0, -1)
        return [m.decode() if isinstance(m, bytes) else str(m) for m in members]


def _parse_json_dict(raw: Any) -> dict[str, Any] | None:
    if not raw:
        return None
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        return None
    return parsed if isinstance(parsed, dict) else None


def build_redis_manager(
    redis_url: str | None = None,
    *,
    redis_client: Redis | None = None,
    namespace: str = "shipping:agent",
    decode_responses: bool = True,
) -> RedisManager:
    """
    Factory to create a RedisManager with sensible defaults.

    You can provide either `redis_url` (preferred) and this function will initialize
    the client, or pass an existing `redis_client` (for tests/advanced use).

    Args:
        redis_url (str | None): Redis connection URL (e.g., "redis://:pwd@host:6379/0").
        redis_client (Redis | None): Pre-configured Redis client instance.
        namespace (str): Key namespace/prefix for generated keys.
        decode_responses (bool): If creating the client, whether to decode responses.

    Returns:
        RedisManager: Configured manager instance.
    """
    if redis_client is None:
        if not redis_url:
            raise ValueError("Provide either redis_url or redis_client")
        # Use literal True/False to satisfy type checker's overload selection
        if decode_responses:
            redis_client = Redis.from_url(redis_url, decode_responses=True)
        else:
            redis_client = Redis.from_url(redis_url, decode_responses=False)

    return RedisManager(redis_client, namespace=namespace)
