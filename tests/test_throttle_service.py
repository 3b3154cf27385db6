# tests/test_throttle_service.py
"""Throttle store: key format, TTL reporting and fail-open behaviour."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from unittest.mock import MagicMock
from redis.exceptions import ConnectionError as RedisConnectionError
from wastetrack.services.throttle_service import ThrottleStore, throttle_key


def test_key_format():
    assert throttle_key(12, 34) == "throttle:12:34"


def test_set_uses_window():
    client = MagicMock()
    ThrottleStore(client, ttl_seconds=60).set_with_ttl("throttle:1:2")
    client.set.assert_called_once_with("throttle:1:2", "1", ex=60)


def test_exists_and_remaining_ttl():
    client = MagicMock()
    client.exists.return_value = 1
    client.ttl.return_value = 37
    store = ThrottleStore(client)
    assert store.exists("k") is True
    assert store.remaining_ttl("k") == 37


def test_expired_or_persistent_key_has_no_ttl():
    client = MagicMock()
    store = ThrottleStore(client)
    client.ttl.return_value = -2
    assert store.remaining_ttl("k") is None
    client.ttl.return_value = -1
    assert store.remaining_ttl("k") is None


def test_redis_failure_fails_open():
    client = MagicMock()
    client.exists.side_effect = RedisConnectionError("down")
    client.ttl.side_effect = RedisConnectionError("down")
    client.set.side_effect = RedisConnectionError("down")
    client.ping.side_effect = RedisConnectionError("down")
    store = ThrottleStore(client)

    assert store.exists("k") is False
    assert store.remaining_ttl("k") is None
    store.set_with_ttl("k")  # must not raise
    assert store.ping() == "unavailable"


def test_disabled_store_never_throttles():
    store = ThrottleStore(None)
    assert store.enabled is False
    assert store.exists("k") is False
    store.set_with_ttl("k")
    assert store.ping() == "disabled"
