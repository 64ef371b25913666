"""
Shared pytest fixtures for redis_wrapper tests
"""

import os
from unittest.mock import MagicMock

import pytest
from prometheus_client import REGISTRY

from redis_wrapper.client import RedisPool
from redis_wrapper.commands import RedisConnection
from redis_wrapper.config import RedisConfig


@pytest.fixture
def config():
    """Config with a "dev" environment prefix and default delimiter/placeholder"""
    return RedisConfig(server="localhost:6379", key_prefix="dev")


@pytest.fixture
def mock_connection():
    """Mocked redis-py Connection; tests set read_response.return_value or side_effect"""
    connection = MagicMock()
    connection.read_response.return_value = "OK"
    return connection


@pytest.fixture
def redis_conn(mock_connection):
    """RedisConnection over a mocked socket, paired with the mock for assertions"""
    return RedisConnection(mock_connection), mock_connection


@pytest.fixture
def mock_pool(config):
    """RedisPool whose redis-py pool is mocked and hands out one mocked connection"""
    pool = RedisPool(config)
    raw = MagicMock()
    raw.read_response.return_value = "PONG"
    pool._pool = MagicMock()
    pool._pool.get_connection.return_value = raw
    yield pool, raw


@pytest.fixture
def sample_value():
    """Read a Prometheus sample, treating a missing series as 0"""

    def reader(name, labels):
        return REGISTRY.get_sample_value(name, labels) or 0

    return reader


@pytest.fixture
def live_pool():
    """
    RedisPool against a real server named by REDIS_TEST_SERVER (host:port).
    Keys are written under a throwaway prefix and deleted afterwards.
    """
    server = os.environ.get("REDIS_TEST_SERVER")
    if not server:
        pytest.skip("REDIS_TEST_SERVER not set")
    pool = RedisPool(RedisConfig(server=server, key_prefix="redis_wrapper_test", max_active=4))
    yield pool
    with pool.connection() as conn:
        keys = list(conn.scan_iter(pool.keys.env_prefix + "*"))
        if keys:
            conn.delete(*keys)
    pool.close()
