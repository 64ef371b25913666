"""
Redis connection pool configuration.

Builds a redis-py pool from a RedisConfig and adds:
- PING check on borrowed idle connections, redialing when it fails
- Idle timeout and max idle bookkeeping
- Circuit breaker around acquisition

Wire protocol, sockets and the pool proper stay with redis-py.
"""

import logging
import queue
import threading
import time
from contextlib import contextmanager
from typing import Iterator

from circuitbreaker import CircuitBreaker, CircuitBreakerError
from redis import BlockingConnectionPool, ConnectionPool
from redis.backoff import NoBackoff
from redis.connection import Connection
from redis.exceptions import (
    AuthenticationError,
    ConnectionError,
    MaxConnectionsError,
    RedisError,
    TimeoutError,
)
from redis.retry import Retry

from .commands import RedisConnection
from .config import RedisConfig
from .errors import PoolExhaustedError
from .keys import KeyTemplater
from .metrics import record_acquisition

logger = logging.getLogger(__name__)

# redis-py reads max_connections=None as its own default cap, not as "no limit"
UNLIMITED_CONNECTIONS = 2 ** 31


def _is_exhaustion(error: RedisError) -> bool:
    # The blocking pool raises a plain ConnectionError while handling queue.Empty
    return isinstance(error, MaxConnectionsError) or isinstance(error.__context__, queue.Empty)


def _is_dial_failure(thrown_type, thrown_value) -> bool:
    """Breaker failure predicate: a saturated pool says nothing about the server."""
    return issubclass(thrown_type, (ConnectionError, TimeoutError)) and not issubclass(
        thrown_type, PoolExhaustedError
    )


class LoggingConnection(Connection):
    """redis-py connection that logs failed dials and AUTH before raising."""

    def connect(self):
        try:
            super().connect()
        except AuthenticationError as e:
            logger.error("Redis AUTH failed for %s:%s: %s", self.host, self.port, e)
            raise
        except (ConnectionError, TimeoutError) as e:
            logger.error("Redis dial failed for %s:%s: %s", self.host, self.port, e)
            raise


class RedisPool:
    """
    Connection pool built from a RedisConfig.

    Handles:
    - Lazy dialing up to max_active connections (0 = unlimited)
    - AUTH on every new connection when a password is set
    - Wait policy when saturated: block (up to acquire_timeout) or fail fast
    - Health check of reused idle connections

    Nothing is retried: a failed acquisition raises to the caller, who decides.
    """

    def __init__(self, config: RedisConfig | None = None):
        self.config = config or RedisConfig()
        self.keys = KeyTemplater(self.config)
        self._pool = self._build_pool()
        self._breaker = CircuitBreaker(
            failure_threshold=self.config.failure_threshold,
            recovery_timeout=self.config.recovery_timeout,
            expected_exception=_is_dial_failure,
            name=f"redis:{self.config.server}",
        )
        # Only the decorated form checks for an open circuit before calling
        self._guarded_acquire = self._breaker(self._acquire)
        self._lock = threading.Lock()
        # Connections sitting in the pool, with the time they were released
        self._idle_since: dict[Connection, float] = {}

    def _build_pool(self) -> ConnectionPool:
        config = self.config
        connection_kwargs = {
            "connection_class": LoggingConnection,
            "host": config.host,
            "port": config.port,
            "db": config.db,
            "username": config.username,
            "password": config.password or None,
            "socket_timeout": config.socket_timeout,
            "socket_connect_timeout": config.socket_connect_timeout,
            "decode_responses": config.decode_responses,
            "encoding": config.encoding,
            # Retries belong to the caller
            "retry": Retry(NoBackoff(), 0),
        }
        max_connections = config.max_active or UNLIMITED_CONNECTIONS
        if config.wait and config.max_active:
            logger.info(
                "Creating blocking Redis pool for %s (max_active=%s, acquire_timeout=%s)",
                config.server, max_connections, config.acquire_timeout,
            )
            return BlockingConnectionPool(
                max_connections=max_connections,
                timeout=config.acquire_timeout,
                **connection_kwargs,
            )
        logger.info("Creating Redis pool for %s (max_active=%s)", config.server, config.max_active or "unlimited")
        return ConnectionPool(max_connections=max_connections, **connection_kwargs)

    def get(self) -> RedisConnection:
        """
        Lease a connection. Release it with close() or use it as a context manager.

        Raises:
            PoolExhaustedError: no free connection, immediately or after acquire_timeout;
                a ConnectionError that does not count against the circuit breaker
            ConnectionError: dial, AUTH or health check failed
            TimeoutError: socket timeout while dialing
            CircuitBreakerError: too many consecutive failures, acquisition paused
        """
        try:
            connection = self._guarded_acquire()
        except CircuitBreakerError:
            record_acquisition("rejected")
            logger.warning(f"Circuit open for Redis {self.config.server}, not dialing")
            raise
        return RedisConnection(connection, pool=self, encoding=self.config.encoding)

    @contextmanager
    def connection(self) -> Iterator[RedisConnection]:
        conn = self.get()
        try:
            yield conn
        finally:
            conn.close()

    def _acquire(self) -> Connection:
        try:
            connection = self._pool.get_connection()
        except RedisError as e:
            if _is_exhaustion(e):
                record_acquisition("exhausted")
                logger.warning(f"Redis pool for {self.config.server} is exhausted: {e}")
                raise PoolExhaustedError(f"No free Redis connection for {self.config.server}: {e}") from e
            record_acquisition("failed")
            logger.error(f"Unable to get Redis connection for {self.config.server}: {e}")
            raise
        try:
            outcome = self._check_borrowed(connection)
        except RedisError as e:
            record_acquisition("failed")
            self._forget(connection)
            self._pool.release(connection)
            logger.error(f"Unable to redial Redis connection for {self.config.server}: {e}")
            raise
        record_acquisition(outcome)
        return connection

    def _check_borrowed(self, connection: Connection) -> str:
        """Expire or ping a reused idle connection; freshly dialed ones pass through."""
        with self._lock:
            idle_since = self._idle_since.pop(connection, None)
        if idle_since is None:
            return "ok"

        idle_timeout = self.config.idle_timeout
        if idle_timeout and time.monotonic() - idle_since > idle_timeout:
            logger.debug("Closing Redis connection idle for more than %ss", idle_timeout)
            connection.disconnect()
            connection.connect()
            return "expired"

        try:
            connection.send_command("PING")
            connection.read_response()
        except RedisError as e:
            logger.warning(f"Unable to ping redis server {self.config.server}, redialing: {e}")
            connection.disconnect()
            connection.connect()
            return "redialed"
        return "ok"

    def _forget(self, connection: Connection) -> None:
        with self._lock:
            self._idle_since.pop(connection, None)

    def release(self, connection: Connection) -> None:
        """Return a connection to the pool, closing it if max_idle are already idle."""
        with self._lock:
            keep = len(self._idle_since) < self.config.max_idle
            if keep:
                self._idle_since[connection] = time.monotonic()
        if not keep:
            connection.disconnect()
        self._pool.release(connection)

    def is_healthy(self) -> bool:
        """Check if Redis answers PING"""
        try:
            with self.connection() as conn:
                return conn.ping()
        except (RedisError, CircuitBreakerError):
            return False

    def close(self) -> None:
        """Disconnect every pooled connection, in use or idle."""
        self._pool.disconnect()
        with self._lock:
            self._idle_since.clear()

    def __enter__(self) -> "RedisPool":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    # --- Key helpers bound to this pool's config ---

    def parse_key(self, template: str, variables=()) -> str:
        return self.keys.parse_key(template, variables)

    def strip_env_key(self, key: str) -> str:
        return self.keys.strip_env_key(key)

    def split_key(self, key: str) -> list[str]:
        return self.keys.split_key(key)
