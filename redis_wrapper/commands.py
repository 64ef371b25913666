"""
Leased connection handle and one-line Redis command wrappers.

Every wrapper issues exactly one command through ``do`` and converts the
reply to the type it documents. Keys are passed in already built, usually
by KeyTemplater.parse_key.
"""

import logging
import time
from datetime import timedelta
from typing import Any, Iterator, Sequence

from opentelemetry import trace
from opentelemetry.trace import StatusCode
from redis.exceptions import ConnectionError, RedisError, TimeoutError

from .errors import ArgumentMismatchError, ReplyTypeError
from .metrics import record_command
from .replies import Reply, ReplyKind

logger = logging.getLogger(__name__)

tracer = trace.get_tracer(__name__)


def _encode_arg(arg: Any) -> Any:
    # redis-py refuses bools; send them the way Redis stores flags
    if isinstance(arg, bool):
        return 1 if arg else 0
    return arg


class RedisConnection:
    """
    One connection leased from a RedisPool.

    Not safe for concurrent use: share the pool, not the connection.
    Release it with ``close()`` or by using it as a context manager.
    """

    def __init__(self, connection, pool=None, encoding: str = "utf-8"):
        self._connection = connection
        self._pool = pool
        self._encoding = encoding

    def __enter__(self) -> "RedisConnection":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @property
    def closed(self) -> bool:
        return self._connection is None

    def close(self) -> None:
        """Return the underlying connection to its pool. Safe to call twice."""
        if self._connection is None:
            return
        connection, self._connection = self._connection, None
        if self._pool is not None:
            self._pool.release(connection)

    def do(self, command: str, *args: Any) -> Reply:
        """
        Send one command and read its reply.

        Server error replies raise ResponseError. Connection failures drop the
        socket before re-raising so the pool never hands it out again.
        """
        if self._connection is None:
            raise RuntimeError("Connection already released to the pool")
        command = command.upper()
        with tracer.start_as_current_span(f"redis.{command.lower()}") as span:
            span.set_attribute("redis.command", command)
            if args and isinstance(args[0], str):
                span.set_attribute("redis.key", args[0])
            start = time.perf_counter()
            try:
                self._connection.send_command(command, *(_encode_arg(a) for a in args))
                raw = self._connection.read_response()
            except (ConnectionError, TimeoutError) as e:
                self._connection.disconnect()
                record_command(command, time.perf_counter() - start, e)
                span.record_exception(e)
                span.set_status(StatusCode.ERROR)
                logger.error(f"Redis {command} failed, connection dropped: {e}")
                raise
            except RedisError as e:
                record_command(command, time.perf_counter() - start, e)
                span.record_exception(e)
                span.set_status(StatusCode.ERROR)
                raise
            record_command(command, time.perf_counter() - start)
            span.set_status(StatusCode.OK)
            return Reply.from_raw(raw, self._encoding)

    # --- Keys and TTL ---

    def expire(self, key: str, ttl: int) -> bool:
        """Set a key's time to live in seconds. False if the key does not exist."""
        return self.do("EXPIRE", key, ttl).as_bool()

    def persist(self, key: str) -> bool:
        """Remove the time to live of a key. False if it had none."""
        return self.do("PERSIST", key).as_bool()

    def delete(self, *keys: str) -> int:
        """Delete one or more keys. Returns the number removed."""
        return self.do("DEL", *keys).as_int()

    def exists(self, key: str) -> bool:
        return self.do("EXISTS", key).as_int() > 0

    def get_ttl(self, key: str) -> timedelta:
        """
        Remaining time to live of a key.
        Redis answers -1 second for keys without expiry and -2 for missing keys.
        """
        return timedelta(seconds=self.do("TTL", key).as_int())

    def keys(self, pattern: str) -> list[str]:
        """
        Keys matching a glob pattern.
        KEYS blocks the server while it walks the keyspace; prefer scan_iter in production.
        """
        return self.do("KEYS", pattern).as_strings()

    def scan(self, cursor: int, pattern: str, count: int) -> tuple[int, list[str]]:
        """
        One SCAN step.

        Args:
            cursor: 0 to start, then the cursor returned by the previous call
            pattern: glob pattern for MATCH
            count: page size hint for COUNT

        Returns:
            (next_cursor, keys); next_cursor 0 means the iteration is complete
        """
        items = self.do("SCAN", cursor, "MATCH", pattern, "COUNT", count).as_list()
        if items is None or len(items) != 2 or items[1].kind is not ReplyKind.SEQUENCE:
            raise ReplyTypeError("Malformed SCAN reply: expected [cursor, [keys...]]")
        next_cursor = items[0].as_int()
        if next_cursor is None:
            raise ReplyTypeError("Malformed SCAN reply: missing cursor")
        return next_cursor, items[1].as_strings()

    def scan_iter(self, pattern: str, count: int = 1000) -> Iterator[str]:
        """Yield every key matching pattern, following the cursor until it returns to 0."""
        cursor = 0
        while True:
            cursor, keys = self.scan(cursor, pattern, count)
            yield from keys
            if cursor == 0:
                break

    def ping(self) -> bool:
        return self.do("PING").as_str() == "PONG"

    # --- Strings ---

    def set(self, key: str, value: Any) -> bool:
        return self.do("SET", key, value).as_str() == "OK"

    def set_nx(self, key: str, value: Any) -> bool:
        """Set only if the key does not exist. True if it was set."""
        return self.do("SETNX", key, value).as_bool()

    def set_ex(self, key: str, ttl: int, value: Any) -> bool:
        """Set a value together with its time to live in seconds."""
        return self.do("SETEX", key, ttl, value).as_str() == "OK"

    def get(self, key: str) -> Reply:
        return self.do("GET", key)

    def get_string(self, key: str) -> str | None:
        return self.do("GET", key).as_str()

    def get_int(self, key: str) -> int | None:
        return self.do("GET", key).as_int()

    def get_string_length(self, key: str) -> int:
        return self.do("STRLEN", key).as_int()

    # --- Counters ---

    def incr(self, key: str) -> int:
        return self.do("INCR", key).as_int()

    def decr(self, key: str) -> int:
        return self.do("DECR", key).as_int()

    def incr_by(self, key: str, amount: int) -> int:
        return self.do("INCRBY", key, amount).as_int()

    def decr_by(self, key: str, amount: int) -> int:
        return self.do("DECRBY", key, amount).as_int()

    def incr_by_float(self, key: str, amount: float) -> float:
        return self.do("INCRBYFLOAT", key, amount).as_float()

    def decr_by_float(self, key: str, amount: float) -> float:
        # There is no DECRBYFLOAT command
        return self.do("INCRBYFLOAT", key, -amount).as_float()

    # --- Hashes ---

    def hset(self, key: str, field: str, value: Any) -> int:
        """Set one hash field. Returns 1 if the field is new, 0 if it was updated."""
        return self.do("HSET", key, field, value).as_int()

    def hget(self, key: str, field: str) -> Reply:
        return self.do("HGET", key, field)

    def hget_string(self, key: str, field: str) -> str | None:
        return self.do("HGET", key, field).as_str()

    def hget_int(self, key: str, field: str) -> int | None:
        return self.do("HGET", key, field).as_int()

    def hget_float(self, key: str, field: str) -> float | None:
        return self.do("HGET", key, field).as_float()

    def hget_bool(self, key: str, field: str) -> bool | None:
        return self.do("HGET", key, field).as_bool()

    def hmget(self, key: str, *fields: str) -> list[Reply]:
        """Values of several hash fields, in order; missing fields come back absent."""
        if not fields:
            raise ArgumentMismatchError("HMGET needs at least one field")
        return self.do("HMGET", key, *fields).as_list()

    def hmset(self, key: str, fields: Sequence[str], values: Sequence[Any]) -> bool:
        """
        Set several hash fields at once.

        Raises:
            ArgumentMismatchError: if fields is empty or its length differs from values;
                nothing is sent to the server in that case
        """
        if not fields or len(fields) != len(values):
            raise ArgumentMismatchError(
                f"Bad length: {len(fields)} hash fields for {len(values)} values"
            )
        args = [item for pair in zip(fields, values) for item in pair]
        return self.do("HMSET", key, *args).as_str() == "OK"

    def hdel(self, key: str, *fields: str) -> int:
        return self.do("HDEL", key, *fields).as_int()

    def hgetall(self, key: str) -> dict[str, str | None]:
        return self.do("HGETALL", key).as_dict()

    def hgetall_values(self, key: str) -> list[Reply]:
        """HGETALL as a flat field, value, field, value... list."""
        return self.do("HGETALL", key).as_list()

    def hgetall_strings(self, key: str) -> list[str]:
        return self.do("HGETALL", key).as_strings()

    def hkeys(self, key: str) -> list[str]:
        return self.do("HKEYS", key).as_strings()

    # --- Sets ---

    def sadd(self, key: str, *members: Any) -> int:
        return self.do("SADD", key, *members).as_int()

    def srem(self, key: str, *members: Any) -> int:
        return self.do("SREM", key, *members).as_int()

    def scard(self, key: str) -> int:
        return self.do("SCARD", key).as_int()

    def sismember(self, key: str, member: Any) -> bool:
        return self.do("SISMEMBER", key, member).as_bool()

    def smembers(self, key: str) -> list[str]:
        return self.do("SMEMBERS", key).as_strings()

    # --- Sorted sets ---

    def zadd(self, key: str, score: float, member: Any) -> int:
        return self.do("ZADD", key, score, member).as_int()

    def zrem(self, key: str, *members: Any) -> int:
        return self.do("ZREM", key, *members).as_int()

    def zrange(self, key: str, start: int, end: int, with_scores: bool = False):
        """
        Members ranked start..end (inclusive, negative indexes count from the end).
        With with_scores, returns (member, score) pairs instead of members.
        """
        if with_scores:
            return self._scored(self.do("ZRANGE", key, start, end, "WITHSCORES"))
        return self.do("ZRANGE", key, start, end).as_strings()

    def zrange_by_score(self, key: str, min_score, max_score, with_scores: bool = False):
        """Members with min_score <= score <= max_score; bounds accept "-inf", "+inf" and "(" forms."""
        if with_scores:
            return self._scored(self.do("ZRANGEBYSCORE", key, min_score, max_score, "WITHSCORES"))
        return self.do("ZRANGEBYSCORE", key, min_score, max_score).as_strings()

    @staticmethod
    def _scored(reply: Reply) -> list[tuple[str, float]]:
        items = reply.as_list() or []
        # RESP3 nests [member, score] pairs, RESP2 flattens them
        if items and items[0].kind is ReplyKind.SEQUENCE:
            items = [item for pair in items for item in pair.as_list()]
        if len(items) % 2:
            raise ReplyTypeError("Scored reply has an odd number of elements")
        return [
            (member.as_str(), score.as_float())
            for member, score in zip(items[::2], items[1::2])
        ]
