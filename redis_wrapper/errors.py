"""
Exceptions raised by the wrapper itself.

Connectivity failures are not wrapped: callers get redis-py's own
ConnectionError, AuthenticationError and TimeoutError. A saturated pool is
the exception: PoolExhaustedError, itself a ConnectionError.
"""

from redis.exceptions import ConnectionError, DataError


class RedisWrapperError(Exception):
    """Base exception for errors raised by this package."""

    pass


class KeyTemplateError(RedisWrapperError, ValueError):
    """Raised when a key template and its variables do not line up."""

    pass


class ArgumentMismatchError(RedisWrapperError, ValueError):
    """Raised before issuing a command whose arguments are inconsistent."""

    pass


class PoolExhaustedError(RedisWrapperError, ConnectionError):
    """Raised when every connection is leased and the pool will not wait any longer."""

    pass


class ReplyTypeError(RedisWrapperError, DataError):
    """Raised when a server reply cannot be converted to the requested type."""

    pass
