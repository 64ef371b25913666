"""
Thin synchronous layer over redis-py: pooled connections, templated keys and typed command wrappers.
"""
from .client import RedisPool
from .commands import RedisConnection
from .config import RedisConfig
from .errors import (
    ArgumentMismatchError,
    KeyTemplateError,
    PoolExhaustedError,
    RedisWrapperError,
    ReplyTypeError,
)
from .keys import KeyTemplater
from .replies import Reply, ReplyKind

__all__ = [
    'ArgumentMismatchError',
    'KeyTemplateError',
    'KeyTemplater',
    'PoolExhaustedError',
    'RedisConfig',
    'RedisConnection',
    'RedisPool',
    'RedisWrapperError',
    'Reply',
    'ReplyKind',
    'ReplyTypeError',
]
