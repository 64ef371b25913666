"""
Redis pool and key configuration.

Each RedisPool owns one RedisConfig; nothing here is process-wide state.
"""

from dataclasses import dataclass

# Connection settings
REDIS_SERVER = "localhost:6379"
REDIS_DB = 0
REDIS_PASSWORD = None
REDIS_USERNAME = None

# Connection pooling settings
REDIS_MAX_IDLE = 10
REDIS_MAX_ACTIVE = 0  # 0 = unlimited
REDIS_IDLE_TIMEOUT = 300  # seconds, 0 = never close idle connections
REDIS_WAIT = False

# Performance tuning
REDIS_SOCKET_TIMEOUT = 5.0
REDIS_SOCKET_CONNECT_TIMEOUT = 2.0

# Circuit breaker settings
REDIS_FAILURE_THRESHOLD = 3
REDIS_RECOVERY_TIMEOUT = 30

# Key settings
REDIS_KEY_PREFIX = ""
REDIS_KEY_DELIMITER = ":"
REDIS_KEY_VAR_PLACEHOLDER = "?"


@dataclass(frozen=True)
class RedisConfig:
    """
    Settings for one pool and its key templater.

    Attributes:
        server: ``host:port`` of the Redis server
        password: AUTH password, ``None`` or empty skips AUTH
        max_idle: idle connections kept open (0 keeps none)
        max_active: connections allocated at once (0 = unlimited)
        idle_timeout: seconds an idle connection may sit before it is closed (0 = never)
        wait: block when the pool is saturated instead of failing
        acquire_timeout: seconds to block when ``wait`` is set (``None`` = forever)
        key_prefix: environment name prepended to every key, e.g. "dev"
        key_delimiter: separator between key segments, e.g. ":"
        key_var_placeholder: token replaced by variables in key templates, e.g. "?"
    """

    server: str = REDIS_SERVER
    password: str | None = REDIS_PASSWORD
    username: str | None = REDIS_USERNAME
    db: int = REDIS_DB
    max_idle: int = REDIS_MAX_IDLE
    max_active: int = REDIS_MAX_ACTIVE
    idle_timeout: float = REDIS_IDLE_TIMEOUT
    wait: bool = REDIS_WAIT
    acquire_timeout: float | None = None
    key_prefix: str = REDIS_KEY_PREFIX
    key_delimiter: str = REDIS_KEY_DELIMITER
    key_var_placeholder: str = REDIS_KEY_VAR_PLACEHOLDER
    socket_timeout: float | None = REDIS_SOCKET_TIMEOUT
    socket_connect_timeout: float | None = REDIS_SOCKET_CONNECT_TIMEOUT
    failure_threshold: int = REDIS_FAILURE_THRESHOLD
    recovery_timeout: int = REDIS_RECOVERY_TIMEOUT
    decode_responses: bool = True
    encoding: str = "utf-8"

    def __post_init__(self):
        host, sep, port = self.server.rpartition(":")
        if not sep or not host or not port.isdigit():
            raise ValueError(f"Redis server must be 'host:port', got {self.server!r}")
        if not self.key_delimiter:
            raise ValueError("Key delimiter must be a non-empty string")
        if not self.key_var_placeholder:
            raise ValueError("Key placeholder must be a non-empty string")
        for name in ("max_idle", "max_active", "idle_timeout"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")
        if self.acquire_timeout is not None and self.acquire_timeout < 0:
            raise ValueError("acquire_timeout must not be negative")

    @property
    def host(self) -> str:
        return self.server.rpartition(":")[0]

    @property
    def port(self) -> int:
        return int(self.server.rpartition(":")[2])

    @property
    def env_prefix(self) -> str:
        """Leading part shared by every key built from this config."""
        return self.key_prefix + self.key_delimiter

    def __repr__(self) -> str:
        # Keep the password out of logs and tracebacks
        password = "***" if self.password else None
        return (
            f"RedisConfig(server={self.server!r}, db={self.db}, password={password!r}, "
            f"max_idle={self.max_idle}, max_active={self.max_active}, "
            f"idle_timeout={self.idle_timeout}, wait={self.wait}, "
            f"key_prefix={self.key_prefix!r})"
        )
