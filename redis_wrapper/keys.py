"""
Key templating: environment-prefixed keys built from placeholder templates.

    >>> keys = KeyTemplater(RedisConfig(key_prefix="dev"))
    >>> keys.parse_key("uniqueid:?:suffix", ["42"])
    'dev:uniqueid:42:suffix'
"""

from typing import Sequence

from .config import RedisConfig
from .errors import KeyTemplateError


class KeyTemplater:
    """Builds and takes apart keys using the prefix, delimiter and placeholder of a config."""

    def __init__(self, config: RedisConfig):
        self.prefix = config.key_prefix
        self.delimiter = config.key_delimiter
        self.placeholder = config.key_var_placeholder

    @property
    def env_prefix(self) -> str:
        return self.prefix + self.delimiter

    def parse_key(self, template: str, variables: Sequence[object] = ()) -> str:
        """
        Substitute variables, in order, for the placeholders of template and prefix the result.

        Args:
            template: key template such as "user:?:profile"
            variables: one value per placeholder occurrence

        Returns:
            The fully qualified key, e.g. "dev:user:42:profile"

        Raises:
            KeyTemplateError: if the number of variables differs from the number of placeholders
        """
        parts = template.split(self.placeholder)
        if len(parts) != len(variables) + 1:
            raise KeyTemplateError(
                f"Insufficient arguments to parse key {template!r}: "
                f"expected {len(parts) - 1}, got {len(variables)}"
            )
        key = parts[0] + "".join(f"{var}{part}" for var, part in zip(variables, parts[1:]))
        return self.prefixed(key)

    def prefixed(self, key: str) -> str:
        return self.env_prefix + key

    def strip_env_key(self, key: str) -> str:
        """Remove a leading prefix+delimiter; keys without it are returned unchanged."""
        return key.removeprefix(self.env_prefix)

    def split_key(self, key: str) -> list[str]:
        # Empty segments are kept so the split can be joined back losslessly
        return key.split(self.delimiter)
