"""
Typed view over raw redis-py replies.

A Reply records what kind of value the server sent, so callers ask for the
type they expect and get a ReplyTypeError instead of a silent coercion.
"""

import enum
import re
from dataclasses import dataclass
from typing import Any

from .errors import ReplyTypeError

TRUE_STRINGS = frozenset({"1", "t", "T", "true", "TRUE", "True"})
FALSE_STRINGS = frozenset({"0", "f", "F", "false", "FALSE", "False"})
# Plain decimal text only: int() and float() would also take "1_000" and " 7\n"
INTEGER_TEXT = re.compile(r"[-+]?[0-9]+")
FLOAT_TEXT = re.compile(
    r"[-+]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][-+]?[0-9]+)?|inf|infinity|nan)",
    re.IGNORECASE,
)


class ReplyKind(enum.Enum):
    INTEGER = "integer"
    FLOAT = "float"
    STRING = "string"
    BOOLEAN = "boolean"
    SEQUENCE = "sequence"
    ABSENT = "absent"


@dataclass(frozen=True)
class Reply:
    """
    One server reply.

    ``value`` holds an int, float, str/bytes or bool for scalar kinds, a tuple
    of Reply for SEQUENCE and None for ABSENT.
    """

    kind: ReplyKind
    value: Any = None
    encoding: str = "utf-8"

    @classmethod
    def from_raw(cls, raw: Any, encoding: str = "utf-8") -> "Reply":
        """Classify a reply as returned by ``Connection.read_response``."""
        if raw is None:
            return cls(ReplyKind.ABSENT, None, encoding)
        # bool before int: bool is an int subclass
        if isinstance(raw, bool):
            return cls(ReplyKind.BOOLEAN, raw, encoding)
        if isinstance(raw, int):
            return cls(ReplyKind.INTEGER, raw, encoding)
        if isinstance(raw, float):
            return cls(ReplyKind.FLOAT, raw, encoding)
        if isinstance(raw, (bytes, str)):
            return cls(ReplyKind.STRING, raw, encoding)
        if isinstance(raw, dict):
            # RESP3 map, flattened to field, value, field, value...
            items = [item for pair in raw.items() for item in pair]
            return cls(ReplyKind.SEQUENCE, tuple(cls.from_raw(i, encoding) for i in items), encoding)
        if isinstance(raw, (list, tuple, set)):
            return cls(ReplyKind.SEQUENCE, tuple(cls.from_raw(i, encoding) for i in raw), encoding)
        raise ReplyTypeError(f"Unexpected reply type {type(raw).__name__}")

    @property
    def is_absent(self) -> bool:
        return self.kind is ReplyKind.ABSENT

    def _text(self) -> str:
        if isinstance(self.value, bytes):
            try:
                return self.value.decode(self.encoding)
            except UnicodeDecodeError as e:
                raise ReplyTypeError(f"Reply is not valid {self.encoding} text") from e
        return self.value

    def _mismatch(self, wanted: str) -> ReplyTypeError:
        return ReplyTypeError(f"Cannot convert {self.kind.value} reply to {wanted}: {self.value!r}")

    def as_str(self) -> str | None:
        if self.kind is ReplyKind.ABSENT:
            return None
        if self.kind is ReplyKind.STRING:
            return self._text()
        if self.kind in (ReplyKind.INTEGER, ReplyKind.FLOAT):
            return str(self.value)
        raise self._mismatch("string")

    def as_bytes(self) -> bytes | None:
        if self.kind is ReplyKind.ABSENT:
            return None
        if self.kind is not ReplyKind.STRING:
            raise self._mismatch("bytes")
        if isinstance(self.value, bytes):
            return self.value
        return self.value.encode(self.encoding)

    def as_int(self) -> int | None:
        if self.kind is ReplyKind.ABSENT:
            return None
        if self.kind in (ReplyKind.INTEGER, ReplyKind.BOOLEAN):
            return int(self.value)
        if self.kind is ReplyKind.STRING:
            text = self._text()
            if INTEGER_TEXT.fullmatch(text):
                return int(text)
        raise self._mismatch("integer")

    def as_float(self) -> float | None:
        if self.kind is ReplyKind.ABSENT:
            return None
        if self.kind in (ReplyKind.FLOAT, ReplyKind.INTEGER):
            return float(self.value)
        if self.kind is ReplyKind.STRING:
            text = self._text()
            if FLOAT_TEXT.fullmatch(text):
                return float(text)
        raise self._mismatch("float")

    def as_bool(self) -> bool | None:
        if self.kind is ReplyKind.ABSENT:
            return None
        if self.kind is ReplyKind.BOOLEAN:
            return self.value
        if self.kind is ReplyKind.INTEGER:
            return self.value != 0
        if self.kind is ReplyKind.STRING:
            text = self._text()
            if text in TRUE_STRINGS:
                return True
            if text in FALSE_STRINGS:
                return False
        raise self._mismatch("boolean")

    def as_list(self) -> list["Reply"] | None:
        if self.kind is ReplyKind.ABSENT:
            return None
        if self.kind is not ReplyKind.SEQUENCE:
            raise self._mismatch("sequence")
        return list(self.value)

    def as_strings(self) -> list[str | None] | None:
        items = self.as_list()
        if items is None:
            return None
        return [item.as_str() for item in items]

    def as_dict(self) -> dict[str, str | None]:
        """Read a flattened field/value sequence (HGETALL) as a dict."""
        items = self.as_strings()
        if items is None:
            return {}
        if len(items) % 2:
            raise ReplyTypeError("Mapping reply has an odd number of elements")
        return dict(zip(items[::2], items[1::2]))
