"""KODA value model — the tagged union shared by parser, printer and codec.

A Value is a (kind, payload) pair:

    NULL    None
    BOOL    bool
    INT     int, signed 64-bit
    FLOAT   float, IEEE-754 binary64
    STRING  str, Unicode scalars only (no surrogates)
    ARRAY   tuple of Value
    OBJECT  tuple of (str, Value) pairs, in order, duplicate keys kept

OBJECT is a tuple of pairs, not a dict, so duplicate keys and their
order survive every round trip.

Values are immutable.  Build them with the classmethod constructors,
which validate the payload; the parser and decoder construct Values
directly because their input is already validated.
"""

from __future__ import annotations

import collections.abc
import enum
import math
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, List, Mapping, Tuple, Union

from ._constants import INT64_MAX, INT64_MIN
from ._errors import ERR_UTF8, ERR_VALUE, KodaError


class Kind(enum.IntEnum):
    NULL = 0
    BOOL = 1
    INT = 2
    FLOAT = 3
    STRING = 4
    ARRAY = 5
    OBJECT = 6


def validate_scalar_text(s: str) -> None:
    """Reject any surrogate code point (they have no UTF-8 encoding)."""
    try:
        s.encode("utf-8")
    except UnicodeEncodeError as e:
        raise KodaError(ERR_UTF8, "surrogate code point U+{:04X}".format(
            ord(s[e.start])))


@dataclass(frozen=True, eq=False)
class Value:
    kind: Kind
    payload: Any

    # ── Constructors ──────────────────────────────────────────

    @classmethod
    def null(cls) -> "Value":
        return _NULL

    @classmethod
    def boolean(cls, b: bool) -> "Value":
        if not isinstance(b, bool):
            raise KodaError(ERR_VALUE, "boolean expects bool, got {}".format(
                type(b).__name__))
        return _TRUE if b else _FALSE

    @classmethod
    def integer(cls, i: int) -> "Value":
        # bool is a subclass of int; True is not the integer 1 here.
        if isinstance(i, bool) or not isinstance(i, int):
            raise KodaError(ERR_VALUE, "integer expects int, got {}".format(
                type(i).__name__))
        if i < INT64_MIN or i > INT64_MAX:
            raise KodaError(ERR_VALUE, "integer out of int64 range")
        return cls(Kind.INT, i)

    @classmethod
    def floating(cls, f: Union[float, int]) -> "Value":
        if isinstance(f, bool) or not isinstance(f, (float, int)):
            raise KodaError(ERR_VALUE, "floating expects float, got {}".format(
                type(f).__name__))
        try:
            return cls(Kind.FLOAT, float(f))
        except OverflowError:
            raise KodaError(ERR_VALUE, "int too large to convert to float")

    @classmethod
    def string(cls, s: str) -> "Value":
        if not isinstance(s, str):
            raise KodaError(ERR_VALUE, "string expects str, got {}".format(
                type(s).__name__))
        validate_scalar_text(s)
        return cls(Kind.STRING, s)

    @classmethod
    def array(cls, items: Iterable["Value"] = ()) -> "Value":
        out = tuple(items)
        for item in out:
            if not isinstance(item, Value):
                raise KodaError(ERR_VALUE, "array item must be a Value, got {}".format(
                    type(item).__name__))
        return cls(Kind.ARRAY, out)

    @classmethod
    def object(cls, pairs: Union[Iterable[Tuple[str, "Value"]],
                                 Mapping[str, "Value"]] = ()) -> "Value":
        if isinstance(pairs, collections.abc.Mapping):
            pairs = pairs.items()
        out: List[Tuple[str, Value]] = []
        for pair in pairs:
            try:
                key, val = pair
            except (TypeError, ValueError):
                raise KodaError(ERR_VALUE, "object entries must be (key, value) pairs")
            if not isinstance(key, str):
                raise KodaError(ERR_VALUE, "object key must be str, got {}".format(
                    type(key).__name__))
            validate_scalar_text(key)
            if not isinstance(val, Value):
                raise KodaError(ERR_VALUE, "object value must be a Value, got {}".format(
                    type(val).__name__))
            out.append((key, val))
        return cls(Kind.OBJECT, tuple(out))

    # ── Equality ──────────────────────────────────────────────
    # Structural, walked on an explicit stack.  FLOAT payloads compare as
    # equal when both are NaN, so every Value equals its decoded copy.

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Value):
            return NotImplemented
        stack = [(self, other)]
        while stack:
            a, b = stack.pop()
            if a is b:
                continue
            if a.kind is not b.kind:
                return False
            if a.kind is Kind.FLOAT:
                if not (a.payload == b.payload or
                        (math.isnan(a.payload) and math.isnan(b.payload))):
                    return False
            elif a.kind is Kind.ARRAY:
                if len(a.payload) != len(b.payload):
                    return False
                stack.extend(zip(a.payload, b.payload))
            elif a.kind is Kind.OBJECT:
                if len(a.payload) != len(b.payload):
                    return False
                for (ka, va), (kb, vb) in zip(a.payload, b.payload):
                    if ka != kb:
                        return False
                    stack.append((va, vb))
            elif a.payload != b.payload:
                return False
        return True

    def __hash__(self) -> int:
        parts: List[Any] = []
        stack = [self]
        while stack:
            v = stack.pop()
            if v.kind is Kind.ARRAY:
                parts.append((v.kind, len(v.payload)))
                stack.extend(reversed(v.payload))
            elif v.kind is Kind.OBJECT:
                parts.append((v.kind, len(v.payload)))
                parts.extend(key for key, _ in v.payload)
                stack.extend(child for _, child in reversed(v.payload))
            elif v.kind is Kind.FLOAT and math.isnan(v.payload):
                parts.append((v.kind, "NaN"))
            else:
                parts.append((v.kind, v.payload))
        return hash(tuple(parts))

    # ── Read helpers ──────────────────────────────────────────

    @property
    def is_container(self) -> bool:
        return self.kind is Kind.ARRAY or self.kind is Kind.OBJECT

    def items(self) -> Iterator[Any]:
        """Array elements, or object (key, value) pairs, in order."""
        if not self.is_container:
            raise TypeError("{} value has no items".format(self.kind.name))
        return iter(self.payload)

    def keys(self) -> List[str]:
        """Object keys in stored order; duplicates are repeated."""
        if self.kind is not Kind.OBJECT:
            raise TypeError("{} value has no keys".format(self.kind.name))
        return [k for k, _ in self.payload]

    def get(self, key: str, default: Any = None) -> Any:
        """Value of the first pair with `key`, like a JSON reader would pick."""
        if self.kind is not Kind.OBJECT:
            raise TypeError("{} value has no keys".format(self.kind.name))
        for k, v in self.payload:
            if k == key:
                return v
        return default


_NULL = Value(Kind.NULL, None)
_TRUE = Value(Kind.BOOL, True)
_FALSE = Value(Kind.BOOL, False)
