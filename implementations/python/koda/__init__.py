"""koda — KODA (Compact Object Data Architecture) for Python.

A small dynamically-typed value model with two interchangeable forms:
human-readable text (.koda) and a compact binary encoding (.kod) with
per-buffer string dictionary compression.

Quick start:
    >>> import koda
    >>> v = koda.parse('{"name": "koda", "tags": ["a", "b"], "n": 1}')
    >>> koda.stringify(v)
    '{"name":"koda","tags":["a","b"],"n":1}'
    >>> koda.decode(koda.encode(v)) == v
    True

Values are built with the Value constructors:
    >>> from koda import Value
    >>> koda.stringify(Value.object([("a", Value.integer(1)),
    ...                              ("a", Value.floating(2))]))
    '{"a":1,"a":2.0}'

Every operation is pure and takes its resource limits as keyword
arguments; failures raise KodaError subclasses whose `.code` is one of the
ERR_* constants.
"""

from __future__ import annotations

import os
from typing import Optional, Union

from ._async import DecoderPool, decode_async
from ._constants import (
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_DICTIONARY_SIZE,
    DEFAULT_MAX_STRING_LENGTH,
    FORMAT_VERSION,
)
from ._decoder import decode
from ._encoder import encode
from ._errors import (
    ERR_DEPTH,
    ERR_EOF,
    ERR_HEADER,
    ERR_LIMIT,
    ERR_MALFORMED,
    ERR_REFERENCE,
    ERR_SYNTAX,
    ERR_TAG,
    ERR_TRAILING,
    ERR_UTF8,
    ERR_VALUE,
    SYNTAX_INVALID_ESCAPE,
    SYNTAX_TRAILING_CONTENT,
    SYNTAX_UNEXPECTED_TOKEN,
    SYNTAX_UNTERMINATED,
    KodaDecodeError,
    KodaEncodeError,
    KodaError,
    KodaParseError,
)
from ._parser import parse
from ._printer import stringify
from ._value import Kind, Value

__version__ = "1.0.0"

__all__ = [
    # Core operations
    "parse",
    "stringify",
    "encode",
    "decode",
    "decode_async",
    "DecoderPool",
    "load_file",
    "save_file",
    # Value model
    "Value",
    "Kind",
    # Exceptions
    "KodaError",
    "KodaParseError",
    "KodaEncodeError",
    "KodaDecodeError",
    # Error codes
    "ERR_SYNTAX",
    "ERR_DEPTH",
    "ERR_EOF",
    "ERR_TAG",
    "ERR_REFERENCE",
    "ERR_LIMIT",
    "ERR_HEADER",
    "ERR_TRAILING",
    "ERR_MALFORMED",
    "ERR_UTF8",
    "ERR_VALUE",
    "SYNTAX_UNEXPECTED_TOKEN",
    "SYNTAX_UNTERMINATED",
    "SYNTAX_INVALID_ESCAPE",
    "SYNTAX_TRAILING_CONTENT",
    # Defaults
    "DEFAULT_MAX_DEPTH",
    "DEFAULT_MAX_DICTIONARY_SIZE",
    "DEFAULT_MAX_STRING_LENGTH",
    "FORMAT_VERSION",
]

PathLike = Union[str, "os.PathLike[str]"]


# ── Text files ────────────────────────────────────────────────

def load_file(path: PathLike, *, max_depth: int = DEFAULT_MAX_DEPTH) -> Value:
    """Read a UTF-8 .koda text file and parse it."""
    with open(path, "r", encoding="utf-8") as f:
        return parse(f.read(), max_depth=max_depth)


def save_file(path: PathLike, value: Value, *, indent: Optional[int] = None) -> None:
    """Stringify `value` and write it to `path` as UTF-8."""
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(stringify(value, indent=indent))
