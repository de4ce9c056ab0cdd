"""KODA binary encoder — Value → bytes.

Layout (all integers big-endian):

    buffer  = "KODA" 0x01  node
    NULL    0x00
    BOOL    0x01  u8 (0x00 | 0x01)
    INT     0x02  i64
    FLOAT   0x03  f64
    STRING  0x04  u32 len  utf-8        inline, not interned
    ARRAY   0x05  u32 count  node*
    OBJECT  0x06  u32 count  (key value)*   key is one of the string forms
    DEF     0x07  u32 len  utf-8        new dictionary entry
    REF     0x08  u32 index             earlier dictionary entry

Dictionary compression: the first occurrence of a string (key or value)
is written as DEF and gets the next index; every later occurrence is a
5-byte REF.  The dictionary lives for one encode() call only.  When it
reaches max_dictionary_size entries, new strings fall back to inline
STRING so the output never needs a bigger dictionary than the decoder's
default allows.

Encoding is deterministic: a plain dict keyed by string content, filled
in traversal order, decides every index.
"""

from __future__ import annotations

import struct
from typing import Dict, List, Tuple, Union

from ._constants import (
    BINARY_HDR,
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_DICTIONARY_SIZE,
    TAG_ARRAY,
    TAG_BOOL,
    TAG_FLOAT,
    TAG_INT,
    TAG_NULL,
    TAG_OBJECT,
    TAG_STRING,
    TAG_STRING_DEF,
    TAG_STRING_REF,
    U32_MAX,
)
from ._errors import ERR_DEPTH, ERR_LIMIT, ERR_UTF8, ERR_VALUE, KodaEncodeError
from ._value import Kind, Value

_U32 = struct.Struct(">I")
_I64 = struct.Struct(">q")
_F64 = struct.Struct(">d")


def _u32be(n: int) -> bytes:
    if n < 0 or n > U32_MAX:
        raise KodaEncodeError(ERR_LIMIT, "length or count {} exceeds u32".format(n))
    return _U32.pack(n)


def encode(value: Value, *, max_depth: int = DEFAULT_MAX_DEPTH,
           max_dictionary_size: int = DEFAULT_MAX_DICTIONARY_SIZE) -> bytes:
    """Encode a Value to KODA binary.

    Raises KodaEncodeError with ERR_DEPTH when the tree nests deeper than
    max_depth containers.
    """
    return _Encoder(max_depth, max_dictionary_size).run(value)


class _Encoder:
    def __init__(self, max_depth: int, max_dictionary_size: int) -> None:
        self.max_depth = max_depth
        self.max_dictionary_size = max_dictionary_size
        self.dictionary: Dict[str, int] = {}
        self.out = bytearray(BINARY_HDR)

    def run(self, root: Value) -> bytes:
        # Pre-order walk on an explicit stack.  Items are (node, level)
        # where level counts the containers enclosing node; a bare str is
        # an object key waiting to be written.
        stack: List[Union[str, Tuple[Value, int]]] = [(root, 0)]
        out = self.out
        while stack:
            item = stack.pop()
            if isinstance(item, str):
                self._write_string(item)
                continue
            node, level = item
            kind = node.kind

            if kind is Kind.NULL:
                out.append(TAG_NULL)
            elif kind is Kind.BOOL:
                out.append(TAG_BOOL)
                out.append(0x01 if node.payload else 0x00)
            elif kind is Kind.INT:
                out.append(TAG_INT)
                try:
                    out += _I64.pack(node.payload)
                except struct.error:
                    raise KodaEncodeError(ERR_VALUE, "integer out of int64 range")
            elif kind is Kind.FLOAT:
                out.append(TAG_FLOAT)
                out += _F64.pack(node.payload)
            elif kind is Kind.STRING:
                self._write_string(node.payload)
            elif kind is Kind.ARRAY:
                self._check_depth(level)
                out.append(TAG_ARRAY)
                out += _u32be(len(node.payload))
                for child in reversed(node.payload):
                    stack.append((child, level + 1))
            elif kind is Kind.OBJECT:
                self._check_depth(level)
                out.append(TAG_OBJECT)
                out += _u32be(len(node.payload))
                for key, child in reversed(node.payload):
                    stack.append((child, level + 1))
                    stack.append(key)
            else:
                raise KodaEncodeError(ERR_VALUE, "unknown value kind {!r}".format(kind))
        return bytes(out)

    def _check_depth(self, level: int) -> None:
        if level + 1 > self.max_depth:
            raise KodaEncodeError(ERR_DEPTH, "nesting depth exceeds max_depth {}".format(
                self.max_depth))

    def _write_string(self, s: str) -> None:
        out = self.out
        index = self.dictionary.get(s)
        if index is not None:
            out.append(TAG_STRING_REF)
            out += _U32.pack(index)
            return
        try:
            raw = s.encode("utf-8")
        except UnicodeEncodeError:
            raise KodaEncodeError(ERR_UTF8, "string contains a surrogate code point")
        if len(self.dictionary) < self.max_dictionary_size:
            self.dictionary[s] = len(self.dictionary)
            out.append(TAG_STRING_DEF)
        else:
            out.append(TAG_STRING)
        out += _u32be(len(raw))
        out += raw
