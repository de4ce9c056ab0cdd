"""KODA binary decoder — bytes → Value.

This is the side that sees untrusted input, so every field read from the
buffer is checked before it is used:

    - lengths and counts against the bytes that remain (ERR_EOF);
    - string lengths against max_string_length, *before* the remaining
      check, so a huge declared length is a limit violation no matter how
      short the buffer is (ERR_LIMIT);
    - dictionary growth against max_dictionary_size (ERR_LIMIT);
    - dictionary references: an index at or past the cap is ERR_LIMIT,
      an index under the cap but not yet defined is ERR_REFERENCE;
    - container nesting against max_depth (ERR_DEPTH).

Containers are decoded on an explicit stack and never pre-allocated from
a count, so neither a deep nor a wide hostile buffer can exhaust the
Python call stack or memory ahead of the bytes actually present.
Any failure raises KodaDecodeError; there is no partial result.
"""

from __future__ import annotations

import struct
from typing import List, Optional, Union

from ._constants import (
    BINARY_HDR,
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_DICTIONARY_SIZE,
    DEFAULT_MAX_STRING_LENGTH,
    FORMAT_MAGIC,
    MIN_ARRAY_ITEM_BYTES,
    MIN_OBJECT_PAIR_BYTES,
    STRING_TAGS,
    TAG_ARRAY,
    TAG_BOOL,
    TAG_FLOAT,
    TAG_INT,
    TAG_NULL,
    TAG_OBJECT,
    TAG_STRING_DEF,
    TAG_STRING_REF,
)
from ._errors import (
    ERR_DEPTH,
    ERR_EOF,
    ERR_HEADER,
    ERR_LIMIT,
    ERR_MALFORMED,
    ERR_REFERENCE,
    ERR_TAG,
    ERR_TRAILING,
    ERR_UTF8,
    KodaDecodeError,
)
from ._value import Kind, Value, _FALSE, _NULL, _TRUE

_U32 = struct.Struct(">I")
_I64 = struct.Struct(">q")
_F64 = struct.Struct(">d")


def decode(buffer: Union[bytes, bytearray, memoryview], *,
           max_depth: int = DEFAULT_MAX_DEPTH,
           max_dictionary_size: int = DEFAULT_MAX_DICTIONARY_SIZE,
           max_string_length: int = DEFAULT_MAX_STRING_LENGTH) -> Value:
    """Decode a complete KODA binary buffer into a Value."""
    if not isinstance(buffer, bytes):
        if not isinstance(buffer, (bytearray, memoryview)):
            raise TypeError("decode expects a bytes-like buffer, got {}".format(
                type(buffer).__name__))
        buffer = bytes(buffer)
    return _Decoder(buffer, max_depth, max_dictionary_size, max_string_length).run()


class _Frame:
    """An open container: how many children remain and what we have so far."""

    __slots__ = ("kind", "remaining", "items", "key")

    def __init__(self, kind: Kind, count: int) -> None:
        self.kind = kind
        self.remaining = count
        self.items: list = []
        self.key: Optional[str] = None


class _Decoder:
    def __init__(self, buf: bytes, max_depth: int, max_dictionary_size: int,
                 max_string_length: int) -> None:
        self.buf = buf
        self.off = 0
        self.max_depth = max_depth
        self.max_dictionary_size = max_dictionary_size
        self.max_string_length = max_string_length
        self.dictionary: List[str] = []

    def _fail(self, code: str, msg: str, off: Optional[int] = None) -> KodaDecodeError:
        if off is None:
            off = self.off
        return KodaDecodeError(code, "{} at offset {}".format(msg, off), offset=off)

    # ── Primitive reads ───────────────────────────────────────

    def _need(self, n: int, what: str) -> None:
        if n > len(self.buf) - self.off:
            raise self._fail(ERR_EOF, "truncated {}".format(what))

    def _read_u8(self, what: str) -> int:
        self._need(1, what)
        b = self.buf[self.off]
        self.off += 1
        return b

    def _read_u32(self, what: str) -> int:
        self._need(4, what)
        n = _U32.unpack_from(self.buf, self.off)[0]
        self.off += 4
        return n

    # ── Top level ─────────────────────────────────────────────

    def run(self) -> Value:
        self._read_header()
        value = self._read_root()
        if self.off != len(self.buf):
            raise self._fail(ERR_TRAILING, "{} trailing bytes after root value".format(
                len(self.buf) - self.off))
        return value

    def _read_header(self) -> None:
        hdr = self.buf[:len(BINARY_HDR)]
        if not FORMAT_MAGIC.startswith(hdr[:len(FORMAT_MAGIC)]):
            raise self._fail(ERR_HEADER, "bad magic", 0)
        if len(hdr) < len(BINARY_HDR):
            raise self._fail(ERR_EOF, "truncated header", len(hdr))
        if hdr != BINARY_HDR:
            raise self._fail(ERR_HEADER, "unsupported format version 0x{:02x}".format(
                hdr[-1]), len(FORMAT_MAGIC))
        self.off = len(BINARY_HDR)

    def _read_root(self) -> Value:
        stack: List[_Frame] = []
        while True:
            if stack and stack[-1].kind is Kind.OBJECT:
                stack[-1].key = self._read_key()

            tag_off = self.off
            tag = self._read_u8("node tag")

            if tag == TAG_ARRAY or tag == TAG_OBJECT:
                if len(stack) + 1 > self.max_depth:
                    raise self._fail(ERR_DEPTH, "nesting depth exceeds max_depth {}".format(
                        self.max_depth), tag_off)
                count = self._read_u32("container count")
                if tag == TAG_ARRAY:
                    kind, min_bytes = Kind.ARRAY, MIN_ARRAY_ITEM_BYTES
                else:
                    kind, min_bytes = Kind.OBJECT, MIN_OBJECT_PAIR_BYTES
                if count * min_bytes > len(self.buf) - self.off:
                    raise self._fail(ERR_EOF, "container count {} exceeds remaining bytes".format(
                        count))
                if count:
                    stack.append(_Frame(kind, count))
                    continue
                value = Value(kind, ())
            else:
                value = self._read_scalar(tag, tag_off)

            # Attach to the enclosing containers, closing each one whose
            # last child this was.
            while True:
                if not stack:
                    return value
                frame = stack[-1]
                if frame.kind is Kind.OBJECT:
                    frame.items.append((frame.key, value))
                else:
                    frame.items.append(value)
                frame.remaining -= 1
                if frame.remaining:
                    break
                stack.pop()
                value = Value(frame.kind, tuple(frame.items))

    def _read_key(self) -> str:
        tag_off = self.off
        tag = self._read_u8("object key tag")
        if tag not in STRING_TAGS:
            raise self._fail(ERR_TAG, "object key must be a string, got tag 0x{:02x}".format(
                tag), tag_off)
        return self._read_string(tag)

    # ── Scalars ───────────────────────────────────────────────

    def _read_scalar(self, tag: int, tag_off: int) -> Value:
        if tag == TAG_NULL:
            return _NULL

        if tag == TAG_BOOL:
            payload = self._read_u8("boolean payload")
            if payload == 0x01:
                return _TRUE
            if payload == 0x00:
                return _FALSE
            raise self._fail(ERR_MALFORMED, "invalid boolean payload 0x{:02x}".format(
                payload), self.off - 1)

        if tag == TAG_INT:
            self._need(8, "integer payload")
            n = _I64.unpack_from(self.buf, self.off)[0]
            self.off += 8
            return Value(Kind.INT, n)

        if tag == TAG_FLOAT:
            self._need(8, "float payload")
            f = _F64.unpack_from(self.buf, self.off)[0]
            self.off += 8
            return Value(Kind.FLOAT, f)

        if tag in STRING_TAGS:
            return Value(Kind.STRING, self._read_string(tag))

        raise self._fail(ERR_TAG, "unknown tag 0x{:02x}".format(tag), tag_off)

    def _read_string(self, tag: int) -> str:
        if tag == TAG_STRING_REF:
            index_off = self.off
            index = self._read_u32("dictionary index")
            if index >= self.max_dictionary_size:
                raise self._fail(ERR_LIMIT, "dictionary index {} exceeds max_dictionary_size {}".format(
                    index, self.max_dictionary_size), index_off)
            if index >= len(self.dictionary):
                raise self._fail(ERR_REFERENCE, "dictionary index {} not defined ({} entries)".format(
                    index, len(self.dictionary)), index_off)
            return self.dictionary[index]

        if tag == TAG_STRING_DEF and len(self.dictionary) >= self.max_dictionary_size:
            raise self._fail(ERR_LIMIT, "dictionary exceeds max_dictionary_size {}".format(
                self.max_dictionary_size), self.off - 1)

        len_off = self.off
        n = self._read_u32("string length")
        if n > self.max_string_length:
            raise self._fail(ERR_LIMIT, "string length {} exceeds max_string_length {}".format(
                n, self.max_string_length), len_off)
        self._need(n, "string payload")
        raw = self.buf[self.off:self.off + n]
        try:
            s = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise self._fail(ERR_UTF8, "invalid utf-8 in string", self.off + e.start)
        self.off += n

        if tag == TAG_STRING_DEF:
            self.dictionary.append(s)
        return s
