"""KODA constants — binary header, node tags, and default resource limits.

The limits below are defaults only.  Every public operation takes its own
keyword overrides, so two concurrent calls can run with different limits.
"""

from __future__ import annotations

# 5-byte binary header: ASCII "KODA" + format version byte.
# The version byte is bumped only for incompatible changes to the node
# layout; decoders reject versions they don't know.
FORMAT_MAGIC = b"KODA"
FORMAT_VERSION: int = 0x01
BINARY_HDR = FORMAT_MAGIC + bytes([FORMAT_VERSION])

# ── Node tags (single byte each) ─────────────────────────────
# One tag per Value kind, plus two extra string forms used by the
# per-buffer dictionary.  All three string tags decode to a STRING value.
TAG_NULL: int = 0x00        # no payload
TAG_BOOL: int = 0x01        # u8, 0x00 or 0x01
TAG_INT: int = 0x02         # int64 big-endian, always 8 bytes
TAG_FLOAT: int = 0x03       # IEEE-754 binary64 big-endian, always 8 bytes
TAG_STRING: int = 0x04      # u32be length + UTF-8, not interned
TAG_ARRAY: int = 0x05       # u32be count + count nodes
TAG_OBJECT: int = 0x06      # u32be count + count (key node, value node)
TAG_STRING_DEF: int = 0x07  # u32be length + UTF-8, appended to dictionary
TAG_STRING_REF: int = 0x08  # u32be dictionary index

STRING_TAGS = frozenset((TAG_STRING, TAG_STRING_DEF, TAG_STRING_REF))

# Smallest possible encoding of an array element (a bare NULL tag) and of
# an object pair (STRING_REF key + NULL value).  Used to reject counts that
# cannot possibly fit in the bytes that remain.
MIN_ARRAY_ITEM_BYTES: int = 1
MIN_OBJECT_PAIR_BYTES: int = 6

U32_MAX: int = 0xFFFFFFFF

# ── Signed 64-bit integer range ──────────────────────────────
# Python ints are arbitrary-precision, so INT values are range-checked
# explicitly on construction and when parsing text.
INT64_MIN: int = -(2**63)
INT64_MAX: int = 2**63 - 1

# ── Default resource limits ──────────────────────────────────
DEFAULT_MAX_DEPTH: int = 256
DEFAULT_MAX_DICTIONARY_SIZE: int = 65_536
DEFAULT_MAX_STRING_LENGTH: int = 1_000_000
