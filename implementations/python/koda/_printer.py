"""KODA text printer — Value → text.

Output is canonical for a given indent setting: object pairs print in
stored order (duplicates included), strings use the same escape table the
parser accepts, INT prints as bare digits and FLOAT always carries a
'.', an exponent, or one of NaN / Infinity / -Infinity, so the INT/FLOAT
split survives a parse(stringify(v)) round trip.
"""

from __future__ import annotations

import math
import re
from typing import List, Optional

from ._errors import ERR_VALUE, KodaError
from ._value import Kind, Value

_NEEDS_ESCAPE = re.compile(r'["\\\x00-\x1f]')

_SHORT_ESCAPES = {
    '"': '\\"',
    "\\": "\\\\",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}


def _escape_char(m: "re.Match[str]") -> str:
    ch = m.group()
    return _SHORT_ESCAPES.get(ch) or "\\u{:04x}".format(ord(ch))


def quote_string(s: str) -> str:
    return '"' + _NEEDS_ESCAPE.sub(_escape_char, s) + '"'


def format_float(f: float) -> str:
    f = float(f)
    if math.isnan(f):
        return "NaN"
    if math.isinf(f):
        return "Infinity" if f > 0 else "-Infinity"
    # repr() is the shortest round-tripping form and always has '.' or 'e'.
    return repr(f)


def _scalar_text(value: Value) -> str:
    kind = value.kind
    if kind is Kind.NULL:
        return "null"
    if kind is Kind.BOOL:
        return "true" if value.payload else "false"
    if kind is Kind.INT:
        return str(value.payload)
    if kind is Kind.FLOAT:
        return format_float(value.payload)
    if kind is Kind.STRING:
        return quote_string(value.payload)
    raise KodaError(ERR_VALUE, "unknown value kind {!r}".format(kind))


def stringify(value: Value, *, indent: Optional[int] = None) -> str:
    """Serialize a Value to KODA text.

    With indent=None (or 0) the output is compact.  A positive indent
    puts each element on its own line, indented that many spaces per level.
    """
    pad = " " * indent if indent else ""
    colon = ": " if pad else ":"
    out: List[str] = []

    # Work stack: plain strings are emitted as-is, (value, level) tuples
    # are expanded.  Children are pushed in reverse so they pop in order.
    stack: list = [(value, 0)]
    while stack:
        item = stack.pop()
        if isinstance(item, str):
            out.append(item)
            continue
        node, level = item
        kind = node.kind
        if kind is not Kind.ARRAY and kind is not Kind.OBJECT:
            out.append(_scalar_text(node))
            continue

        opener, closer = ("[", "]") if kind is Kind.ARRAY else ("{", "}")
        if not node.payload:
            out.append(opener + closer)
            continue

        inner = "\n" + pad * (level + 1) if pad else ""
        parts: list = [opener]
        for i, child in enumerate(node.payload):
            if i:
                parts.append(",")
            if inner:
                parts.append(inner)
            if kind is Kind.OBJECT:
                key, child = child
                parts.append(quote_string(key) + colon)
            parts.append((child, level + 1))
        if pad:
            parts.append("\n" + pad * level)
        parts.append(closer)
        stack.extend(reversed(parts))

    return "".join(out)
