"""KODA text parser — text → Value.

The text form is JSON with a few conveniences:

    - `// line` and `/* block */` comments are whitespace;
    - object keys may be bare identifiers (`{name: "x"}`);
    - `NaN`, `Infinity` and `-Infinity` are FLOAT literals.

Integral number literals (no fraction, no exponent) that fit in int64 are
INT; everything else numeric is FLOAT.  Note this is exact 64-bit fit, not
the ±2**53 "safe integer" boundary, which applies only to host bindings.

The parser is a single left-to-right pass.  Nesting is tracked on an
explicit stack of open containers rather than with recursion, so
max_depth alone decides how deep a document may go.
"""

from __future__ import annotations

import re
from typing import List, Optional, Tuple, Union

from ._constants import DEFAULT_MAX_DEPTH, INT64_MAX, INT64_MIN
from ._errors import (
    ERR_DEPTH,
    ERR_SYNTAX,
    ERR_UTF8,
    SYNTAX_INVALID_ESCAPE,
    SYNTAX_TRAILING_CONTENT,
    SYNTAX_UNEXPECTED_TOKEN,
    SYNTAX_UNTERMINATED,
    KodaError,
    KodaParseError,
)
from ._value import Kind, Value, _FALSE, _NULL, _TRUE, validate_scalar_text

_WS = re.compile(r"[ \t\n\r]*")
_NUMBER = re.compile(r"-?(?:0|[1-9][0-9]*)(\.[0-9]+)?([eE][+-]?[0-9]+)?")
_IDENT = re.compile(r"[A-Za-z_$][A-Za-z0-9_$\-]*")
# Run of string characters needing no escape processing.
_PLAIN = re.compile(r'[^"\\\x00-\x1f]*')
_HEX4 = re.compile(r"[0-9A-Fa-f]{4}")

_SIMPLE_ESCAPES = {
    '"': '"',
    "\\": "\\",
    "/": "/",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
}

_LITERALS = {
    "null": _NULL,
    "true": _TRUE,
    "false": _FALSE,
    "NaN": Value(Kind.FLOAT, float("nan")),
    "Infinity": Value(Kind.FLOAT, float("inf")),
}


def parse(text: Union[str, bytes, bytearray], *,
          max_depth: int = DEFAULT_MAX_DEPTH) -> Value:
    """Parse one complete KODA text document into a Value.

    Raises KodaParseError (ERR_SYNTAX or ERR_DEPTH), or KodaError(ERR_UTF8)
    when given bytes that are not valid UTF-8 or a str holding a surrogate.
    """
    if isinstance(text, (bytes, bytearray)):
        try:
            text = bytes(text).decode("utf-8")
        except UnicodeDecodeError as e:
            raise KodaError(ERR_UTF8, "invalid utf-8 at byte {}".format(e.start))
    elif not isinstance(text, str):
        raise TypeError("parse expects str or bytes, got {}".format(type(text).__name__))
    else:
        validate_scalar_text(text)
    return _Parser(text, max_depth).parse_document()


class _Frame:
    """An open array or object on the parser stack."""

    __slots__ = ("kind", "items", "key")

    def __init__(self, kind: Kind) -> None:
        self.kind = kind
        self.items: list = []
        self.key: Optional[str] = None

    def add(self, value: Value) -> None:
        if self.kind is Kind.OBJECT:
            self.items.append((self.key, value))
            self.key = None
        else:
            self.items.append(value)

    def build(self) -> Value:
        return Value(self.kind, tuple(self.items))


class _Parser:
    def __init__(self, text: str, max_depth: int) -> None:
        self.text = text
        self.pos = 0
        self.max_depth = max_depth

    # ── Error helpers ─────────────────────────────────────────

    def _error(self, reason: str, msg: str, pos: Optional[int] = None,
               code: str = ERR_SYNTAX) -> KodaParseError:
        if pos is None:
            pos = self.pos
        line = self.text.count("\n", 0, pos) + 1
        column = pos - (self.text.rfind("\n", 0, pos) + 1) + 1
        return KodaParseError(
            code,
            "{} at line {}, column {}".format(msg, line, column),
            offset=pos, line=line, column=column,
            reason=reason if code == ERR_SYNTAX else None,
        )

    def _unexpected(self) -> KodaParseError:
        if self.pos >= len(self.text):
            return self._error(SYNTAX_UNTERMINATED, "unexpected end of input")
        return self._error(SYNTAX_UNEXPECTED_TOKEN,
                           "unexpected character {!r}".format(self.text[self.pos]))

    # ── Whitespace and comments ───────────────────────────────

    def _skip(self) -> None:
        text = self.text
        while True:
            self.pos = _WS.match(text, self.pos).end()
            if not text.startswith("/", self.pos):
                return
            nxt = text[self.pos + 1:self.pos + 2]
            if nxt == "/":
                end = text.find("\n", self.pos + 2)
                self.pos = len(text) if end == -1 else end + 1
            elif nxt == "*":
                end = text.find("*/", self.pos + 2)
                if end == -1:
                    raise self._error(SYNTAX_UNTERMINATED, "unterminated comment")
                self.pos = end + 2
            else:
                return

    # ── Document / containers ─────────────────────────────────

    def parse_document(self) -> Value:
        value = self._parse_value()
        self._skip()
        if self.pos != len(self.text):
            raise self._error(SYNTAX_TRAILING_CONTENT,
                              "trailing content after top-level value")
        return value

    def _parse_value(self) -> Value:
        text = self.text
        stack: List[_Frame] = []
        while True:
            self._skip()
            ch = text[self.pos:self.pos + 1]

            if ch == "[" or ch == "{":
                if len(stack) + 1 > self.max_depth:
                    raise self._error(None, "nesting depth exceeds max_depth {}".format(
                        self.max_depth), code=ERR_DEPTH)
                self.pos += 1
                frame = _Frame(Kind.ARRAY if ch == "[" else Kind.OBJECT)
                closer = "]" if ch == "[" else "}"
                self._skip()
                if text.startswith(closer, self.pos):
                    self.pos += 1
                    value = frame.build()
                else:
                    stack.append(frame)
                    if frame.kind is Kind.OBJECT:
                        frame.key = self._parse_key()
                    continue
            else:
                value = self._parse_scalar()

            # Hand the finished value to its enclosing containers, closing
            # every container whose last element this was.
            while True:
                if not stack:
                    return value
                frame = stack[-1]
                frame.add(value)
                self._skip()
                ch = text[self.pos:self.pos + 1]
                if ch == ",":
                    self.pos += 1
                    if frame.kind is Kind.OBJECT:
                        frame.key = self._parse_key()
                    break
                if ch == ("]" if frame.kind is Kind.ARRAY else "}"):
                    self.pos += 1
                    stack.pop()
                    value = frame.build()
                    continue
                raise self._unexpected()

    def _parse_key(self) -> str:
        """Read `key :` and leave pos after the colon."""
        self._skip()
        text = self.text
        if text.startswith('"', self.pos):
            key = self._parse_string()
        else:
            m = _IDENT.match(text, self.pos)
            if m is None:
                raise self._unexpected()
            key = m.group()
            self.pos = m.end()
        self._skip()
        if not text.startswith(":", self.pos):
            raise self._unexpected()
        self.pos += 1
        return key

    # ── Scalars ───────────────────────────────────────────────

    def _parse_scalar(self) -> Value:
        text = self.text
        ch = text[self.pos:self.pos + 1]
        if ch == '"':
            return Value(Kind.STRING, self._parse_string())
        if ch == "-" or ch.isdigit():
            m = _IDENT.match(text, self.pos + 1) if ch == "-" else None
            if m is not None:
                if m.group() != "Infinity":
                    raise self._unexpected()
                self.pos = m.end()
                return Value(Kind.FLOAT, float("-inf"))
            return self._parse_number()
        m = _IDENT.match(text, self.pos)
        if m is not None and m.group() in _LITERALS:
            self.pos = m.end()
            return _LITERALS[m.group()]
        raise self._unexpected()

    def _parse_number(self) -> Value:
        m = _NUMBER.match(self.text, self.pos)
        # ch.isdigit() admits non-ASCII digits the pattern rejects.
        if m is None or not m.group():
            raise self._unexpected()
        token = m.group()
        self.pos = m.end()
        # Anything longer than 20 chars is out of int64 range anyway.
        if m.group(1) is None and m.group(2) is None and len(token) <= 20:
            n = int(token)
            if INT64_MIN <= n <= INT64_MAX:
                return Value(Kind.INT, n)
        return Value(Kind.FLOAT, float(token))

    def _parse_string(self) -> str:
        text = self.text
        start = self.pos
        self.pos += 1  # opening quote
        chunks: List[str] = []
        while True:
            m = _PLAIN.match(text, self.pos)
            chunks.append(m.group())
            self.pos = m.end()
            if self.pos >= len(text):
                raise self._error(SYNTAX_UNTERMINATED, "unterminated string", start)
            ch = text[self.pos]
            if ch == '"':
                self.pos += 1
                return "".join(chunks)
            if ch == "\\":
                chunks.append(self._parse_escape())
                continue
            raise self._error(SYNTAX_UNEXPECTED_TOKEN,
                              "unescaped control character U+{:04X} in string".format(ord(ch)))

    def _parse_escape(self) -> str:
        text = self.text
        start = self.pos
        esc = text[self.pos + 1:self.pos + 2]
        if not esc:
            raise self._error(SYNTAX_UNTERMINATED, "unterminated string", start)
        if esc in _SIMPLE_ESCAPES:
            self.pos += 2
            return _SIMPLE_ESCAPES[esc]
        if esc != "u":
            raise self._error(SYNTAX_INVALID_ESCAPE,
                              "invalid escape sequence \\{}".format(esc), start)

        cp, self.pos = self._read_hex4(start, self.pos + 2)
        if 0xDC00 <= cp <= 0xDFFF:
            raise self._error(SYNTAX_INVALID_ESCAPE, "unpaired low surrogate escape", start)
        if 0xD800 <= cp <= 0xDBFF:
            # A high surrogate must be followed by \u + low surrogate.
            if not text.startswith("\\u", self.pos):
                raise self._error(SYNTAX_INVALID_ESCAPE, "unpaired high surrogate escape", start)
            low, end = self._read_hex4(start, self.pos + 2)
            if not 0xDC00 <= low <= 0xDFFF:
                raise self._error(SYNTAX_INVALID_ESCAPE, "unpaired high surrogate escape", start)
            self.pos = end
            cp = 0x10000 + ((cp - 0xD800) << 10) + (low - 0xDC00)
        return chr(cp)

    def _read_hex4(self, start: int, pos: int) -> Tuple[int, int]:
        m = _HEX4.match(self.text, pos)
        if m is None:
            if len(self.text) - pos < 4 and re.fullmatch(r"[0-9A-Fa-f]*", self.text[pos:]):
                raise self._error(SYNTAX_UNTERMINATED, "unterminated string", start)
            raise self._error(SYNTAX_INVALID_ESCAPE, "invalid \\u escape", start)
        return int(m.group(), 16), m.end()
