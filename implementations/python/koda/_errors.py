"""KODA error codes and exception classes.

Every failure raised by this package is a KodaError.  The `.code`
attribute is one of the ERR_* strings below and is what callers (and the
conformance suite) compare against; the subclasses only say which
operation detected the problem and carry its position.
"""

from __future__ import annotations

from typing import Optional

# ── Error codes ──────────────────────────────────────────────

ERR_SYNTAX: str = "ERR_SYNTAX"            # malformed text
ERR_DEPTH: str = "ERR_DEPTH"              # nesting deeper than max_depth
ERR_EOF: str = "ERR_EOF"                  # binary buffer truncated
ERR_TAG: str = "ERR_TAG"                  # unknown or misplaced node tag
ERR_REFERENCE: str = "ERR_REFERENCE"      # dictionary index not yet defined
ERR_LIMIT: str = "ERR_LIMIT"              # dictionary/string/u32 cap exceeded
ERR_HEADER: str = "ERR_HEADER"            # bad magic or unknown format version
ERR_TRAILING: str = "ERR_TRAILING"        # bytes left after the root node
ERR_MALFORMED: str = "ERR_MALFORMED"      # fixed-width payload out of domain
ERR_UTF8: str = "ERR_UTF8"                # invalid UTF-8 or surrogate
ERR_VALUE: str = "ERR_VALUE"              # invalid Value construction

# ── Syntax error reasons ─────────────────────────────────────
# KodaParseError.reason for ERR_SYNTAX, so callers can tell the
# failure modes apart without matching on message text.

SYNTAX_UNEXPECTED_TOKEN: str = "unexpected-token"
SYNTAX_UNTERMINATED: str = "unterminated"
SYNTAX_INVALID_ESCAPE: str = "invalid-escape"
SYNTAX_TRAILING_CONTENT: str = "trailing-content"


class KodaError(Exception):
    """Base exception for KODA processing errors."""

    def __init__(self, code: str, msg: str = "") -> None:
        super().__init__(msg or code)
        self.code = code

    def __reduce__(self):
        # Keep code and message intact across pickling (DecoderPool).
        return (self.__class__, (self.code, str(self)))


class KodaParseError(KodaError):
    """Text parse failure.

    `offset` is the 0-based character index of the problem; `line` and
    `column` are 1-based.  `reason` is set for ERR_SYNTAX only.
    """

    def __init__(self, code: str, msg: str = "", offset: int = 0,
                 line: int = 1, column: int = 1,
                 reason: Optional[str] = None) -> None:
        super().__init__(code, msg)
        self.offset = offset
        self.line = line
        self.column = column
        self.reason = reason

    def __reduce__(self):
        return (self.__class__, (self.code, str(self), self.offset,
                                 self.line, self.column, self.reason))


class KodaEncodeError(KodaError):
    """Binary encode failure."""


class KodaDecodeError(KodaError):
    """Binary decode failure at byte `offset` of the input buffer."""

    def __init__(self, code: str, msg: str = "", offset: int = 0) -> None:
        super().__init__(code, msg)
        self.offset = offset

    def __reduce__(self):
        return (self.__class__, (self.code, str(self), self.offset))
