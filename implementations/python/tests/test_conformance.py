"""KODA conformance test suite.

Runs all vectors from koda_vectors.json against koda_expected.json.

Each vector is one of three modes:
    decode  input_hex is a binary buffer; the result is its stringify() text
    parse   input_text is a text document; the result is its stringify() text
    encode  input_text is parsed with default limits, then encoded; the
            result is the buffer as lowercase hex
Optional max_depth / max_dictionary_size / max_string_length keys apply
to the operation under test.

Usage:
    python tests/test_conformance.py [--vectors-dir DIR]
    python -m pytest tests/test_conformance.py -v
    KODA_VECTORS_DIR=../../conformance python tests/test_conformance.py
"""

from __future__ import annotations

import argparse
import json
import os
import sys
import unittest
from typing import Any, Dict, List, Optional, Tuple

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from koda import KodaError, decode, encode, parse, stringify

# ── Locate conformance data ───────────────────────────────────

_VECTORS_DIR: Optional[str] = os.environ.get("KODA_VECTORS_DIR", None)

_VECTORS_FILE = "koda_vectors.json"
_EXPECTED_FILE = "koda_expected.json"

_LIMIT_KEYS = ("max_depth", "max_dictionary_size", "max_string_length")


def _find_vectors_dir() -> str:
    if _VECTORS_DIR:
        return _VECTORS_DIR
    candidates = [
        os.path.join(os.path.dirname(__file__), "..", "..", "..", "conformance"),
        os.path.join(os.path.dirname(__file__), "..", "..", "conformance"),
        os.path.join(os.path.dirname(__file__), "..", "conformance"),
    ]
    for d in candidates:
        if os.path.isfile(os.path.join(d, _VECTORS_FILE)):
            return d
    raise FileNotFoundError(
        "Cannot find conformance vectors. Set KODA_VECTORS_DIR or --vectors-dir."
    )


def _load_data() -> Tuple[List[dict], Dict[str, dict], int]:
    """Load vectors and expected values.  Returns (vectors, expected, format_version)."""
    d = _find_vectors_dir()
    with open(os.path.join(d, _VECTORS_FILE), "r", encoding="utf-8") as f:
        doc = json.load(f)
    with open(os.path.join(d, _EXPECTED_FILE), "r", encoding="utf-8") as f:
        expected = json.load(f)["expected"]
    return doc["vectors"], expected, doc.get("format_version", 1)


def _run_vector(vec: dict) -> Dict[str, Any]:
    """Execute one conformance vector.  Returns {"text"|"hex": ...} or {"err": ...}."""
    mode = vec["mode"]
    limits = {k: vec[k] for k in _LIMIT_KEYS if k in vec}

    try:
        if mode == "decode":
            buf = bytes.fromhex(vec["input_hex"])
            return {"text": stringify(decode(buf, **limits))}
        elif mode == "parse":
            return {"text": stringify(parse(vec["input_text"], **limits))}
        elif mode == "encode":
            value = parse(vec["input_text"])
            return {"hex": encode(value, **limits).hex()}
        else:
            return {"err": "UNKNOWN_MODE"}
    except KodaError as e:
        return {"err": e.code}


# ── unittest integration ──────────────────────────────────────

class ConformanceTests(unittest.TestCase):
    """Dynamically generated: one test method per vector."""
    pass


def _make_test(vec: dict, exp: dict):
    def test_fn(self: unittest.TestCase) -> None:
        got = _run_vector(vec)
        self.assertEqual(got, exp,
                         "{}: got {} expected {}".format(vec["test_id"], got, exp))
    return test_fn


# Attach test methods at import time.
try:
    _vectors, _expected, _version = _load_data()
    for _vec in _vectors:
        _tid = _vec["test_id"]
        _exp = _expected[_tid]
        _fn = _make_test(_vec, _exp)
        _fn.__name__ = "test_{}".format(_tid)
        _fn.__qualname__ = "ConformanceTests.test_{}".format(_tid)
        setattr(ConformanceTests, "test_{}".format(_tid), _fn)
except FileNotFoundError:
    pass


# ── Standalone CLI runner ─────────────────────────────────────

def main() -> None:
    global _VECTORS_DIR

    parser = argparse.ArgumentParser(description="KODA conformance runner")
    parser.add_argument("--vectors-dir", default=None,
                        help="Directory with conformance vector files")
    args, _remaining = parser.parse_known_args()

    if args.vectors_dir:
        _VECTORS_DIR = args.vectors_dir
        os.environ["KODA_VECTORS_DIR"] = args.vectors_dir

    vectors, expected, version = _load_data()

    passed = 0
    failed = 0
    failures: List[Tuple[str, dict, dict]] = []

    for vec in vectors:
        tid = vec["test_id"]
        got = _run_vector(vec)
        exp = expected[tid]
        if got == exp:
            passed += 1
        else:
            failed += 1
            failures.append((tid, got, exp))

    total = passed + failed
    print("CONFORMANCE (format v{}): {}/{} PASS".format(version, passed, total))
    for tid, got, exp in failures:
        print("  FAIL {}: got={} expected={}".format(tid, got, exp))

    sys.exit(1 if failed else 0)


if __name__ == "__main__":
    main()
