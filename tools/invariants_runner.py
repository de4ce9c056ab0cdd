#!/usr/bin/env python3
# tools/invariants_runner.py
#
# Round-trip and determinism invariants (property tests) for koda.
#
# This runner:
# - generates random Values (all seven kinds, duplicate keys, shared strings)
# - checks text and binary round trips and encoder determinism
# - checks that a capped encoder dictionary still round-trips under the same cap
#
# Exit code:
#   0 -> all checks passed
#   1 -> invariant violation

import os, sys, json, random
from typing import Any, Optional

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, os.path.join(ROOT, "implementations", "python"))

from koda import Value, decode, encode, parse, stringify

SEED = int(os.environ.get("KODA_SEED", "1337"))
TRIALS = int(os.environ.get("KODA_TRIALS", "2000"))
MAX_GEN_DEPTH = int(os.environ.get("KODA_GEN_MAX_DEPTH", "6"))
MAX_KEYS = int(os.environ.get("KODA_GEN_MAX_KEYS", "6"))
MAX_LIST = int(os.environ.get("KODA_GEN_MAX_LIST", "6"))
MAX_STR = int(os.environ.get("KODA_GEN_MAX_STR", "24"))

# A small shared pool so keys and values repeat and hit dictionary refs.
_POOL = ["id", "name", "value", "", "é", "k-1", "$ref", "a b", "😀"]


def rand_utf8_string(rng: random.Random) -> str:
    if rng.random() < 0.3:
        return rng.choice(_POOL)
    # Generate scalars excluding surrogate range; include tricky chars occasionally.
    out = []
    n = rng.randint(0, MAX_STR)
    for _ in range(n):
        r = rng.random()
        if r < 0.65:
            out.append(chr(rng.randint(0x20, 0x7E)))
        elif r < 0.72:
            out.append(chr(rng.randint(0x00, 0x1F)))
        elif r < 0.85:
            out.append(chr(rng.randint(0xA0, 0xFF)))
        elif r < 0.95:
            out.append(chr(rng.randint(0x0100, 0xD7FF)))  # exclude surrogates
        else:
            out.append(chr(rng.randint(0x10000, 0x10FFFF)))
    return "".join(out)


def rand_float(rng: random.Random) -> float:
    r = rng.random()
    if r < 0.1:
        return rng.choice([0.0, -0.0, float("inf"), float("-inf"), float("nan"), 5e-324, 1e308])
    if r < 0.4:
        return float(rng.randint(-1000, 1000))
    return rng.uniform(-1e6, 1e6) * 10.0 ** rng.randint(-20, 20)


def rand_int(rng: random.Random) -> int:
    r = rng.random()
    if r < 0.2:
        return rng.choice([0, -1, 2**53 + 1, 2**63 - 1, -(2**63)])
    return rng.randint(-(2**63), 2**63 - 1) >> rng.randint(0, 63)


def gen_scalar(rng: random.Random) -> Value:
    r = rng.random()
    if r < 0.08:
        return Value.null()
    if r < 0.16:
        return Value.boolean(rng.random() < 0.5)
    if r < 0.40:
        return Value.integer(rand_int(rng))
    if r < 0.60:
        return Value.floating(rand_float(rng))
    return Value.string(rand_utf8_string(rng))


def gen_value(rng: random.Random, depth: int = 0) -> Value:
    if depth >= MAX_GEN_DEPTH:
        return gen_scalar(rng)
    r = rng.random()
    if r < 0.35:
        n = rng.randint(0, MAX_KEYS)
        pairs = [(rand_utf8_string(rng), gen_value(rng, depth + 1)) for _ in range(n)]
        if pairs and rng.random() < 0.2:
            pairs.append((pairs[0][0], gen_value(rng, depth + 1)))  # duplicate key
        return Value.object(pairs)
    if r < 0.60:
        n = rng.randint(0, MAX_LIST)
        return Value.array([gen_value(rng, depth + 1) for _ in range(n)])
    return gen_scalar(rng)


def fail(label: str, v: Value, **context: Any) -> int:
    print("INVARIANT FAIL:", label)
    print("VALUE:", stringify(v)[:2000])
    if context:
        print("CTX:", json.dumps(context, ensure_ascii=False, default=repr)[:2000])
    return 1


def main(rounds: Optional[int] = None, seed: Optional[int] = None) -> int:
    trials = TRIALS if rounds is None else rounds
    seed = SEED if seed is None else seed
    rng = random.Random(seed)

    for t in range(trials):
        v = gen_value(rng)

        # (1) Encoder determinism (encode twice, same bytes)
        b1 = encode(v)
        if encode(v) != b1:
            return fail("encode determinism", v, trial=t)

        # (2) Binary round trip
        if decode(b1) != v:
            return fail("binary round trip", v, trial=t, hex=b1.hex())

        # (3) Text round trip, compact and indented
        text = stringify(v)
        if parse(text) != v:
            return fail("text round trip", v, trial=t)
        if parse(stringify(v, indent=2)) != v:
            return fail("indented text round trip", v, trial=t)

        # (4) Canonical text: printing a parsed document reproduces it
        if stringify(parse(text)) != text:
            return fail("stringify stability", v, trial=t)

        # (5) Cross-form: text-derived value encodes to the same bytes
        if encode(parse(text)) != b1:
            return fail("text/binary agreement", v, trial=t)

        # (6) Small dictionary caps still round-trip under the same cap
        cap = rng.randint(0, 4)
        small = encode(v, max_dictionary_size=cap)
        if decode(small, max_dictionary_size=cap) != v:
            return fail("capped dictionary round trip", v, trial=t, cap=cap)

    print(f"OK: invariants passed for TRIALS={trials} seed={seed}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
