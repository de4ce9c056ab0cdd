#!/usr/bin/env python3
# tools/fuzz_runner.py
#
# Hostile-input fuzzing for the koda decoder and parser.
#
# Generates three fuzz categories:
#   A) valid binary buffers, mutated (byte flips, truncation, insertion, splices) -> decode
#   B) raw random bytes behind a valid header -> decode
#   C) valid text documents, mutated character-wise -> parse
#
# Every input must either produce a Value or raise a KodaError; any other
# exception is a crash.  Accepted inputs must also survive a re-encode /
# re-print round trip.  Any failure prints a minimal repro and exits non-zero.

import os, sys, json, random, traceback
from typing import Any, Dict, Optional

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, os.path.join(ROOT, "implementations", "python"))

from koda import KodaError, decode, encode, parse, stringify

# The invariants runner owns the random Value generator.
sys.path.insert(0, os.path.join(ROOT, "tools"))
from invariants_runner import gen_value

SEED = int(os.environ.get("KODA_SEED", "4242"))
ROUNDS = int(os.environ.get("KODA_FUZZ_ROUNDS", "5000"))

HDR = b"KODA\x01"

# Limits are randomized per round so the limit checks see traffic too.
_LIMIT_CHOICES = {
    "max_depth": [1, 2, 4, 256],
    "max_dictionary_size": [0, 1, 3, 65_536],
    "max_string_length": [0, 4, 64, 1_000_000],
}
_TEXT_NOISE = '[]{},:"\\/*-+.eE0123456789 \n\tnulltruefalseNaNInfinity$_x\x00\x1f'


class Crash(Exception):
    pass


def crash(label: str, exc: BaseException, ctx: Dict[str, Any]) -> None:
    print("CRASH:", label)
    print("EXC :", "".join(traceback.format_exception_only(type(exc), exc)).strip())
    print("CTX:", json.dumps(ctx, ensure_ascii=False, default=repr)[:4000])
    raise SystemExit(1)


def rand_limits(rng: random.Random) -> Dict[str, int]:
    return {k: rng.choice(v) for k, v in _LIMIT_CHOICES.items() if rng.random() < 0.3}


# --- mutators ---

def mutate_bytes(rng: random.Random, buf: bytes) -> bytes:
    b = bytearray(buf)
    for _ in range(rng.randint(1, 4)):
        r = rng.random()
        if r < 0.35 and b:
            b[rng.randrange(len(b))] = rng.getrandbits(8)
        elif r < 0.55 and b:
            del b[rng.randrange(len(b)):]
        elif r < 0.75:
            pos = rng.randint(0, len(b))
            b[pos:pos] = bytes(rng.getrandbits(8) for _ in range(rng.randint(1, 8)))
        elif r < 0.90 and len(b) > 1:
            # Overwrite a u32-sized window with a hostile length/count/index.
            pos = rng.randrange(len(b))
            hostile = rng.choice([0xFFFFFFFF, 0x7FFFFFFF, 65_536, 1_000_001, 2, 0])
            b[pos:pos + 4] = hostile.to_bytes(4, "big")
        elif b:
            b[rng.randrange(len(b))] = rng.randint(0x00, 0x0A)  # tag-like byte
    return bytes(b)


def mutate_text(rng: random.Random, text: str) -> str:
    s = list(text)
    for _ in range(rng.randint(1, 4)):
        r = rng.random()
        if r < 0.35 and s:
            s[rng.randrange(len(s))] = rng.choice(_TEXT_NOISE)
        elif r < 0.55 and s:
            del s[rng.randrange(len(s)):]
        elif r < 0.85:
            s.insert(rng.randint(0, len(s)), rng.choice(_TEXT_NOISE))
        elif s:
            del s[rng.randrange(len(s))]
    return "".join(s)


# --- checks ---

def check_decode(label: str, buf: bytes, limits: Dict[str, int], round_no: int) -> None:
    ctx = {"round": round_no, "hex": buf.hex(), "limits": limits}
    try:
        v = decode(buf, **limits)
    except KodaError:
        return
    except Exception as e:
        crash(label, e, ctx)
        return
    try:
        enc_limits = {k: n for k, n in limits.items() if k != "max_string_length"}
        again = decode(encode(v, **enc_limits), **limits)
    except Exception as e:
        crash(label + " (re-encode)", e, ctx)
        return
    if stringify(again) != stringify(v):
        crash(label + " (re-encode mismatch)", Crash(stringify(v)[:200]), ctx)


def check_parse(label: str, text: str, limits: Dict[str, int], round_no: int) -> None:
    ctx = {"round": round_no, "text": text, "limits": limits}
    max_depth = limits.get("max_depth")
    kwargs = {} if max_depth is None else {"max_depth": max_depth}
    try:
        v = parse(text, **kwargs)
    except KodaError:
        return
    except Exception as e:
        crash(label, e, ctx)
        return
    try:
        printed = stringify(v)
        if stringify(parse(printed, **kwargs)) != printed:
            crash(label + " (reprint mismatch)", Crash(printed[:200]), ctx)
    except KodaError as e:
        crash(label + " (reprint)", e, ctx)


def main(rounds: Optional[int] = None, seed: Optional[int] = None) -> int:
    rounds = ROUNDS if rounds is None else rounds
    seed = SEED if seed is None else seed
    rng = random.Random(seed)

    for i in range(rounds):
        r = rng.random()
        limits = rand_limits(rng)

        # A) mutated valid buffers
        if r < 0.45:
            buf = encode(gen_value(rng))
            check_decode("A mutated buffer", mutate_bytes(rng, buf), limits, i)
            continue

        # B) random body behind a valid header
        if r < 0.60:
            body = bytes(rng.getrandbits(8) for _ in range(rng.randint(0, 48)))
            check_decode("B random body", HDR + body, limits, i)
            continue

        # C) mutated text
        text = stringify(gen_value(rng), indent=rng.choice([None, 2]))
        check_parse("C mutated text", mutate_text(rng, text), limits, i)

    print(f"OK: fuzz rounds={rounds} seed={seed} (no crashes)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
