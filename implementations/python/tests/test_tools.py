"""Smoke tests for the property and fuzz runners under tools/.

The runners are scripts, not package modules; they are loaded from their
file paths and run for a handful of rounds with a fixed seed.
"""

from __future__ import annotations

import contextlib
import importlib.util
import io
import os
import sys
import unittest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

_TOOLS_DIR = os.path.join(os.path.dirname(__file__), "..", "..", "..", "tools")


def _load_tool(name: str):
    path = os.path.join(_TOOLS_DIR, name + ".py")
    spec = importlib.util.spec_from_file_location(name, path)
    mod = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(mod)
    return mod


@unittest.skipUnless(os.path.isdir(_TOOLS_DIR), "tools/ not present")
class TestRunners(unittest.TestCase):
    def test_invariants_runner(self):
        runner = _load_tool("invariants_runner")
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            rc = runner.main(rounds=60, seed=7)
        self.assertEqual(rc, 0, out.getvalue())
        self.assertIn("OK: invariants passed", out.getvalue())

    def test_fuzz_runner(self):
        runner = _load_tool("fuzz_runner")
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            rc = runner.main(rounds=200, seed=11)
        self.assertEqual(rc, 0, out.getvalue())
        self.assertIn("no crashes", out.getvalue())


if __name__ == "__main__":
    unittest.main()
