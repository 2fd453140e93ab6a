# tests/conftest.py
"""
Shared unit descriptions and helpers for the reinterp_shims test suite.

Every source constant notes the line each statement lands on: the reader
gives every top-level form, statement and case clause its own line.
"""

from pathlib import Path

import pytest

from reinterp_shims.checkers import CheckerRunner
from reinterp_shims.unit_reader import read_unit

FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ── Header derivation ────────────────────────────────────────────

# Lines 6-8 write through a header derived from a real slice.
SAFE_CAST_SRC = """
(package good)
(import "reflect" "runtime" "unsafe")
(func SaferCastString ((str string)) ((b (slice byte)))
  (define strH (conv (ptr reflect.StringHeader) (call unsafe.Pointer (addr str))))
  (define sH (conv (ptr reflect.SliceHeader) (call unsafe.Pointer (addr b))))
  (assign sH.Len strH.Len)
  (assign sH.Cap strH.Len)
  (assign sH.Data strH.Data)
  (call runtime.KeepAlive str)
  (return))
"""

# Same shape, but the slice header comes from unsafe.Pointer(nil).
NIL_CAST_SRC = """
(package nil_cast)
(import "reflect" "runtime" "unsafe")
(func SaferCastString ((str string)) ((b (slice byte)))
  (define strH (conv (ptr reflect.StringHeader) (call unsafe.Pointer (addr str))))
  (define sH (conv (ptr reflect.SliceHeader) (call unsafe.Pointer nil)))
  (assign sH.Len strH.Len)
  (assign sH.Cap strH.Len)
  (assign sH.Data strH.Data)
  (call runtime.KeepAlive str)
  (return))
"""

# Line 4 builds a slice header by hand.
LITERAL_SRC = """
(package literal)
(import "reflect")
(func Build ((d uintptr) (l int)) ()
  (define sH (addr (lit reflect.SliceHeader (kv Data d) (kv Len l) (kv Cap l))))
  (assign _ sH))
"""


# ── Struct casts ─────────────────────────────────────────────────

# A and C have one platform-dependent field each, B has none.
# Line 7 casts A to B, line 8 casts A to C.
STRUCT_CAST_SRC = """
(package cast)
(import "unsafe")
(type A (struct (x uint8) (y int) (z int64)))
(type B (struct (x uint8) (y int64) (z int64)))
(type C (struct (p int64) (q uint) (r int8)))
(func Cast ((a A)) ()
  (define b (conv (ptr B) (call unsafe.Pointer (addr a))))
  (define c (conv (ptr C) (call unsafe.Pointer (addr a))))
  (assign _ b)
  (assign _ c))
"""


# ── Control flow ─────────────────────────────────────────────────

# if/else on line 4 (branches on 5 and 6), a for loop on line 7 (body on
# 8), a range on line 9 (body on 10) and a switch on line 11 whose clauses
# sit on lines 12 and 14.
CONTROL_FLOW_SRC = """
(package flow)
(func Flow ((n int) (xs (slice int))) ((int))
  (define total 0)
  (if (> n 0)
    (block (assign total n))
    (block (assign total 1)))
  (for (define i 0) (< i n) (inc i)
    (block (assign total (+ total i))))
  (range _ x xs
    (block (assign total (+ total x))))
  (switch n
    (case (1 2) (assign total 0))
    (default (assign total 5)))
  (return total))
"""


# ── Helpers ──────────────────────────────────────────────────────

def run_checkers(src, checkers=None, options=None, filename="unit.sexp"):
    """Read *src* and run the checker table over it."""
    unit = read_unit(src, filename)
    return CheckerRunner(options=options).run(unit, checkers=checkers)


def diag_lines(results, error_id=None):
    """Lines of the reported diagnostics, optionally for one error id."""
    return [
        d.location.line for d in results.diagnostics
        if error_id is None or d.error_id == error_id
    ]


def func_named(unit, name):
    """The top-level function declaration called *name*."""
    for decl in unit.file.decls:
        if getattr(decl, "name", None) is not None and decl.name.name == name:
            return decl
    raise KeyError(name)


@pytest.fixture
def safe_unit():
    return read_unit(SAFE_CAST_SRC, "safe.sexp")


@pytest.fixture
def nil_unit():
    return read_unit(NIL_CAST_SRC, "nil.sexp")
