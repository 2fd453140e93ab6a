# tests/test_struct_cast.py
"""
Tests for the struct-cast checker: casts between records whose numbers of
int/uint/uintptr fields differ.
"""

import pytest

from reinterp_shims.checkers import (
    STRUCT_CAST_ID,
    STRUCT_CAST_MSG,
    CheckerRunner,
    DiagnosticSeverity,
)
from tests.conftest import STRUCT_CAST_SRC, diag_lines, run_checkers

STRUCT_CAST = ["struct-cast-size"]

# Line 3 declares A with one platform-dependent field; every case below
# declares its destination on line 4 and casts on line 6.
_CAST_TEMPLATE = """
(package p)
(import "unsafe")
(type A (struct (a uint8) (b int) (c int64)))
(type Dst {dst})
(func F ((src A)) ()
  (define d (star (conv (ptr Dst) (call unsafe.Pointer (addr src)))))
  (assign _ d))
"""


def _cast_to(dst):
    return run_checkers(_CAST_TEMPLATE.format(dst=dst), checkers=STRUCT_CAST)


class TestStructCastScenario:

    def test_mismatch_reported_at_cast(self):
        results = run_checkers(STRUCT_CAST_SRC, checkers=STRUCT_CAST)
        assert diag_lines(results) == [7]
        diag = results.diagnostics[0]
        assert diag.error_id == STRUCT_CAST_ID
        assert diag.message == STRUCT_CAST_MSG
        assert diag.severity is DiagnosticSeverity.WARNING
        assert diag.checker_name == "struct-cast-size"
        assert diag.extra == "1 vs 0"

    def test_equal_counts_with_different_fields(self):
        # A -> C on line 8 is not reported
        results = run_checkers(STRUCT_CAST_SRC, checkers=STRUCT_CAST)
        assert 8 not in diag_lines(results)


class TestPlatformFieldCounts:

    @pytest.mark.parametrize("dst", [
        "(struct (a uint8) (b int64) (c int64))",
        "(struct (a uintptr) (b uint))",
        "(struct)",
    ])
    def test_different_counts(self, dst):
        assert diag_lines(_cast_to(dst)) == [6]

    @pytest.mark.parametrize("dst", [
        "(struct (a uint8) (b int) (c int64))",
        "(struct (z uintptr))",
        "(struct (x int64) (y uint) (z string))",
    ])
    def test_same_counts(self, dst):
        assert _cast_to(dst).diagnostics == []

    def test_named_field_types_are_not_counted(self):
        results = run_checkers("""
(package p)
(import "unsafe")
(type Word uint)
(type A (struct (b int)))
(type B (struct (w Word)))
(func F ((a A)) ()
  (define b (conv (ptr B) (call unsafe.Pointer (addr a))))
  (assign _ b))
""", checkers=STRUCT_CAST)
        assert diag_lines(results) == [7]

    def test_chain_of_named_structs(self):
        results = run_checkers("""
(package p)
(import "unsafe")
(type A (struct (b int) (c int)))
(type A2 A)
(type B (struct (b int)))
(func F ((a A2)) ()
  (define b (conv (ptr B) (call unsafe.Pointer (addr a))))
  (assign _ b))
""", checkers=STRUCT_CAST)
        assert results.diagnostics[0].extra == "2 vs 1"

    def test_anonymous_destination_struct(self):
        results = run_checkers("""
(package p)
(import "unsafe")
(type A (struct (b int)))
(func F ((a A)) ()
  (define b (conv (ptr (struct (x int) (y int))) (call unsafe.Pointer (addr a))))
  (assign _ b))
""", checkers=STRUCT_CAST)
        assert diag_lines(results) == [5]


class TestNotStructCasts:

    def test_no_cast(self):
        results = run_checkers("""
(package p)
(type Pink (struct (a uint8) (b int) (c int64)))
(type Violet (struct (a uint8) (b int64) (c int64)))
(func F () ()
  (define pink (lit Pink))
  (define violet (lit Violet))
  (assign _ pink)
  (assign _ violet))
""", checkers=STRUCT_CAST)
        assert results.diagnostics == []

    def test_non_struct_destination(self):
        assert _cast_to("int").diagnostics == []
        assert _cast_to("(array 3 int)").diagnostics == []

    def test_pointer_operand_without_address(self):
        results = run_checkers("""
(package p)
(import "unsafe")
(type A (struct (b int)))
(type B (struct (b int64)))
(func F ((p (ptr A))) ()
  (define b (conv (ptr B) (call unsafe.Pointer p)))
  (assign _ b))
""", checkers=STRUCT_CAST)
        assert results.diagnostics == []

    def test_unresolved_destination(self):
        results = run_checkers("""
(package p)
(import "unsafe")
(type A (struct (b int)))
(func F ((a A)) ()
  (define b (conv (ptr Missing) (call unsafe.Pointer (addr a))))
  (assign _ b))
""", checkers=STRUCT_CAST)
        assert results.diagnostics == []

    def test_single_step_conversion(self):
        results = run_checkers("""
(package p)
(type A (struct (b int)))
(type B (struct (b int64)))
(func F ((a A)) ()
  (define b (conv B a))
  (assign _ b))
""", checkers=STRUCT_CAST)
        assert results.diagnostics == []

    def test_header_casts_are_not_struct_casts(self, safe_unit):
        results = CheckerRunner().run(safe_unit, checkers=STRUCT_CAST)
        assert results.diagnostics == []
