# tests/test_ast_helper.py
"""
Tests for tree traversal helpers and the package export table.
"""

import reinterp_shims
from reinterp_shims.ast_helper import (
    enclosing_function,
    expr_to_string,
    is_address_of,
    is_qualified_name,
    iter_functions,
    iter_preorder,
    iter_preorder_with_stack,
)
from reinterp_shims.ast_nodes import (
    ArrayType,
    AssignStmt,
    BasicLit,
    BinaryExpr,
    CallExpr,
    CompositeLit,
    FuncDecl,
    FuncLit,
    Ident,
    IndexExpr,
    KeyValueExpr,
    SelectorExpr,
    UnaryExpr,
)
from reinterp_shims.unit_reader import read_unit
from tests.conftest import func_named


def _sel(pkg, name):
    return SelectorExpr(Ident(pkg), Ident(name))


class TestTraversal:

    def test_preorder_visits_parent_first(self):
        x, one = Ident("x"), BasicLit("INT", "1")
        add = BinaryExpr(x, "+", one)
        assert list(iter_preorder(add)) == [add, x, one]

    def test_none_root(self):
        assert list(iter_preorder(None)) == []
        assert list(iter_preorder_with_stack(None)) == []

    def test_ancestor_stack(self):
        inner = Ident("b")
        call = CallExpr(Ident("f"), [UnaryExpr("&", inner)])
        found = dict(iter_preorder_with_stack(call, Ident))
        assert [type(n) for n in found[inner]] == [CallExpr, UnaryExpr]
        assert found[call.fun] == (call,)

    def test_enclosing_function(self, safe_unit):
        fn = func_named(safe_unit, "SaferCastString")
        stmts = [
            (node, ancestors)
            for node, ancestors in iter_preorder_with_stack(safe_unit.file, AssignStmt)
        ]
        assert stmts
        assert all(enclosing_function(a) is fn for _, a in stmts)
        assert enclosing_function(()) is None

    def test_innermost_function_wins(self):
        unit = read_unit("""
(package p)
(func Outer () ()
  (define f (func-lit () () (define y 2))))
""")
        functions = list(iter_functions(unit.file))
        assert [type(f) for f in functions] == [FuncDecl, FuncLit]
        lit = functions[1]
        inner_define = lit.body.stmts[0]
        for node, ancestors in iter_preorder_with_stack(unit.file, AssignStmt):
            if node is inner_define:
                assert enclosing_function(ancestors) is lit


class TestPredicates:

    def test_qualified_name(self):
        assert is_qualified_name(_sel("unsafe", "Pointer"), "unsafe", "Pointer")
        assert not is_qualified_name(_sel("unsafe", "Sizeof"), "unsafe", "Pointer")
        assert not is_qualified_name(Ident("Pointer"), "unsafe", "Pointer")
        assert not is_qualified_name(None, "unsafe", "Pointer")

    def test_address_of(self):
        assert is_address_of(UnaryExpr("&", Ident("x")))
        assert not is_address_of(UnaryExpr("-", Ident("x")))
        assert not is_address_of(Ident("x"))


class TestExprToString:

    def test_conversion(self, safe_unit):
        fn = func_named(safe_unit, "SaferCastString")
        conv = fn.body.stmts[1].rhs[0]
        assert expr_to_string(conv) == "(*reflect.SliceHeader)(unsafe.Pointer(&b))"

    def test_literals_and_composites(self):
        lit = CompositeLit(
            _sel("reflect", "SliceHeader"),
            [KeyValueExpr(Ident("Len"), BasicLit("INT", "1"))],
        )
        assert expr_to_string(lit) == "reflect.SliceHeader{Len: 1}"
        assert expr_to_string(BasicLit("STRING", "hi")) == '"hi"'

    def test_types_and_index(self):
        assert expr_to_string(ArrayType(None, Ident("byte"))) == "[]byte"
        assert expr_to_string(ArrayType(BasicLit("INT", "4"), Ident("int"))) == "[4]int"
        assert expr_to_string(IndexExpr(Ident("xs"), Ident("i"))) == "xs[i]"

    def test_none(self):
        assert expr_to_string(None) == ""


class TestPackageExports:

    def test_reexports(self):
        assert reinterp_shims.CheckerRunner is reinterp_shims.checkers.CheckerRunner
        assert reinterp_shims.read_unit is read_unit
        assert "is_header_shaped" in reinterp_shims.__all__
        assert "list_submodules" in reinterp_shims.__all__

    def test_list_submodules(self):
        assert reinterp_shims.list_submodules() == [
            "cast_idioms", "checkers", "ctrlflow_graph",
            "shape_matcher", "type_analysis", "unit_reader",
        ]
