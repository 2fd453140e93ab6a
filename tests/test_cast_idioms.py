# tests/test_cast_idioms.py
"""
Tests for the ``(*T)(unsafe.Pointer(x))`` idiom recognizers.
"""

from reinterp_shims.ast_nodes import (
    CallExpr,
    Ident,
    ParenExpr,
    SelectorExpr,
    StarExpr,
    UnaryExpr,
)
from reinterp_shims.cast_idioms import (
    is_opaque_conversion,
    match_header_derivation,
    match_record_cast,
    split_pointer_cast,
)
from reinterp_shims.type_analysis import (
    BasicKind,
    StructField,
    TypeDescriptor,
    TypeInfo,
)

SLICE_HEADER = TypeDescriptor.named(
    "SliceHeader",
    TypeDescriptor.struct([
        StructField("Data", TypeDescriptor.basic_type(BasicKind.UINTPTR)),
        StructField("Len", TypeDescriptor.basic_type(BasicKind.INT)),
        StructField("Cap", TypeDescriptor.basic_type(BasicKind.INT)),
    ]),
    package="reflect",
)
BYTES = TypeDescriptor.slice(TypeDescriptor.basic_type(BasicKind.UINT8))


def _qualified(pkg, name):
    return SelectorExpr(Ident(pkg), Ident(name))


def _cast(type_expr, operand, deref=False, via=("unsafe", "Pointer")):
    inner = CallExpr(_qualified(*via), [operand])
    outer = CallExpr(ParenExpr(StarExpr(type_expr)), [inner])
    return StarExpr(outer) if deref else outer


class TestOpaqueConversion:

    def test_unsafe_pointer_call(self):
        assert is_opaque_conversion(CallExpr(_qualified("unsafe", "Pointer"), [Ident("p")]))

    def test_other_package(self):
        assert not is_opaque_conversion(CallExpr(_qualified("other", "Pointer"), [Ident("p")]))

    def test_argument_count(self):
        fun = _qualified("unsafe", "Pointer")
        assert not is_opaque_conversion(CallExpr(fun, []))
        assert not is_opaque_conversion(CallExpr(fun, [Ident("a"), Ident("b")]))

    def test_not_a_call(self):
        assert not is_opaque_conversion(Ident("unsafe"))
        assert not is_opaque_conversion(None)


class TestSplitPointerCast:

    def test_plain_cast(self):
        t, x = Ident("T"), Ident("x")
        expr = _cast(t, x)
        call, type_expr, operand = split_pointer_cast(expr)
        assert call is expr
        assert type_expr is t
        assert operand is x

    def test_dereferenced_cast(self):
        t, x = Ident("T"), Ident("x")
        expr = _cast(t, x, deref=True)
        call, type_expr, operand = split_pointer_cast(expr)
        assert call is expr.x
        assert type_expr is t

    def test_other_intermediate_conversion(self):
        assert split_pointer_cast(_cast(Ident("T"), Ident("x"), via=("other", "Pointer"))) is None

    def test_single_level_cast(self):
        expr = CallExpr(ParenExpr(StarExpr(Ident("T"))), [Ident("x")])
        assert split_pointer_cast(expr) is None

    def test_non_pointer_target(self):
        inner = CallExpr(_qualified("unsafe", "Pointer"), [Ident("x")])
        expr = CallExpr(ParenExpr(Ident("T")), [inner])
        assert split_pointer_cast(expr) is None

    def test_ordinary_call(self):
        assert split_pointer_cast(CallExpr(Ident("f"), [Ident("x")])) is None
        assert split_pointer_cast(None) is None


class TestHeaderDerivation:

    def test_derivation_from_slice_address(self):
        info = TypeInfo()
        t = _qualified("reflect", "SliceHeader")
        operand = UnaryExpr("&", Ident("b"))
        info.record_type(t, SLICE_HEADER)
        info.record_type(operand, TypeDescriptor.pointer(BYTES))
        expr = _cast(t, operand)

        d = match_header_derivation(expr, info)
        assert d is not None
        assert d.call is expr
        assert d.target_type is SLICE_HEADER
        assert d.operand is operand
        assert d.operand_type.pointee is BYTES

    def test_target_must_be_header_shaped(self):
        info = TypeInfo()
        t = Ident("T")
        info.record_type(t, BYTES)
        assert match_header_derivation(_cast(t, Ident("x")), info) is None

    def test_unresolved_target(self):
        assert match_header_derivation(_cast(Ident("T"), Ident("x")), TypeInfo()) is None

    def test_unresolved_operand_is_reported_invalid(self):
        info = TypeInfo()
        t = _qualified("reflect", "SliceHeader")
        info.record_type(t, SLICE_HEADER)
        d = match_header_derivation(_cast(t, Ident("x")), info)
        assert d is not None
        assert d.operand_type.is_invalid


class TestRecordCast:

    def test_address_of_is_stripped(self):
        src = Ident("pink")
        t = Ident("Violet")
        rc = match_record_cast(_cast(t, UnaryExpr("&", src), deref=True))
        assert rc is not None
        assert rc.source is src
        assert rc.dest_type_expr is t

    def test_plain_operand_kept(self):
        src = Ident("p")
        rc = match_record_cast(_cast(Ident("T"), src))
        assert rc.source is src

    def test_no_idiom(self):
        assert match_record_cast(CallExpr(Ident("convert"), [Ident("x")])) is None
