# tests/test_type_analysis.py
"""
Tests for the type term algebra, type identity/assignability and the
per-unit TypeInfo tables.
"""

import pytest

from reinterp_shims.ast_nodes import Ident
from reinterp_shims.type_analysis import (
    INVALID,
    BasicKind,
    Binding,
    BindingKind,
    StructField,
    TypeDescriptor,
    TypeInfo,
    TypeKind,
    assignable_to,
    default_type,
    identical,
    type_string,
)

INT = TypeDescriptor.basic_type(BasicKind.INT)
INT64 = TypeDescriptor.basic_type(BasicKind.INT64)
UINTPTR = TypeDescriptor.basic_type(BasicKind.UINTPTR)
STRING = TypeDescriptor.basic_type(BasicKind.STRING)


def _header_struct():
    return TypeDescriptor.struct([
        StructField("Data", UINTPTR),
        StructField("Len", INT),
        StructField("Cap", INT),
    ])


class TestTypeRepresentation:

    def test_basic_types_are_shared(self):
        assert TypeDescriptor.basic_type(BasicKind.INT) is INT
        assert INT.is_basic(BasicKind.INT)
        assert not INT.is_basic(BasicKind.UINT)

    def test_pointer_and_pointee(self):
        p = TypeDescriptor.pointer(STRING)
        assert p.is_pointer
        assert p.pointee is STRING
        assert STRING.pointee is None

    def test_named_underlying(self):
        hdr = TypeDescriptor.named("Header", _header_struct(), package="pkg")
        assert hdr.is_named
        assert hdr.underlying().kind is TypeKind.STRUCT
        assert hdr.is_struct

    def test_named_of_named_collapses(self):
        inner = TypeDescriptor.named("Inner", _header_struct())
        outer = TypeDescriptor.named("Outer", inner)
        assert outer.underlying() is inner.underlying()

    def test_incomplete_named_is_invalid_underneath(self):
        t = TypeDescriptor.named("Later")
        assert t.underlying() is INVALID

    def test_set_underlying_on_unnamed_rejected(self):
        with pytest.raises(ValueError):
            INT.set_underlying(STRING)

    def test_field_named_through_pointer(self):
        hdr = TypeDescriptor.named("Header", _header_struct())
        f = TypeDescriptor.pointer(hdr).field_named("Len")
        assert f is not None
        assert f.type is INT
        assert hdr.field_named("Missing") is None
        assert INT.field_named("Len") is None


class TestTypeString:

    @pytest.mark.parametrize("t,expected", [
        (INT, "int"),
        (TypeDescriptor.pointer(STRING), "*string"),
        (TypeDescriptor.slice(TypeDescriptor.basic_type(BasicKind.UINT8)), "[]uint8"),
        (TypeDescriptor.array(INT, 4), "[4]int"),
        (INVALID, "invalid type"),
    ])
    def test_spelling(self, t, expected):
        assert type_string(t) == expected

    def test_named_with_package(self):
        t = TypeDescriptor.named("SliceHeader", _header_struct(), package="reflect")
        assert str(t) == "reflect.SliceHeader"

    def test_struct_and_signature(self):
        assert type_string(_header_struct()) == "struct{Data uintptr; Len int; Cap int}"
        sig = TypeDescriptor.signature([INT], [STRING, INT])
        assert type_string(sig) == "func(int) (string, int)"

    def test_none(self):
        assert type_string(None) == "<nil>"


class TestIdentity:

    def test_structural_identity_of_unnamed(self):
        assert identical(_header_struct(), _header_struct())
        assert identical(TypeDescriptor.slice(INT), TypeDescriptor.slice(INT))
        assert not identical(TypeDescriptor.slice(INT), TypeDescriptor.slice(INT64))

    def test_named_types_are_nominal(self):
        a = TypeDescriptor.named("A", _header_struct())
        b = TypeDescriptor.named("B", _header_struct())
        assert identical(a, a)
        assert not identical(a, b)

    def test_invalid_never_identical(self):
        assert not identical(INVALID, INVALID)
        assert not identical(None, INT)

    def test_array_length_matters(self):
        assert not identical(TypeDescriptor.array(INT, 2), TypeDescriptor.array(INT, 3))


class TestAssignability:

    def test_identical_assignable(self):
        assert assignable_to(INT, INT)

    def test_unnamed_to_named_with_same_underlying(self):
        hdr = TypeDescriptor.named("Header", _header_struct())
        assert assignable_to(_header_struct(), hdr)

    def test_distinct_named_not_assignable(self):
        a = TypeDescriptor.named("A", INT)
        b = TypeDescriptor.named("B", INT)
        assert not assignable_to(a, b)

    def test_nil_to_pointer_and_slice(self):
        nil = TypeDescriptor.basic_type(BasicKind.UNTYPED_NIL)
        assert assignable_to(nil, TypeDescriptor.pointer(INT))
        assert assignable_to(nil, TypeDescriptor.slice(INT))
        assert assignable_to(nil, TypeDescriptor.basic_type(BasicKind.UNSAFE_POINTER))
        assert not assignable_to(nil, INT)

    def test_untyped_constants(self):
        assert assignable_to(TypeDescriptor.basic_type(BasicKind.UNTYPED_INT), UINTPTR)
        assert assignable_to(TypeDescriptor.basic_type(BasicKind.UNTYPED_STRING), STRING)
        assert not assignable_to(TypeDescriptor.basic_type(BasicKind.UNTYPED_STRING), INT)

    def test_invalid_is_never_assignable(self):
        assert not assignable_to(INVALID, INT)
        assert not assignable_to(INT, INVALID)

    def test_default_type(self):
        assert default_type(TypeDescriptor.basic_type(BasicKind.UNTYPED_INT)) is INT
        assert default_type(TypeDescriptor.basic_type(BasicKind.UNTYPED_FLOAT)).is_basic(
            BasicKind.FLOAT64)
        nil = TypeDescriptor.basic_type(BasicKind.UNTYPED_NIL)
        assert default_type(nil) is nil


class TestTypeInfo:

    def test_missing_entries_are_invalid(self):
        info = TypeInfo()
        assert info.type_of(Ident("x")) is INVALID
        assert info.type_of(None) is INVALID

    def test_record_type(self):
        info = TypeInfo()
        node = Ident("x")
        assert info.record_type(node, INT) is INT
        assert info.type_of(node) is INT

    def test_binding_of_prefers_defs(self):
        info = TypeInfo()
        decl, use = Ident("x"), Ident("x")
        b = Binding("x", BindingKind.VAR, INT)
        info.defs[decl] = b
        info.uses[use] = b
        assert info.binding_of(decl) is b
        assert info.binding_of(use) is b
        assert info.binding_of(Ident("x")) is None

    def test_bindings_compare_by_identity(self):
        a = Binding("x", BindingKind.VAR, INT)
        b = Binding("x", BindingKind.VAR, INT)
        assert a != b
        assert a == a
