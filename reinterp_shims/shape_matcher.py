"""
reinterp_shims/shape_matcher.py
════════════════════════════════

Structural predicates over resolved types.

A *header-shaped* type is any record whose fields are exactly those of a
slice header ``{Data uintptr, Len int, Cap int}`` or a string header
``{Data uintptr, Len int}``.  Matching is structural: the declared name of
the record, the package it comes from and any number of named aliases in
between are irrelevant.

The shapes are declared once as ``ShapeSpec`` values; ``matches_shape`` is a
pure function of (descriptor, spec).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Optional, Tuple

from reinterp_shims.type_analysis import (
    BasicKind,
    StructField,
    TypeDescriptor,
    TypeKind,
)


@dataclass(frozen=True)
class ShapeSpec:
    """Ordered (field-name, basic kind) pairs a record must consist of."""
    name: str
    fields: Tuple[Tuple[str, BasicKind], ...]

    def __len__(self) -> int:
        return len(self.fields)


SLICE_HEADER_SHAPE = ShapeSpec(
    name="slice header",
    fields=(
        ("Data", BasicKind.UINTPTR),
        ("Len", BasicKind.INT),
        ("Cap", BasicKind.INT),
    ),
)

STRING_HEADER_SHAPE = ShapeSpec(
    name="string header",
    fields=(
        ("Data", BasicKind.UINTPTR),
        ("Len", BasicKind.INT),
    ),
)

HEADER_SHAPES: Tuple[ShapeSpec, ...] = (SLICE_HEADER_SHAPE, STRING_HEADER_SHAPE)

# Scalar kinds whose width follows the target's address width.
PLATFORM_DEPENDENT_KINDS: FrozenSet[BasicKind] = frozenset({
    BasicKind.INT,
    BasicKind.UINT,
    BasicKind.UINTPTR,
})


def matches_shape(t: Optional[TypeDescriptor], spec: ShapeSpec) -> bool:
    """True if *t* is a struct type consisting exactly of *spec*'s fields."""
    if t is None or t.kind is not TypeKind.STRUCT:
        return False
    if len(t.fields) != len(spec):
        return False
    for f, (name, kind) in zip(t.fields, spec.fields):
        if f.embedded or f.name != name:
            return False
        if not f.type.is_basic(kind):
            return False
    return True


def header_shape_of(t: Optional[TypeDescriptor]) -> Optional[ShapeSpec]:
    """The header shape *t* has, looking through one pointer level."""
    if t is None or t.is_invalid:
        return None
    effective = t.underlying()
    if effective.kind is TypeKind.POINTER:
        if effective.elem is None:
            return None
        effective = effective.elem.underlying()
    for spec in HEADER_SHAPES:
        if matches_shape(effective, spec):
            return spec
    return None


def is_header_shaped(t: Optional[TypeDescriptor]) -> bool:
    """True for header-shaped records and pointers to them."""
    return header_shape_of(t) is not None


def is_genuine_reference(t: Optional[TypeDescriptor]) -> bool:
    """True for a pointer to a string or to a slice.

    These are the only operands from which a header may legitimately be
    derived.  A header-shaped type never qualifies, and neither does an
    untyped nil.
    """
    if t is None or t.is_invalid or is_header_shaped(t):
        return False
    u = t.underlying()
    if u.kind is not TypeKind.POINTER or u.elem is None:
        return False
    target = u.elem.underlying()
    if target.kind is TypeKind.SLICE:
        return True
    return target.is_basic(BasicKind.STRING)


def is_platform_dependent_field(f: StructField) -> bool:
    """True iff the field's declared type is a basic int, uint or uintptr.

    Fixed-width integers are excluded, and so are named types even when
    their underlying kind is platform dependent.
    """
    return f.type.kind is TypeKind.BASIC and f.type.basic in PLATFORM_DEPENDENT_KINDS


def count_platform_dependent_fields(t: TypeDescriptor) -> int:
    """Number of platform-dependent fields of a struct type."""
    u = t.underlying()
    if u.kind is not TypeKind.STRUCT:
        return 0
    return sum(1 for f in u.fields if is_platform_dependent_field(f))


__all__ = [
    "ShapeSpec",
    "SLICE_HEADER_SHAPE",
    "STRING_HEADER_SHAPE",
    "HEADER_SHAPES",
    "PLATFORM_DEPENDENT_KINDS",
    "matches_shape",
    "header_shape_of",
    "is_header_shaped",
    "is_genuine_reference",
    "is_platform_dependent_field",
    "count_platform_dependent_fields",
]
