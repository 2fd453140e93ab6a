"""
reinterp_shims/cast_idioms.py
══════════════════════════════

Syntactic recognizers for the two supported pointer-reinterpretation idioms.

Both idioms are two-step conversions through the opaque pointer type::

    (*T)(unsafe.Pointer(&x))        (*T)(unsafe.Pointer(x))
    *(*T)(unsafe.Pointer(&x))       *(*T)(unsafe.Pointer(x))

* **header derivation** - ``T`` is header-shaped; the result is safe only
  when the operand is a genuine slice/string reference.
* **record cast** - ``T`` and the source are arbitrary records.

The inner step must be the ``unsafe.Pointer`` conversion itself.  Casts that
go through any other intermediate conversion are not recognized.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from reinterp_shims.ast_helper import is_address_of, is_qualified_name
from reinterp_shims.ast_nodes import CallExpr, Expr, ParenExpr, StarExpr
from reinterp_shims.shape_matcher import is_header_shaped
from reinterp_shims.type_analysis import TypeDescriptor, TypeInfo

OPAQUE_POINTER_PACKAGE = "unsafe"
OPAQUE_POINTER_NAME = "Pointer"


@dataclass(frozen=True)
class HeaderDerivation:
    """A recognized ``(*T)(unsafe.Pointer(operand))`` with header-shaped T."""
    call: CallExpr
    target_type: TypeDescriptor
    operand: Expr
    operand_type: TypeDescriptor


@dataclass(frozen=True)
class RecordCast:
    """A recognized ``(*T)(unsafe.Pointer(&source))``.

    ``source`` has its address-of operator stripped; ``dest_type_expr`` is
    the ``T`` inside ``(*T)``.
    """
    call: CallExpr
    source: Expr
    dest_type_expr: Expr


def is_opaque_conversion(expr: Optional[Expr]) -> bool:
    """True for a call ``unsafe.Pointer(arg)`` with exactly one argument."""
    if not isinstance(expr, CallExpr) or len(expr.args) != 1:
        return False
    return is_qualified_name(expr.fun, OPAQUE_POINTER_PACKAGE, OPAQUE_POINTER_NAME)


def split_pointer_cast(expr: Optional[Expr]) -> Optional[Tuple[CallExpr, Expr, Expr]]:
    """
    Decompose the shared two-level cast shape.

    Returns ``(outer_call, target_type_expr, opaque_operand)`` for
    ``(*T)(unsafe.Pointer(operand))``, optionally under one dereference,
    or ``None`` if *expr* has any other shape.
    """
    if isinstance(expr, StarExpr):
        expr = expr.x
    if not isinstance(expr, CallExpr) or len(expr.args) != 1:
        return None
    fun = expr.fun
    if not isinstance(fun, ParenExpr) or not isinstance(fun.x, StarExpr):
        return None
    inner = expr.args[0]
    if not is_opaque_conversion(inner):
        return None
    return expr, fun.x.x, inner.args[0]


def match_header_derivation(
    expr: Optional[Expr],
    info: TypeInfo,
) -> Optional[HeaderDerivation]:
    """Recognize the header derivation idiom.

    The operand type is whatever the front end resolved for the argument of
    ``unsafe.Pointer`` (``&x`` or ``x``); judging it is up to the caller.
    """
    parts = split_pointer_cast(expr)
    if parts is None:
        return None
    call, type_expr, operand = parts
    target = info.type_of(type_expr)
    if not is_header_shaped(target):
        return None
    return HeaderDerivation(
        call=call,
        target_type=target,
        operand=operand,
        operand_type=info.type_of(operand),
    )


def match_record_cast(expr: Optional[Expr]) -> Optional[RecordCast]:
    """Recognize the record-to-record cast idiom (purely syntactic)."""
    parts = split_pointer_cast(expr)
    if parts is None:
        return None
    call, type_expr, operand = parts
    source = operand.x if is_address_of(operand) else operand
    return RecordCast(call=call, source=source, dest_type_expr=type_expr)


__all__ = [
    "OPAQUE_POINTER_PACKAGE",
    "OPAQUE_POINTER_NAME",
    "HeaderDerivation",
    "RecordCast",
    "is_opaque_conversion",
    "split_pointer_cast",
    "match_header_derivation",
    "match_record_cast",
]
