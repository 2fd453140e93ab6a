"""
reinterp_shims/type_analysis.py
════════════════════════════════

Resolved type information for one compilation unit.

The front end attaches a ``TypeDescriptor`` to every expression node and a
``Binding`` to every identifier that declares or refers to a name.  This
module holds that representation plus the structural queries the checkers
need (identity, assignability, underlying types).

Type representation
───────────────────
Types are a small term algebra:

    τ ::= invalid
        | basic(kind)                 (bool, int, uintptr, string, …)
        | ptr(τ)
        | slice(τ)
        | array(τ, n)
        | struct({f_i: τ_i})          (ordered fields)
        | named(name, τ_underlying)   (declared type; identity is nominal)
        | func([τ_params], [τ_results])

Unresolved entries are represented by the shared ``INVALID`` descriptor;
every query treats it as a non-match rather than an error.

License: MIT - same as reinterp-shims.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import (
    Dict,
    FrozenSet,
    List,
    Optional,
)

from reinterp_shims.ast_nodes import Ident, Loc, Node


# ═════════════════════════════════════════════════════════════════════════
#  PART 1 - TYPE REPRESENTATION
# ═════════════════════════════════════════════════════════════════════════

class TypeKind(Enum):
    """Discriminant for the type term algebra."""
    INVALID = auto()
    BASIC = auto()
    POINTER = auto()
    SLICE = auto()
    ARRAY = auto()
    STRUCT = auto()
    NAMED = auto()
    SIGNATURE = auto()


class BasicKind(Enum):
    """Scalar kinds.  The value is the spelling used in type strings."""
    BOOL = "bool"
    INT = "int"
    INT8 = "int8"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    UINT = "uint"
    UINT8 = "uint8"
    UINT16 = "uint16"
    UINT32 = "uint32"
    UINT64 = "uint64"
    UINTPTR = "uintptr"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    STRING = "string"
    UNSAFE_POINTER = "unsafe.Pointer"
    UNTYPED_BOOL = "untyped bool"
    UNTYPED_INT = "untyped int"
    UNTYPED_FLOAT = "untyped float"
    UNTYPED_STRING = "untyped string"
    UNTYPED_NIL = "untyped nil"


INTEGER_KINDS: FrozenSet[BasicKind] = frozenset({
    BasicKind.INT, BasicKind.INT8, BasicKind.INT16, BasicKind.INT32,
    BasicKind.INT64, BasicKind.UINT, BasicKind.UINT8, BasicKind.UINT16,
    BasicKind.UINT32, BasicKind.UINT64, BasicKind.UINTPTR,
})

FLOAT_KINDS: FrozenSet[BasicKind] = frozenset({
    BasicKind.FLOAT32, BasicKind.FLOAT64,
})

UNTYPED_KINDS: FrozenSet[BasicKind] = frozenset({
    BasicKind.UNTYPED_BOOL, BasicKind.UNTYPED_INT, BasicKind.UNTYPED_FLOAT,
    BasicKind.UNTYPED_STRING, BasicKind.UNTYPED_NIL,
})


@dataclass(frozen=True)
class StructField:
    """One field of a struct type, in declaration order."""
    name: str
    type: TypeDescriptor
    embedded: bool = False


@dataclass(eq=False)
class TypeDescriptor:
    """
    A node in the type term algebra.

    Compound types keep their structure in kind-specific attributes:
      - POINTER / SLICE: elem
      - ARRAY:           elem, length
      - STRUCT:          fields (ordered)
      - NAMED:           name, package, underlying (set once declared)
      - SIGNATURE:       params, results
      - BASIC:           basic

    Descriptors compare by identity; use ``identical`` for structural
    comparison.
    """

    kind: TypeKind
    basic: Optional[BasicKind] = None
    elem: Optional[TypeDescriptor] = None
    length: int = -1
    fields: List[StructField] = field(default_factory=list)
    name: str = ""
    package: str = ""
    params: List[TypeDescriptor] = field(default_factory=list)
    results: List[TypeDescriptor] = field(default_factory=list)
    _underlying: Optional[TypeDescriptor] = field(default=None, repr=False)

    # ── Factory methods ──────────────────────────────────────────────

    @classmethod
    def basic_type(cls, kind: BasicKind) -> TypeDescriptor:
        """Return the shared descriptor for a basic kind."""
        return _BASIC_TYPES[kind]

    @classmethod
    def pointer(cls, elem: TypeDescriptor) -> TypeDescriptor:
        return cls(kind=TypeKind.POINTER, elem=elem)

    @classmethod
    def slice(cls, elem: TypeDescriptor) -> TypeDescriptor:
        return cls(kind=TypeKind.SLICE, elem=elem)

    @classmethod
    def array(cls, elem: TypeDescriptor, length: int) -> TypeDescriptor:
        return cls(kind=TypeKind.ARRAY, elem=elem, length=length)

    @classmethod
    def struct(cls, fields: Optional[List[StructField]] = None) -> TypeDescriptor:
        return cls(kind=TypeKind.STRUCT, fields=list(fields or []))

    @classmethod
    def named(
        cls,
        name: str,
        underlying: Optional[TypeDescriptor] = None,
        package: str = "",
    ) -> TypeDescriptor:
        t = cls(kind=TypeKind.NAMED, name=name, package=package)
        if underlying is not None:
            t.set_underlying(underlying)
        return t

    @classmethod
    def signature(
        cls,
        params: Optional[List[TypeDescriptor]] = None,
        results: Optional[List[TypeDescriptor]] = None,
    ) -> TypeDescriptor:
        return cls(
            kind=TypeKind.SIGNATURE,
            params=list(params or []),
            results=list(results or []),
        )

    def set_underlying(self, underlying: TypeDescriptor) -> None:
        """Complete a named type; the underlying of a named type is never named."""
        if self.kind is not TypeKind.NAMED:
            raise ValueError(f"set_underlying on {self.kind.name} type")
        self._underlying = underlying.underlying()

    # ── Predicates ───────────────────────────────────────────────────

    @property
    def is_invalid(self) -> bool:
        return self.kind is TypeKind.INVALID

    @property
    def is_named(self) -> bool:
        return self.kind is TypeKind.NAMED

    @property
    def is_pointer(self) -> bool:
        return self.underlying().kind is TypeKind.POINTER

    @property
    def is_struct(self) -> bool:
        return self.underlying().kind is TypeKind.STRUCT

    @property
    def is_untyped(self) -> bool:
        return self.kind is TypeKind.BASIC and self.basic in UNTYPED_KINDS

    def is_basic(self, *kinds: BasicKind) -> bool:
        """True if this (not its underlying) is a basic type of one of *kinds*."""
        return self.kind is TypeKind.BASIC and self.basic in kinds

    def underlying(self) -> TypeDescriptor:
        """The underlying type: named types resolve, everything else is itself.

        A named type whose declaration never completed yields ``INVALID``.
        """
        if self.kind is TypeKind.NAMED:
            return self._underlying if self._underlying is not None else INVALID
        return self

    @property
    def pointee(self) -> Optional[TypeDescriptor]:
        u = self.underlying()
        if u.kind is TypeKind.POINTER:
            return u.elem
        return None

    def field_named(self, name: str) -> Optional[StructField]:
        """Look up a field of a struct (or pointer to struct) type."""
        u = self.underlying()
        if u.kind is TypeKind.POINTER and u.elem is not None:
            u = u.elem.underlying()
        if u.kind is not TypeKind.STRUCT:
            return None
        for f in u.fields:
            if f.name == name:
                return f
        return None

    def __str__(self) -> str:
        return type_string(self)

    def __repr__(self) -> str:
        return f"TypeDescriptor({type_string(self)})"


_BASIC_TYPES: Dict[BasicKind, TypeDescriptor] = {
    kind: TypeDescriptor(kind=TypeKind.BASIC, basic=kind) for kind in BasicKind
}

INVALID = TypeDescriptor(kind=TypeKind.INVALID)


def type_string(t: Optional[TypeDescriptor], depth: int = 0) -> str:
    """Pretty-print a type the way the target language spells it."""
    if t is None:
        return "<nil>"
    if depth > 20:
        return "..."
    k = t.kind
    if k is TypeKind.INVALID:
        return "invalid type"
    if k is TypeKind.BASIC:
        return t.basic.value if t.basic else "?"
    if k is TypeKind.NAMED:
        return f"{t.package}.{t.name}" if t.package else t.name
    if k is TypeKind.POINTER:
        return "*" + type_string(t.elem, depth + 1)
    if k is TypeKind.SLICE:
        return "[]" + type_string(t.elem, depth + 1)
    if k is TypeKind.ARRAY:
        return f"[{t.length}]" + type_string(t.elem, depth + 1)
    if k is TypeKind.STRUCT:
        parts = []
        for f in t.fields:
            ft = type_string(f.type, depth + 1)
            parts.append(ft if f.embedded else f"{f.name} {ft}")
        return "struct{" + "; ".join(parts) + "}"
    if k is TypeKind.SIGNATURE:
        params = ", ".join(type_string(p, depth + 1) for p in t.params)
        results = ", ".join(type_string(r, depth + 1) for r in t.results)
        if len(t.results) > 1:
            results = f"({results})"
        return f"func({params}) {results}".rstrip()
    return "?"


# ═════════════════════════════════════════════════════════════════════════
#  PART 2 - STRUCTURAL RELATIONS
# ═════════════════════════════════════════════════════════════════════════

def identical(a: Optional[TypeDescriptor], b: Optional[TypeDescriptor]) -> bool:
    """Type identity: named types are identical only to themselves,
    unnamed types are identical when structurally equal."""
    if a is None or b is None:
        return False
    if a is b:
        return not a.is_invalid
    if a.kind is not b.kind:
        return False
    k = a.kind
    if k is TypeKind.BASIC:
        return a.basic is b.basic
    if k in (TypeKind.POINTER, TypeKind.SLICE):
        return identical(a.elem, b.elem)
    if k is TypeKind.ARRAY:
        return a.length == b.length and identical(a.elem, b.elem)
    if k is TypeKind.STRUCT:
        if len(a.fields) != len(b.fields):
            return False
        for fa, fb in zip(a.fields, b.fields):
            if fa.name != fb.name or fa.embedded != fb.embedded:
                return False
            if not identical(fa.type, fb.type):
                return False
        return True
    if k is TypeKind.SIGNATURE:
        if len(a.params) != len(b.params) or len(a.results) != len(b.results):
            return False
        return (
            all(identical(x, y) for x, y in zip(a.params, b.params))
            and all(identical(x, y) for x, y in zip(a.results, b.results))
        )
    # NAMED (distinct declarations) and INVALID
    return False


def assignable_to(v: Optional[TypeDescriptor], t: Optional[TypeDescriptor]) -> bool:
    """Whether a value of type *v* may be assigned to a variable of type *t*."""
    if v is None or t is None or v.is_invalid or t.is_invalid:
        return False
    if identical(v, t):
        return True
    vu, tu = v.underlying(), t.underlying()
    if identical(vu, tu) and (not v.is_named or not t.is_named):
        return True
    if v.is_basic(BasicKind.UNTYPED_NIL):
        return tu.kind in (TypeKind.POINTER, TypeKind.SLICE, TypeKind.SIGNATURE) \
            or tu.is_basic(BasicKind.UNSAFE_POINTER)
    if v.is_untyped and tu.kind is TypeKind.BASIC:
        if v.basic is BasicKind.UNTYPED_INT:
            return tu.basic in INTEGER_KINDS or tu.basic in FLOAT_KINDS
        if v.basic is BasicKind.UNTYPED_FLOAT:
            return tu.basic in FLOAT_KINDS
        if v.basic is BasicKind.UNTYPED_STRING:
            return tu.basic is BasicKind.STRING
        if v.basic is BasicKind.UNTYPED_BOOL:
            return tu.basic is BasicKind.BOOL
    return False


_DEFAULT_KINDS: Dict[BasicKind, BasicKind] = {
    BasicKind.UNTYPED_BOOL: BasicKind.BOOL,
    BasicKind.UNTYPED_INT: BasicKind.INT,
    BasicKind.UNTYPED_FLOAT: BasicKind.FLOAT64,
    BasicKind.UNTYPED_STRING: BasicKind.STRING,
}


def default_type(t: TypeDescriptor) -> TypeDescriptor:
    """Type a variable receives when initialised from an untyped constant."""
    if t.kind is TypeKind.BASIC and t.basic in _DEFAULT_KINDS:
        return TypeDescriptor.basic_type(_DEFAULT_KINDS[t.basic])
    return t


# ═════════════════════════════════════════════════════════════════════════
#  PART 3 - BINDINGS AND PER-UNIT TYPE INFORMATION
# ═════════════════════════════════════════════════════════════════════════

class BindingKind(Enum):
    VAR = auto()
    CONST = auto()
    TYPE = auto()
    FUNC = auto()
    PACKAGE = auto()
    BUILTIN = auto()
    NIL = auto()


@dataclass(eq=False)
class Binding:
    """
    A resolved name: declaration site plus type.

    Bindings compare by identity; "same variable" means "same Binding",
    never "same spelling".
    """
    name: str
    kind: BindingKind
    type: TypeDescriptor = INVALID
    decl_loc: Loc = field(default_factory=Loc)
    package: str = ""

    def __repr__(self) -> str:
        return (
            f"Binding({self.kind.name.lower()} {self.name!r}: "
            f"{type_string(self.type)} @ {self.decl_loc})"
        )


@dataclass
class TypeInfo:
    """
    Type checker results for one unit.

    Attributes
    ----------
    types : expression node → TypeDescriptor (type expressions included)
    defs  : defining identifier → Binding
    uses  : referring identifier → Binding
    """
    types: Dict[Node, TypeDescriptor] = field(default_factory=dict)
    defs: Dict[Ident, Binding] = field(default_factory=dict)
    uses: Dict[Ident, Binding] = field(default_factory=dict)

    def type_of(self, node: Optional[Node]) -> TypeDescriptor:
        """Resolved type of *node*; ``INVALID`` when the front end has none."""
        if node is None:
            return INVALID
        return self.types.get(node, INVALID)

    def binding_of(self, ident: Ident) -> Optional[Binding]:
        """The Binding an identifier declares or refers to, if resolved."""
        binding = self.defs.get(ident)
        if binding is None:
            binding = self.uses.get(ident)
        return binding

    def record_type(self, node: Node, t: TypeDescriptor) -> TypeDescriptor:
        self.types[node] = t
        return t


__all__ = [
    "TypeKind",
    "BasicKind",
    "INTEGER_KINDS",
    "FLOAT_KINDS",
    "UNTYPED_KINDS",
    "StructField",
    "TypeDescriptor",
    "INVALID",
    "type_string",
    "identical",
    "assignable_to",
    "default_type",
    "BindingKind",
    "Binding",
    "TypeInfo",
]
