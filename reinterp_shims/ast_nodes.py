# reinterp_shims/ast_nodes.py
"""
Syntax tree node definitions for one compilation unit.

The tree is produced once by the front end and is read-only for every
analysis.  Nodes compare and hash by identity: the same spelling at two
places in the source is two different nodes, which is what the CFG path
search and the binding lookups rely on.

Every node carries source location information for diagnostics.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Iterator, List, Optional, Union


# ── Source Location ──────────────────────────────────────────────

@dataclass(frozen=True)
class Loc:
    """Source location for diagnostics."""
    file: str = "<unknown>"
    line: int = 0
    col: int = 0

    def __str__(self):
        return f"{self.file}:{self.line}:{self.col}"


# ── Base ─────────────────────────────────────────────────────────

@dataclass(eq=False)
class Node:
    """Base class of all syntax nodes.

    ``children()`` yields the direct child nodes in source order, which
    makes a recursive walk over it a pre-order traversal of the source.
    """

    def children(self) -> Iterator[Node]:
        for f in fields(self):
            if f.name == "loc":
                continue
            value = getattr(self, f.name)
            if isinstance(value, Node):
                yield value
            elif isinstance(value, list):
                for item in value:
                    if isinstance(item, Node):
                        yield item

    @property
    def kind(self) -> str:
        return type(self).__name__

    def __repr__(self) -> str:
        loc = getattr(self, "loc", None)
        return f"<{self.kind} at {loc}>"


# ── Expressions ──────────────────────────────────────────────────

@dataclass(eq=False, repr=False)
class Ident(Node):
    name: str
    loc: Loc = field(default_factory=Loc)

    def __repr__(self) -> str:
        return f"<Ident {self.name!r} at {self.loc}>"


@dataclass(eq=False, repr=False)
class BasicLit(Node):
    """Literal constant.  ``lit_kind`` is one of INT, FLOAT, STRING."""
    lit_kind: str
    value: str
    loc: Loc = field(default_factory=Loc)


@dataclass(eq=False, repr=False)
class CompositeLit(Node):
    """``T{elts}``; ``type`` is ``None`` when elided inside another literal."""
    type: Optional[Expr]
    elts: List[Expr] = field(default_factory=list)
    loc: Loc = field(default_factory=Loc)


@dataclass(eq=False, repr=False)
class KeyValueExpr(Node):
    key: Expr
    value: Expr
    loc: Loc = field(default_factory=Loc)


@dataclass(eq=False, repr=False)
class SelectorExpr(Node):
    """``x.sel`` (field, method, or package-qualified name)."""
    x: Expr
    sel: Ident
    loc: Loc = field(default_factory=Loc)


@dataclass(eq=False, repr=False)
class StarExpr(Node):
    """``*x``: a dereference, or a pointer type when ``x`` denotes a type."""
    x: Expr
    loc: Loc = field(default_factory=Loc)


@dataclass(eq=False, repr=False)
class UnaryExpr(Node):
    op: str
    x: Expr
    loc: Loc = field(default_factory=Loc)


@dataclass(eq=False, repr=False)
class BinaryExpr(Node):
    x: Expr
    op: str
    y: Expr
    loc: Loc = field(default_factory=Loc)


@dataclass(eq=False, repr=False)
class ParenExpr(Node):
    x: Expr
    loc: Loc = field(default_factory=Loc)


@dataclass(eq=False, repr=False)
class CallExpr(Node):
    """Function call or type conversion ``fun(args)``."""
    fun: Expr
    args: List[Expr] = field(default_factory=list)
    loc: Loc = field(default_factory=Loc)


@dataclass(eq=False, repr=False)
class IndexExpr(Node):
    x: Expr
    index: Expr
    loc: Loc = field(default_factory=Loc)


@dataclass(eq=False, repr=False)
class FuncLit(Node):
    type: FuncType
    body: BlockStmt
    loc: Loc = field(default_factory=Loc)


# ── Type Expressions ─────────────────────────────────────────────

@dataclass(eq=False, repr=False)
class ArrayType(Node):
    """``[len]elt``; a slice type when ``len`` is ``None``."""
    len: Optional[Expr]
    elt: Expr
    loc: Loc = field(default_factory=Loc)


@dataclass(eq=False, repr=False)
class Field(Node):
    """Struct field, parameter or result.  ``names`` may be empty."""
    names: List[Ident]
    type: Expr
    loc: Loc = field(default_factory=Loc)


@dataclass(eq=False, repr=False)
class StructType(Node):
    fields: List[Field] = field(default_factory=list)
    loc: Loc = field(default_factory=Loc)


@dataclass(eq=False, repr=False)
class FuncType(Node):
    params: List[Field] = field(default_factory=list)
    results: List[Field] = field(default_factory=list)
    loc: Loc = field(default_factory=Loc)


# ── Statements ───────────────────────────────────────────────────

@dataclass(eq=False, repr=False)
class AssignStmt(Node):
    """``lhs tok rhs`` where ``tok`` is ``=`` or ``:=``."""
    lhs: List[Expr]
    tok: str
    rhs: List[Expr]
    loc: Loc = field(default_factory=Loc)

    @property
    def is_define(self) -> bool:
        return self.tok == ":="


@dataclass(eq=False, repr=False)
class VarSpec(Node):
    """``var names type = values``; a statement or a package-level declaration."""
    names: List[Ident]
    type: Optional[Expr] = None
    values: List[Expr] = field(default_factory=list)
    loc: Loc = field(default_factory=Loc)


@dataclass(eq=False, repr=False)
class ExprStmt(Node):
    x: Expr
    loc: Loc = field(default_factory=Loc)


@dataclass(eq=False, repr=False)
class IncDecStmt(Node):
    x: Expr
    tok: str
    loc: Loc = field(default_factory=Loc)


@dataclass(eq=False, repr=False)
class ReturnStmt(Node):
    results: List[Expr] = field(default_factory=list)
    loc: Loc = field(default_factory=Loc)


@dataclass(eq=False, repr=False)
class BranchStmt(Node):
    """``break`` or ``continue``."""
    tok: str
    loc: Loc = field(default_factory=Loc)


@dataclass(eq=False, repr=False)
class BlockStmt(Node):
    stmts: List[Stmt] = field(default_factory=list)
    loc: Loc = field(default_factory=Loc)


@dataclass(eq=False, repr=False)
class IfStmt(Node):
    init: Optional[Stmt]
    cond: Expr
    body: BlockStmt
    else_: Optional[Stmt] = None
    loc: Loc = field(default_factory=Loc)


@dataclass(eq=False, repr=False)
class ForStmt(Node):
    init: Optional[Stmt]
    cond: Optional[Expr]
    post: Optional[Stmt]
    body: BlockStmt
    loc: Loc = field(default_factory=Loc)


@dataclass(eq=False, repr=False)
class RangeStmt(Node):
    key: Optional[Expr]
    value: Optional[Expr]
    tok: str
    x: Expr
    body: BlockStmt
    loc: Loc = field(default_factory=Loc)


@dataclass(eq=False, repr=False)
class CaseClause(Node):
    """One ``case``; ``exprs`` is ``None`` for ``default``."""
    exprs: Optional[List[Expr]]
    body: List[Stmt] = field(default_factory=list)
    loc: Loc = field(default_factory=Loc)

    @property
    def is_default(self) -> bool:
        return self.exprs is None


@dataclass(eq=False, repr=False)
class SwitchStmt(Node):
    init: Optional[Stmt]
    tag: Optional[Expr]
    clauses: List[CaseClause] = field(default_factory=list)
    loc: Loc = field(default_factory=Loc)


# ── Declarations ─────────────────────────────────────────────────

@dataclass(eq=False, repr=False)
class ImportSpec(Node):
    path: str
    loc: Loc = field(default_factory=Loc)


@dataclass(eq=False, repr=False)
class TypeDecl(Node):
    """``type name T`` or, with ``alias``, ``type name = T``."""
    name: Ident
    type: Expr
    alias: bool = False
    loc: Loc = field(default_factory=Loc)


@dataclass(eq=False, repr=False)
class FuncDecl(Node):
    name: Ident
    type: FuncType
    body: Optional[BlockStmt]
    loc: Loc = field(default_factory=Loc)


@dataclass(eq=False, repr=False)
class File(Node):
    package: Ident
    imports: List[ImportSpec] = field(default_factory=list)
    decls: List[Decl] = field(default_factory=list)
    loc: Loc = field(default_factory=Loc)


Expr = Union[
    Ident, BasicLit, CompositeLit, KeyValueExpr, SelectorExpr, StarExpr,
    UnaryExpr, BinaryExpr, ParenExpr, CallExpr, IndexExpr, FuncLit,
    ArrayType, StructType, FuncType,
]

Stmt = Union[
    AssignStmt, VarSpec, ExprStmt, IncDecStmt, ReturnStmt, BranchStmt,
    BlockStmt, IfStmt, ForStmt, RangeStmt, SwitchStmt,
]

Decl = Union[TypeDecl, FuncDecl, VarSpec]

FunctionNode = Union[FuncDecl, FuncLit]


__all__ = [
    "Loc", "Node",
    "Ident", "BasicLit", "CompositeLit", "KeyValueExpr", "SelectorExpr",
    "StarExpr", "UnaryExpr", "BinaryExpr", "ParenExpr", "CallExpr",
    "IndexExpr", "FuncLit",
    "ArrayType", "Field", "StructType", "FuncType",
    "AssignStmt", "VarSpec", "ExprStmt", "IncDecStmt", "ReturnStmt",
    "BranchStmt", "BlockStmt", "IfStmt", "ForStmt", "RangeStmt",
    "CaseClause", "SwitchStmt",
    "ImportSpec", "TypeDecl", "FuncDecl", "File",
    "Expr", "Stmt", "Decl", "FunctionNode",
]
