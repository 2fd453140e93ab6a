"""reinterp_shims/unit_reader.py – S-expression unit description → CompilationUnit.

A small reference front end.  It reads a compact S-expression description
of one compilation unit (the output of ``sexpdata.loads``: nested lists,
:class:`sexpdata.Symbol`, strings, ints, floats), builds the syntax tree of
:mod:`reinterp_shims.ast_nodes` and resolves names and types into a
:class:`~reinterp_shims.type_analysis.TypeInfo`.

It is not a parser for the target language.  It exists so that analysis
inputs can be written by hand: the fixture corpus under ``tests/fixtures``
and library users without a type checker of their own.

Design principles
-----------------
* **Two passes.**  :class:`_TreeBuilder` turns forms into nodes with
  head-symbol dispatch; :class:`_Resolver` walks the finished tree through
  universe, library, package, function and block scopes.
* **One line per form.**  Every top-level declaration, statement and case
  clause gets the next line number; expressions share the line of their
  statement and are numbered by column.
* **Fail fast on shape, not on names.**  A malformed form raises
  :class:`UnitFormatError`; a name that does not resolve just gets the
  ``INVALID`` type so analysis still runs on a partially typed unit.

Public API
----------
``read_unit(text, filename) -> CompilationUnit``
``read_unit_with_expectations(text, filename) -> (CompilationUnit, [Expectation])``
``load_unit(path) -> CompilationUnit``
``load_fixture(path) -> (CompilationUnit, [Expectation])``

Surface syntax (overview)
-------------------------
::

    ;; top level
    (package <name>)
    (import <path> ...)
    (type  <Name> <type>)              ;; declared type
    (alias <Name> <type>)              ;; type alias
    (var   <name | (names...)> <type | _> <expr>...)
    (func  <Name> ((<names>... <type>) ...) ((<names>... <type>) ...) <stmt>...)

    ;; statements; any of them may end with (want "message" ...)
    (define <lhs> <expr>)              (assign <lhs> <expr>)
    (define-multi (<lhs>...) <expr>...)
    (assign-multi (<lhs>...) <expr>...)
    (var ...)  (expr <expr>)  (call ...)  (return <expr>...)
    (inc <expr>)  (dec <expr>)  (break)  (continue)  (block <stmt>...)
    (if [(init <stmt>)] <cond> (block ...) [(block ...) | (if ...)])
    (for [[<init> <cond> <post>] | <cond>] (block ...))     ;; _ = absent
    (range <key> <value> <expr> (block ...))
    (switch [(init <stmt>)] <tag> (case (<expr>...) <stmt>...) (default <stmt>...))

    ;; expressions
    name  pkg.name  x.f.g  42  1.5  "text"
    (sel <x> <name>)  (addr <x>)  (star <x>)  (paren <x>)  (index <x> <i>)
    (call <fun> <arg>...)          (conv <type> <x>)   ;; (T)(x)
    (lit <type | _> <elt | (kv <key> <elt>)>...)
    (<binop> <x> <y>)  (not <x>)  (neg <x>)
    (func-lit (<params>) (<results>) <stmt>...)

    ;; types
    name  pkg.Name  (ptr <T>)  (slice <T>)  (array <n> <T>)
    (struct (<names>... <T>) ... (embed <T>))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Optional,
    Set,
    Tuple,
    Union,
)

import sexpdata
from sexpdata import Symbol

from reinterp_shims.ast_nodes import (
    ArrayType,
    AssignStmt,
    BasicLit,
    BinaryExpr,
    BlockStmt,
    BranchStmt,
    CallExpr,
    CaseClause,
    CompositeLit,
    Expr,
    ExprStmt,
    Field,
    File,
    ForStmt,
    FuncDecl,
    FuncLit,
    FuncType,
    Ident,
    IfStmt,
    ImportSpec,
    IncDecStmt,
    IndexExpr,
    KeyValueExpr,
    Loc,
    Node,
    ParenExpr,
    RangeStmt,
    ReturnStmt,
    SelectorExpr,
    StarExpr,
    Stmt,
    StructType,
    SwitchStmt,
    TypeDecl,
    UnaryExpr,
    VarSpec,
)
from reinterp_shims.checkers import CompilationUnit
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
    type_string,
)

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════
#  Error types and results
# ═══════════════════════════════════════════════════════════════════════

class UnitFormatError(Exception):
    """Raised when a unit description has the wrong shape."""

    def __init__(self, message: str, line: int = 0, filename: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.line = line
        self.filename = filename

    def __str__(self) -> str:
        if self.line:
            return f"{self.filename or '<unit>'}:{self.line}: {self.message}"
        return self.message


@dataclass(frozen=True)
class Expectation:
    """A diagnostic message the description says must be reported on a line."""
    file: str
    line: int
    message: str


# ═══════════════════════════════════════════════════════════════════════
#  Helpers
# ═══════════════════════════════════════════════════════════════════════

Sexp = Any  # Union[list, Symbol, str, int, float]


def _is_symbol(s: Sexp, name: Optional[str] = None) -> bool:
    # Symbol subclasses str, so it has to be tested before plain strings.
    if not isinstance(s, Symbol):
        return False
    return name is None or str(s) == name


def _sym_name(s: Sexp) -> str:
    """Extract the string name from a ``sexpdata.Symbol``, or raise."""
    if isinstance(s, Symbol):
        return str(s)
    raise UnitFormatError(f"Expected symbol, got {type(s).__name__}: {s!r}")


def _head(s: list) -> str:
    if not s:
        raise UnitFormatError("Unexpected empty list")
    return _sym_name(s[0])


def _is_blank(s: Sexp) -> bool:
    return _is_symbol(s, "_")


def _read_forms(text: str) -> list:
    # Wrap so a description may hold any number of top-level forms; the
    # newline keeps a trailing ';' comment from swallowing the bracket.
    try:
        raw = sexpdata.loads("(\n" + text + "\n)", nil=None, true=None, false=None)
    except Exception as e:
        raise UnitFormatError(f"S-expression syntax error: {e}") from e
    if not isinstance(raw, list):
        raise UnitFormatError("Expected a list of top-level forms")
    return raw


# Maps a head-symbol string to a builder method; filled by ``@_register``.
_DECL_DISPATCH: Dict[str, Callable[..., Any]] = {}
_STMT_DISPATCH: Dict[str, Callable[..., Stmt]] = {}
_EXPR_DISPATCH: Dict[str, Callable[..., Expr]] = {}


def _register(table: dict, *tags: str):
    """Decorator: register a builder method under each of *tags* in *table*."""
    def deco(fn):
        for tag in tags:
            table[tag] = fn
        return fn
    return deco


BINARY_OPS = frozenset({
    "+", "-", "*", "/", "%", "&", "|", "^", "<<", ">>",
    "==", "!=", "<", "<=", ">", ">=", "&&", "||",
})
_BOOLEAN_OPS = frozenset({"==", "!=", "<", "<=", ">", ">=", "&&", "||"})


# ═══════════════════════════════════════════════════════════════════════
#  Pass 1 - forms → syntax tree
# ═══════════════════════════════════════════════════════════════════════

class _TreeBuilder:
    """Builds a :class:`File` from top-level forms, collecting ``want``
    annotations on the way."""

    def __init__(self, filename: str) -> None:
        self.filename = filename
        self.expectations: List[Expectation] = []
        self.line = 0
        self._col = 0
        self._package: Optional[Ident] = None
        self._imports: List[ImportSpec] = []
        self._decls: List[Node] = []

    # ----- locations and errors ---------------------------------------

    def _next_line(self) -> None:
        self.line += 1
        self._col = 0

    def _loc(self) -> Loc:
        self._col += 1
        return Loc(self.filename, self.line, self._col)

    def _error(self, message: str) -> UnitFormatError:
        return UnitFormatError(message, self.line, self.filename)

    def _expect_list(self, s: Sexp, *, min_len: int = 0, tag: Optional[str] = None) -> list:
        if not isinstance(s, list):
            raise self._error(
                f"Expected list{f' ({tag} ...)' if tag else ''}, got {s!r}"
            )
        if len(s) < min_len:
            raise self._error(
                f"List too short: expected at least {min_len} elements, "
                f"got {len(s)}: {s!r}"
            )
        if tag is not None and (not s or not _is_symbol(s[0], tag)):
            raise self._error(f"Expected ({tag} ...), got {s!r}")
        return s

    def _strip_want(self, form: list) -> list:
        """Detach a trailing ``(want "msg" ...)`` and record its messages."""
        if len(form) < 2:
            return form
        last = form[-1]
        if not (isinstance(last, list) and last and _is_symbol(last[0], "want")):
            return form
        for msg in last[1:]:
            if _is_symbol(msg) or not isinstance(msg, str):
                raise self._error(f"want expects strings, got {msg!r}")
            self.expectations.append(Expectation(self.filename, self.line, msg))
        return form[:-1]

    # ----- top level --------------------------------------------------

    def build(self, forms: list) -> File:
        for form in forms:
            lst = self._expect_list(form, min_len=1)
            self._next_line()
            lst = self._strip_want(lst)
            tag = _head(lst)
            handler = _DECL_DISPATCH.get(tag)
            if handler is None:
                raise self._error(f"Unknown top-level form: ({tag} ...)")
            handler(self, lst)
        package = self._package or Ident("main", Loc(self.filename, 0, 0))
        return File(
            package=package,
            imports=self._imports,
            decls=self._decls,
            loc=Loc(self.filename, 1, 1),
        )

    @_register(_DECL_DISPATCH, "package")
    def _package_form(self, lst: list) -> None:
        self._expect_list(lst, min_len=2)
        self._package = self._ident(lst[1])

    @_register(_DECL_DISPATCH, "import")
    def _import_form(self, lst: list) -> None:
        for path in lst[1:]:
            if isinstance(path, Symbol):
                path = str(path)
            elif not isinstance(path, str):
                raise self._error(f"Bad import path: {path!r}")
            self._imports.append(ImportSpec(path, self._loc()))

    @_register(_DECL_DISPATCH, "type", "alias")
    def _type_form(self, lst: list) -> None:
        self._expect_list(lst, min_len=3)
        loc = self._loc()
        self._decls.append(TypeDecl(
            name=self._ident(lst[1]),
            type=self._expr(lst[2]),
            alias=_is_symbol(lst[0], "alias"),
            loc=loc,
        ))

    @_register(_DECL_DISPATCH, "var")
    def _var_form(self, lst: list) -> None:
        self._decls.append(self._var_spec(lst, self._loc()))

    @_register(_DECL_DISPATCH, "func")
    def _func_form(self, lst: list) -> None:
        self._expect_list(lst, min_len=4)
        loc = self._loc()
        name = self._ident(lst[1])
        ftype = self._func_type(lst[2], lst[3])
        body_loc = self._loc()
        stmts = [self._stmt(s) for s in lst[4:]]
        self._decls.append(FuncDecl(
            name=name, type=ftype, body=BlockStmt(stmts, body_loc), loc=loc,
        ))

    # ----- shared pieces ----------------------------------------------

    def _ident(self, s: Sexp) -> Ident:
        name = _sym_name(s)
        if "." in name:
            raise self._error(f"Expected plain identifier, got {name!r}")
        return Ident(name, self._loc())

    def _name(self, name: str) -> Expr:
        loc = self._loc()
        parts = name.split(".")
        if not all(parts):
            raise self._error(f"Malformed name {name!r}")
        expr: Expr = Ident(parts[0], loc)
        for part in parts[1:]:
            expr = SelectorExpr(expr, Ident(part, loc), loc)
        return expr

    def _field_list(self, s: Sexp) -> List[Field]:
        fields = []
        for entry in self._expect_list(s):
            entry = self._expect_list(entry, min_len=1)
            loc = self._loc()
            names = [self._ident(n) for n in entry[:-1]]
            fields.append(Field(names, self._expr(entry[-1]), loc))
        return fields

    def _func_type(self, params: Sexp, results: Sexp) -> FuncType:
        loc = self._loc()
        return FuncType(self._field_list(params), self._field_list(results), loc)

    def _var_spec(self, lst: list, loc: Loc) -> VarSpec:
        self._expect_list(lst, min_len=3)
        if isinstance(lst[1], list):
            names = [self._ident(n) for n in lst[1]]
        else:
            names = [self._ident(lst[1])]
        typ = None if _is_blank(lst[2]) else self._expr(lst[2])
        values = [self._expr(v) for v in lst[3:]]
        if typ is None and not values:
            raise self._error("var needs a type or a value")
        return VarSpec(names, typ, values, loc)

    def _block(self, s: Sexp) -> BlockStmt:
        lst = self._expect_list(s, tag="block")
        loc = self._loc()
        return BlockStmt([self._stmt(x) for x in lst[1:]], loc)

    def _opt_init(self, args: list) -> Tuple[Optional[Stmt], list]:
        if args and isinstance(args[0], list) and args[0] and _is_symbol(args[0][0], "init"):
            init = self._expect_list(args[0], min_len=2)
            return self._stmt(init[1], new_line=False), args[1:]
        return None, args

    # ----- statements -------------------------------------------------

    def _stmt(self, s: Sexp, new_line: bool = True) -> Stmt:
        lst = self._expect_list(s, min_len=1)
        if new_line:
            self._next_line()
            lst = self._strip_want(lst)
        tag = _head(lst)
        handler = _STMT_DISPATCH.get(tag)
        if handler is None:
            raise self._error(f"Unknown statement form: ({tag} ...)")
        return handler(self, lst, self._loc())

    @_register(_STMT_DISPATCH, "define", "assign")
    def _assign_single(self, lst: list, loc: Loc) -> Stmt:
        self._expect_list(lst, min_len=3)
        tok = ":=" if _is_symbol(lst[0], "define") else "="
        return AssignStmt([self._expr(lst[1])], tok, [self._expr(lst[2])], loc)

    @_register(_STMT_DISPATCH, "define-multi", "assign-multi")
    def _assign_multi(self, lst: list, loc: Loc) -> Stmt:
        self._expect_list(lst, min_len=3)
        tok = ":=" if _is_symbol(lst[0], "define-multi") else "="
        lhs = [self._expr(x) for x in self._expect_list(lst[1], min_len=1)]
        return AssignStmt(lhs, tok, [self._expr(x) for x in lst[2:]], loc)

    @_register(_STMT_DISPATCH, "var")
    def _var_stmt(self, lst: list, loc: Loc) -> Stmt:
        return self._var_spec(lst, loc)

    @_register(_STMT_DISPATCH, "expr")
    def _expr_stmt(self, lst: list, loc: Loc) -> Stmt:
        self._expect_list(lst, min_len=2)
        return ExprStmt(self._expr(lst[1]), loc)

    @_register(_STMT_DISPATCH, "call")
    def _call_stmt(self, lst: list, loc: Loc) -> Stmt:
        return ExprStmt(self._expr(lst), loc)

    @_register(_STMT_DISPATCH, "return")
    def _return_stmt(self, lst: list, loc: Loc) -> Stmt:
        return ReturnStmt([self._expr(x) for x in lst[1:]], loc)

    @_register(_STMT_DISPATCH, "break", "continue")
    def _branch_stmt(self, lst: list, loc: Loc) -> Stmt:
        return BranchStmt(_head(lst), loc)

    @_register(_STMT_DISPATCH, "inc", "dec")
    def _incdec_stmt(self, lst: list, loc: Loc) -> Stmt:
        self._expect_list(lst, min_len=2)
        tok = "++" if _is_symbol(lst[0], "inc") else "--"
        return IncDecStmt(self._expr(lst[1]), tok, loc)

    @_register(_STMT_DISPATCH, "block")
    def _block_stmt(self, lst: list, loc: Loc) -> Stmt:
        return BlockStmt([self._stmt(x) for x in lst[1:]], loc)

    @_register(_STMT_DISPATCH, "if")
    def _if_stmt(self, lst: list, loc: Loc) -> Stmt:
        init, args = self._opt_init(lst[1:])
        if len(args) not in (2, 3):
            raise self._error("if expects a condition, a block and an optional else")
        cond = self._expr(args[0])
        body = self._block(args[1])
        else_: Optional[Stmt] = None
        if len(args) == 3:
            alt = self._expect_list(args[2], min_len=1)
            if _is_symbol(alt[0], "if"):
                else_ = self._stmt(alt)
            else:
                else_ = self._block(alt)
        return IfStmt(init, cond, body, else_, loc)

    @_register(_STMT_DISPATCH, "for")
    def _for_stmt(self, lst: list, loc: Loc) -> Stmt:
        args = lst[1:]
        init: Optional[Stmt] = None
        post: Optional[Stmt] = None
        cond: Optional[Expr] = None
        if len(args) == 4:
            if not _is_blank(args[0]):
                init = self._stmt(args[0], new_line=False)
            if not _is_blank(args[1]):
                cond = self._expr(args[1])
            if not _is_blank(args[2]):
                post = self._stmt(args[2], new_line=False)
        elif len(args) == 2:
            if not _is_blank(args[0]):
                cond = self._expr(args[0])
        elif len(args) != 1:
            raise self._error("for expects (init cond post body), (cond body) or (body)")
        return ForStmt(init, cond, post, self._block(args[-1]), loc)

    @_register(_STMT_DISPATCH, "range")
    def _range_stmt(self, lst: list, loc: Loc) -> Stmt:
        self._expect_list(lst, min_len=5)
        key = None if _is_blank(lst[1]) else self._expr(lst[1])
        value = None if _is_blank(lst[2]) else self._expr(lst[2])
        tok = ":=" if key is not None or value is not None else ""
        return RangeStmt(key, value, tok, self._expr(lst[3]), self._block(lst[4]), loc)

    @_register(_STMT_DISPATCH, "switch")
    def _switch_stmt(self, lst: list, loc: Loc) -> Stmt:
        init, args = self._opt_init(lst[1:])
        if not args:
            raise self._error("switch expects a tag (or _)")
        tag = None if _is_blank(args[0]) else self._expr(args[0])
        clauses = [self._case_clause(c) for c in args[1:]]
        return SwitchStmt(init, tag, clauses, loc)

    def _case_clause(self, s: Sexp) -> CaseClause:
        lst = self._expect_list(s, min_len=1)
        self._next_line()
        lst = self._strip_want(lst)
        loc = self._loc()
        if _is_symbol(lst[0], "default"):
            return CaseClause(None, [self._stmt(x) for x in lst[1:]], loc)
        self._expect_list(lst, min_len=2, tag="case")
        exprs = [self._expr(e) for e in self._expect_list(lst[1])]
        return CaseClause(exprs, [self._stmt(x) for x in lst[2:]], loc)

    # ----- expressions ------------------------------------------------

    def _expr(self, s: Sexp) -> Expr:
        if isinstance(s, Symbol):
            return self._name(str(s))
        if isinstance(s, bool):
            raise self._error(f"Unexpected boolean {s!r}")
        if isinstance(s, int):
            return BasicLit("INT", str(s), self._loc())
        if isinstance(s, float):
            return BasicLit("FLOAT", repr(s), self._loc())
        if isinstance(s, str):
            return BasicLit("STRING", s, self._loc())
        lst = self._expect_list(s, min_len=1)
        tag = _head(lst)
        if tag in BINARY_OPS and len(lst) == 3:
            loc = self._loc()
            return BinaryExpr(self._expr(lst[1]), tag, self._expr(lst[2]), loc)
        handler = _EXPR_DISPATCH.get(tag)
        if handler is None:
            raise self._error(f"Unknown expression form: ({tag} ...)")
        return handler(self, lst, self._loc())

    @_register(_EXPR_DISPATCH, "sel")
    def _sel_expr(self, lst: list, loc: Loc) -> Expr:
        self._expect_list(lst, min_len=3)
        return SelectorExpr(self._expr(lst[1]), self._ident(lst[2]), loc)

    @_register(_EXPR_DISPATCH, "addr")
    def _addr_expr(self, lst: list, loc: Loc) -> Expr:
        self._expect_list(lst, min_len=2)
        return UnaryExpr("&", self._expr(lst[1]), loc)

    @_register(_EXPR_DISPATCH, "not", "neg")
    def _unary_expr(self, lst: list, loc: Loc) -> Expr:
        self._expect_list(lst, min_len=2)
        op = "!" if _is_symbol(lst[0], "not") else "-"
        return UnaryExpr(op, self._expr(lst[1]), loc)

    @_register(_EXPR_DISPATCH, "star", "ptr")
    def _star_expr(self, lst: list, loc: Loc) -> Expr:
        self._expect_list(lst, min_len=2)
        return StarExpr(self._expr(lst[1]), loc)

    @_register(_EXPR_DISPATCH, "paren")
    def _paren_expr(self, lst: list, loc: Loc) -> Expr:
        self._expect_list(lst, min_len=2)
        return ParenExpr(self._expr(lst[1]), loc)

    @_register(_EXPR_DISPATCH, "call")
    def _call_expr(self, lst: list, loc: Loc) -> Expr:
        self._expect_list(lst, min_len=2)
        return CallExpr(self._expr(lst[1]), [self._expr(a) for a in lst[2:]], loc)

    @_register(_EXPR_DISPATCH, "conv")
    def _conv_expr(self, lst: list, loc: Loc) -> Expr:
        self._expect_list(lst, min_len=3)
        fun = ParenExpr(self._expr(lst[1]), self._loc())
        return CallExpr(fun, [self._expr(lst[2])], loc)

    @_register(_EXPR_DISPATCH, "index")
    def _index_expr(self, lst: list, loc: Loc) -> Expr:
        self._expect_list(lst, min_len=3)
        return IndexExpr(self._expr(lst[1]), self._expr(lst[2]), loc)

    @_register(_EXPR_DISPATCH, "lit")
    def _composite_lit(self, lst: list, loc: Loc) -> Expr:
        self._expect_list(lst, min_len=2)
        typ = None if _is_blank(lst[1]) else self._expr(lst[1])
        elts: List[Expr] = []
        for elt in lst[2:]:
            if isinstance(elt, list) and elt and _is_symbol(elt[0], "kv"):
                self._expect_list(elt, min_len=3)
                kv_loc = self._loc()
                elts.append(KeyValueExpr(self._expr(elt[1]), self._expr(elt[2]), kv_loc))
            else:
                elts.append(self._expr(elt))
        return CompositeLit(typ, elts, loc)

    @_register(_EXPR_DISPATCH, "func-lit")
    def _func_lit(self, lst: list, loc: Loc) -> Expr:
        self._expect_list(lst, min_len=3)
        ftype = self._func_type(lst[1], lst[2])
        body_loc = self._loc()
        return FuncLit(ftype, BlockStmt([self._stmt(s) for s in lst[3:]], body_loc), loc)

    @_register(_EXPR_DISPATCH, "slice")
    def _slice_type(self, lst: list, loc: Loc) -> Expr:
        self._expect_list(lst, min_len=2)
        return ArrayType(None, self._expr(lst[1]), loc)

    @_register(_EXPR_DISPATCH, "array")
    def _array_type(self, lst: list, loc: Loc) -> Expr:
        self._expect_list(lst, min_len=3)
        return ArrayType(self._expr(lst[1]), self._expr(lst[2]), loc)

    @_register(_EXPR_DISPATCH, "struct")
    def _struct_type(self, lst: list, loc: Loc) -> Expr:
        fields = []
        for entry in lst[1:]:
            entry = self._expect_list(entry, min_len=1)
            field_loc = self._loc()
            if _is_symbol(entry[0], "embed"):
                self._expect_list(entry, min_len=2)
                fields.append(Field([], self._expr(entry[1]), field_loc))
                continue
            self._expect_list(entry, min_len=2)
            names = [self._ident(n) for n in entry[:-1]]
            fields.append(Field(names, self._expr(entry[-1]), field_loc))
        return StructType(fields, loc)


# ═══════════════════════════════════════════════════════════════════════
#  Universe and library
# ═══════════════════════════════════════════════════════════════════════

def _basic(kind: BasicKind) -> TypeDescriptor:
    return TypeDescriptor.basic_type(kind)


_UNIVERSE_TYPES: Dict[str, TypeDescriptor] = {
    kind.value: _basic(kind)
    for kind in BasicKind
    if kind is not BasicKind.UNSAFE_POINTER and not kind.value.startswith("untyped")
}
_UNIVERSE_TYPES["byte"] = _basic(BasicKind.UINT8)
_UNIVERSE_TYPES["rune"] = _basic(BasicKind.INT32)

BUILTIN_FUNCS = ("len", "cap", "make", "new", "append", "copy", "panic")

SLICE_HEADER_TYPE = TypeDescriptor.named(
    "SliceHeader",
    TypeDescriptor.struct([
        StructField("Data", _basic(BasicKind.UINTPTR)),
        StructField("Len", _basic(BasicKind.INT)),
        StructField("Cap", _basic(BasicKind.INT)),
    ]),
    package="reflect",
)

STRING_HEADER_TYPE = TypeDescriptor.named(
    "StringHeader",
    TypeDescriptor.struct([
        StructField("Data", _basic(BasicKind.UINTPTR)),
        StructField("Len", _basic(BasicKind.INT)),
    ]),
    package="reflect",
)

# package path → member name → (kind, type)
LIBRARY: Dict[str, Dict[str, Tuple[BindingKind, TypeDescriptor]]] = {
    "reflect": {
        "SliceHeader": (BindingKind.TYPE, SLICE_HEADER_TYPE),
        "StringHeader": (BindingKind.TYPE, STRING_HEADER_TYPE),
    },
    "unsafe": {
        "Pointer": (BindingKind.TYPE, _basic(BasicKind.UNSAFE_POINTER)),
    },
    "runtime": {
        "KeepAlive": (BindingKind.FUNC, TypeDescriptor.signature([INVALID], [])),
    },
}


class _Scope:
    """One lexical scope; lookups fall back to the parent chain."""

    def __init__(self, parent: Optional[_Scope] = None, kind: str = "block") -> None:
        self.parent = parent
        self.kind = kind
        self.names: Dict[str, Binding] = {}

    def lookup(self, name: str) -> Optional[Binding]:
        scope: Optional[_Scope] = self
        while scope is not None:
            b = scope.names.get(name)
            if b is not None:
                return b
            scope = scope.parent
        return None

    def insert(self, binding: Binding) -> Binding:
        self.names[binding.name] = binding
        return binding

    def child(self, kind: str = "block") -> _Scope:
        return _Scope(self, kind)


def _universe_scope() -> _Scope:
    scope = _Scope(kind="universe")
    for name, t in _UNIVERSE_TYPES.items():
        scope.insert(Binding(name, BindingKind.TYPE, t))
    scope.insert(Binding("nil", BindingKind.NIL, _basic(BasicKind.UNTYPED_NIL)))
    scope.insert(Binding("true", BindingKind.CONST, _basic(BasicKind.UNTYPED_BOOL)))
    scope.insert(Binding("false", BindingKind.CONST, _basic(BasicKind.UNTYPED_BOOL)))
    for name in BUILTIN_FUNCS:
        scope.insert(Binding(name, BindingKind.BUILTIN, INVALID))
    return scope


# ═══════════════════════════════════════════════════════════════════════
#  Pass 2 - name and type resolution
# ═══════════════════════════════════════════════════════════════════════

class _Resolver:
    """Fills a :class:`TypeInfo` for a finished tree.

    Package-level type declarations are completed on first use so that
    declaration order does not matter; a type that refers to itself through
    a pointer sees its own (still incomplete) named descriptor.
    """

    def __init__(self, filename: str) -> None:
        self.filename = filename
        self.info = TypeInfo()
        self.universe = _universe_scope()
        self.package = self.universe.child("package")
        self._type_nodes: Set[Node] = set()
        self._members: Dict[str, Dict[str, Binding]] = {}
        self._pending: Dict[Binding, TypeDecl] = {}
        self._in_progress: Set[Binding] = set()
        self.unresolved = 0
        self.package_name = ""

    # ----- entry point ------------------------------------------------

    def resolve(self, file: File) -> TypeInfo:
        self.package_name = file.package.name
        for spec in file.imports:
            self._import(spec)

        funcs: List[Tuple[FuncDecl, Binding]] = []
        for decl in file.decls:
            if isinstance(decl, TypeDecl):
                b = Binding(decl.name.name, BindingKind.TYPE, INVALID,
                            decl.name.loc, file.package.name)
                if not decl.alias:
                    b.type = TypeDescriptor.named(decl.name.name, package=file.package.name)
                self.package.insert(b)
                self.info.defs[decl.name] = b
                self._pending[b] = decl
            elif isinstance(decl, FuncDecl):
                b = Binding(decl.name.name, BindingKind.FUNC, INVALID,
                            decl.name.loc, file.package.name)
                self.package.insert(b)
                self.info.defs[decl.name] = b
                funcs.append((decl, b))

        for b in list(self._pending):
            self._complete(b)

        func_scopes = []
        for decl, b in funcs:
            scope = self.package.child("function")
            b.type = self._signature(decl.type, scope)
            func_scopes.append((decl, scope))

        for decl in file.decls:
            if isinstance(decl, VarSpec):
                self._var_spec(decl, self.package)

        for decl, scope in func_scopes:
            if decl.body is not None:
                self._stmts(decl.body.stmts, scope)

        logger.debug(
            "%s: resolved %d types, %d defs, %d uses (%d unresolved names)",
            self.filename, len(self.info.types), len(self.info.defs),
            len(self.info.uses), self.unresolved,
        )
        return self.info

    def _import(self, spec: ImportSpec) -> None:
        name = spec.path.rsplit("/", 1)[-1]
        b = Binding(name, BindingKind.PACKAGE, INVALID, spec.loc, spec.path)
        self.package.insert(b)
        members = self._members.setdefault(spec.path, {})
        for member, (kind, t) in LIBRARY.get(spec.path, {}).items():
            members[member] = Binding(member, kind, t, package=spec.path)
        if spec.path not in LIBRARY:
            logger.debug("%s: no member table for package %r", self.filename, spec.path)

    def _complete(self, b: Binding) -> TypeDescriptor:
        decl = self._pending.get(b)
        if decl is None or b in self._in_progress:
            return b.type
        self._in_progress.add(b)
        try:
            t = self._type(decl.type, self.package)
            if decl.alias:
                b.type = t
            else:
                b.type.set_underlying(t)
        finally:
            self._in_progress.discard(b)
            del self._pending[b]
        return b.type

    def _unresolved(self, what: str, loc: Loc) -> TypeDescriptor:
        self.unresolved += 1
        logger.debug("%s: unresolved %s", loc, what)
        return INVALID

    # ----- types ------------------------------------------------------

    def _type(self, e: Expr, scope: _Scope) -> TypeDescriptor:
        t = self._expr(e, scope)
        if e not in self._type_nodes and not t.is_invalid:
            logger.debug("%s: expected a type, got a value of type %s", e.loc, type_string(t))
            return INVALID
        return t

    def _signature(self, ftype: FuncType, scope: _Scope) -> TypeDescriptor:
        """Resolve a function type, declaring its named parameters in *scope*."""
        self._type_nodes.add(ftype)
        params = self._fields_into(ftype.params, scope)
        results = self._fields_into(ftype.results, scope)
        sig = TypeDescriptor.signature(params, results)
        self.info.record_type(ftype, sig)
        return sig

    def _fields_into(self, fields: List[Field], scope: _Scope) -> List[TypeDescriptor]:
        types: List[TypeDescriptor] = []
        for f in fields:
            t = self._type(f.type, scope)
            if not f.names:
                types.append(t)
            for name in f.names:
                types.append(t)
                self._define(name, t, scope)
        return types

    def _define(self, ident: Ident, t: TypeDescriptor, scope: _Scope) -> Optional[Binding]:
        if ident.name == "_":
            return None
        b = Binding(ident.name, BindingKind.VAR, t, ident.loc, self.package_name)
        scope.insert(b)
        self.info.defs[ident] = b
        self.info.record_type(ident, t)
        return b

    # ----- expressions ------------------------------------------------

    def _expr(
        self,
        e: Expr,
        scope: _Scope,
        expected: Optional[TypeDescriptor] = None,
    ) -> TypeDescriptor:
        t = self._expr_inner(e, scope, expected)
        self.info.record_type(e, t)
        return t

    def _expr_inner(
        self,
        e: Expr,
        scope: _Scope,
        expected: Optional[TypeDescriptor],
    ) -> TypeDescriptor:
        if isinstance(e, Ident):
            return self._ident(e, scope)
        if isinstance(e, BasicLit):
            return _basic({
                "INT": BasicKind.UNTYPED_INT,
                "FLOAT": BasicKind.UNTYPED_FLOAT,
            }.get(e.lit_kind, BasicKind.UNTYPED_STRING))
        if isinstance(e, SelectorExpr):
            return self._selector(e, scope)
        if isinstance(e, StarExpr):
            xt = self._expr(e.x, scope)
            if e.x in self._type_nodes:
                self._type_nodes.add(e)
                return TypeDescriptor.pointer(xt)
            return xt.pointee or INVALID
        if isinstance(e, UnaryExpr):
            xt = self._expr(e.x, scope)
            if e.op == "&":
                return TypeDescriptor.pointer(xt)
            if e.op == "!":
                return _basic(BasicKind.UNTYPED_BOOL) if xt.is_untyped else _basic(BasicKind.BOOL)
            return xt
        if isinstance(e, BinaryExpr):
            xt = self._expr(e.x, scope)
            yt = self._expr(e.y, scope)
            if e.op in _BOOLEAN_OPS:
                return _basic(BasicKind.UNTYPED_BOOL)
            return yt if xt.is_untyped else xt
        if isinstance(e, ParenExpr):
            xt = self._expr(e.x, scope, expected)
            if e.x in self._type_nodes:
                self._type_nodes.add(e)
            return xt
        if isinstance(e, CallExpr):
            return self._call(e, scope)
        if isinstance(e, IndexExpr):
            return self._index(e, scope)
        if isinstance(e, CompositeLit):
            return self._composite(e, scope, expected)
        if isinstance(e, KeyValueExpr):
            self._expr(e.key, scope)
            return self._expr(e.value, scope, expected)
        if isinstance(e, FuncLit):
            fscope = scope.child("function")
            sig = self._signature(e.type, fscope)
            self._stmts(e.body.stmts, fscope)
            return sig
        if isinstance(e, ArrayType):
            self._type_nodes.add(e)
            elem = self._type(e.elt, scope)
            if e.len is None:
                return TypeDescriptor.slice(elem)
            self._expr(e.len, scope)
            length = int(e.len.value) if isinstance(e.len, BasicLit) and e.len.lit_kind == "INT" else -1
            return TypeDescriptor.array(elem, length)
        if isinstance(e, StructType):
            self._type_nodes.add(e)
            fields = []
            for f in e.fields:
                ft = self._type(f.type, scope)
                if not f.names:
                    fields.append(StructField(_embedded_name(ft), ft, embedded=True))
                for name in f.names:
                    fields.append(StructField(name.name, ft))
            return TypeDescriptor.struct(fields)
        if isinstance(e, FuncType):
            return self._signature(e, scope.child("function"))
        return self._unresolved(f"expression kind {e.kind}", e.loc)

    def _ident(self, e: Ident, scope: _Scope) -> TypeDescriptor:
        if e.name == "_":
            return INVALID
        b = scope.lookup(e.name)
        if b is None:
            return self._unresolved(f"name {e.name!r}", e.loc)
        self.info.uses[e] = b
        if b.kind is BindingKind.TYPE:
            self._type_nodes.add(e)
            return self._complete(b)
        if b.kind is BindingKind.PACKAGE:
            return INVALID
        return b.type

    def _selector(self, e: SelectorExpr, scope: _Scope) -> TypeDescriptor:
        if isinstance(e.x, Ident):
            b = scope.lookup(e.x.name)
            if b is not None and b.kind is BindingKind.PACKAGE:
                self.info.uses[e.x] = b
                member = self._members.get(b.package, {}).get(e.sel.name)
                if member is None:
                    return self._unresolved(f"name {e.x.name}.{e.sel.name}", e.loc)
                self.info.uses[e.sel] = member
                if member.kind is BindingKind.TYPE:
                    self._type_nodes.add(e)
                return member.type
        xt = self._expr(e.x, scope)
        f = xt.field_named(e.sel.name)
        if f is None:
            if xt.is_invalid:
                return INVALID
            return self._unresolved(f"field {e.sel.name!r} of {type_string(xt)}", e.loc)
        self.info.record_type(e.sel, f.type)
        return f.type

    def _call(self, e: CallExpr, scope: _Scope) -> TypeDescriptor:
        ft = self._expr(e.fun, scope)
        if e.fun in self._type_nodes:
            for a in e.args:
                self._expr(a, scope, expected=ft)
            return ft
        arg_types = [self._expr(a, scope) for a in e.args]
        callee = self._callee(e.fun)
        if callee is not None and callee.kind is BindingKind.BUILTIN:
            return _builtin_result(callee.name, arg_types)
        sig = ft.underlying()
        if sig.kind is TypeKind.SIGNATURE and len(sig.results) == 1:
            return sig.results[0]
        return INVALID

    def _callee(self, fun: Expr) -> Optional[Binding]:
        if isinstance(fun, Ident):
            return self.info.uses.get(fun)
        if isinstance(fun, SelectorExpr):
            return self.info.uses.get(fun.sel)
        return None

    def _index(self, e: IndexExpr, scope: _Scope) -> TypeDescriptor:
        xt = self._expr(e.x, scope).underlying()
        self._expr(e.index, scope)
        if xt.kind is TypeKind.POINTER and xt.elem is not None:
            xt = xt.elem.underlying()
        if xt.kind in (TypeKind.SLICE, TypeKind.ARRAY) and xt.elem is not None:
            return xt.elem
        if xt.is_basic(BasicKind.STRING, BasicKind.UNTYPED_STRING):
            return _basic(BasicKind.UINT8)
        return INVALID

    def _composite(
        self,
        e: CompositeLit,
        scope: _Scope,
        expected: Optional[TypeDescriptor],
    ) -> TypeDescriptor:
        if e.type is not None:
            lt = self._type(e.type, scope)
        else:
            lt = expected or INVALID
            if lt.pointee is not None:
                lt = lt.pointee
        u = lt.underlying()
        for i, elt in enumerate(e.elts):
            if isinstance(elt, KeyValueExpr):
                if u.kind is TypeKind.STRUCT and isinstance(elt.key, Ident):
                    f = u.field_named(elt.key.name)
                    if f is None:
                        self._unresolved(f"field {elt.key.name!r} in literal", elt.loc)
                    ft = f.type if f is not None else INVALID
                    self.info.record_type(elt.key, ft)
                else:
                    self._expr(elt.key, scope)
                    ft = u.elem if u.elem is not None else INVALID
                vt = self._expr(elt.value, scope, expected=ft)
                self.info.record_type(elt, vt)
                continue
            if u.kind is TypeKind.STRUCT:
                ft = u.fields[i].type if i < len(u.fields) else INVALID
            else:
                ft = u.elem if u.elem is not None else INVALID
            self._expr(elt, scope, expected=ft)
        return lt

    # ----- statements -------------------------------------------------

    def _stmts(self, stmts: List[Stmt], scope: _Scope) -> None:
        for s in stmts:
            self._stmt(s, scope)

    def _stmt(self, s: Stmt, scope: _Scope) -> None:
        if isinstance(s, AssignStmt):
            self._assign(s, scope)
        elif isinstance(s, VarSpec):
            self._var_spec(s, scope)
        elif isinstance(s, (ExprStmt, IncDecStmt)):
            self._expr(s.x, scope)
        elif isinstance(s, ReturnStmt):
            for r in s.results:
                self._expr(r, scope)
        elif isinstance(s, BranchStmt):
            pass
        elif isinstance(s, BlockStmt):
            self._stmts(s.stmts, scope.child())
        elif isinstance(s, IfStmt):
            inner = scope.child()
            if s.init is not None:
                self._stmt(s.init, inner)
            self._expr(s.cond, inner)
            self._stmts(s.body.stmts, inner.child())
            if s.else_ is not None:
                self._stmt(s.else_, inner)
        elif isinstance(s, ForStmt):
            inner = scope.child()
            if s.init is not None:
                self._stmt(s.init, inner)
            if s.cond is not None:
                self._expr(s.cond, inner)
            if s.post is not None:
                self._stmt(s.post, inner)
            self._stmts(s.body.stmts, inner.child())
        elif isinstance(s, RangeStmt):
            self._range(s, scope)
        elif isinstance(s, SwitchStmt):
            inner = scope.child()
            if s.init is not None:
                self._stmt(s.init, inner)
            if s.tag is not None:
                self._expr(s.tag, inner)
            for clause in s.clauses:
                for e in clause.exprs or []:
                    self._expr(e, inner)
                self._stmts(clause.body, inner.child())
        else:
            self._unresolved(f"statement kind {s.kind}", s.loc)

    def _rhs_types(self, s: AssignStmt, scope: _Scope) -> List[TypeDescriptor]:
        types = [self._expr(r, scope) for r in s.rhs]
        if len(s.lhs) > 1 and len(s.rhs) == 1 and isinstance(s.rhs[0], CallExpr):
            sig = self.info.type_of(s.rhs[0].fun).underlying()
            if sig.kind is TypeKind.SIGNATURE and len(sig.results) == len(s.lhs):
                return list(sig.results)
        if len(types) != len(s.lhs):
            return [INVALID] * len(s.lhs)
        return types

    def _assign(self, s: AssignStmt, scope: _Scope) -> None:
        # Right-hand sides are evaluated before new names come into scope.
        rhs = self._rhs_types(s, scope)
        for lhs, rt in zip(s.lhs, rhs):
            if s.is_define and isinstance(lhs, Ident):
                if lhs.name == "_":
                    continue
                existing = scope.names.get(lhs.name)
                if existing is not None:
                    self.info.uses[lhs] = existing
                    self.info.record_type(lhs, existing.type)
                else:
                    self._define(lhs, default_type(rt), scope)
                continue
            lt = self._expr(lhs, scope)
            if not lt.is_invalid and not rt.is_invalid and not assignable_to(rt, lt):
                logger.debug(
                    "%s: %s is not assignable to %s",
                    s.loc, type_string(rt), type_string(lt),
                )

    def _var_spec(self, s: VarSpec, scope: _Scope) -> None:
        declared = self._type(s.type, scope) if s.type is not None else None
        values = [self._expr(v, scope, expected=declared) for v in s.values]
        for i, name in enumerate(s.names):
            vt = values[i] if len(values) == len(s.names) else INVALID
            if declared is not None:
                if values and not vt.is_invalid and not assignable_to(vt, declared):
                    logger.debug(
                        "%s: %s is not assignable to %s",
                        s.loc, type_string(vt), type_string(declared),
                    )
                t = declared
            else:
                t = default_type(vt)
            self._define(name, t, scope)

    def _range(self, s: RangeStmt, scope: _Scope) -> None:
        xt = self._expr(s.x, scope).underlying()
        if xt.kind is TypeKind.POINTER and xt.elem is not None:
            xt = xt.elem.underlying()
        key_t: TypeDescriptor = INVALID
        value_t: TypeDescriptor = INVALID
        if xt.kind in (TypeKind.SLICE, TypeKind.ARRAY):
            key_t, value_t = _basic(BasicKind.INT), xt.elem or INVALID
        elif xt.is_basic(BasicKind.STRING, BasicKind.UNTYPED_STRING):
            key_t, value_t = _basic(BasicKind.INT), _basic(BasicKind.INT32)
        elif xt.is_basic(*_INTEGER_RANGE_KINDS):
            key_t = default_type(xt)

        inner = scope.child()
        for target, t in ((s.key, key_t), (s.value, value_t)):
            if target is None:
                continue
            if s.tok == ":=" and isinstance(target, Ident):
                self._define(target, t, inner)
            else:
                self._expr(target, inner)
        self._stmts(s.body.stmts, inner.child())


_INTEGER_RANGE_KINDS = (
    BasicKind.INT, BasicKind.INT8, BasicKind.INT16, BasicKind.INT32, BasicKind.INT64,
    BasicKind.UINT, BasicKind.UINT8, BasicKind.UINT16, BasicKind.UINT32,
    BasicKind.UINT64, BasicKind.UINTPTR, BasicKind.UNTYPED_INT,
)


def _embedded_name(t: TypeDescriptor) -> str:
    u = t.pointee if t.pointee is not None and not t.is_named else t
    return u.name if u.is_named else type_string(u)


def _builtin_result(name: str, args: List[TypeDescriptor]) -> TypeDescriptor:
    if name in ("len", "cap", "copy"):
        return _basic(BasicKind.INT)
    if name == "new" and args:
        return TypeDescriptor.pointer(args[0])
    if name in ("make", "append") and args:
        return args[0]
    return INVALID


# ═══════════════════════════════════════════════════════════════════════
#  Public API
# ═══════════════════════════════════════════════════════════════════════

def read_unit_with_expectations(
    text: str,
    filename: str = "<unit>",
) -> Tuple[CompilationUnit, List[Expectation]]:
    """Read a unit description and the ``want`` annotations it carries."""
    forms = _read_forms(text)
    builder = _TreeBuilder(filename)
    try:
        tree = builder.build(forms)
    except UnitFormatError as e:
        if not e.filename:
            e.filename = filename
            e.line = e.line or builder.line
        raise
    info = _Resolver(filename).resolve(tree)
    return CompilationUnit(filename=filename, file=tree, info=info), builder.expectations


def read_unit(text: str, filename: str = "<unit>") -> CompilationUnit:
    """Read a unit description into a :class:`CompilationUnit`."""
    unit, _ = read_unit_with_expectations(text, filename)
    return unit


def load_fixture(path: Union[str, Path]) -> Tuple[CompilationUnit, List[Expectation]]:
    """Read a ``.sexp`` unit description file, with its expectations."""
    p = Path(path)
    return read_unit_with_expectations(p.read_text(encoding="utf-8"), str(p))


def load_unit(path: Union[str, Path]) -> CompilationUnit:
    """Read a ``.sexp`` unit description file."""
    unit, _ = load_fixture(path)
    return unit


__all__ = [
    "UnitFormatError",
    "Expectation",
    "SLICE_HEADER_TYPE",
    "STRING_HEADER_TYPE",
    "LIBRARY",
    "BUILTIN_FUNCS",
    "BINARY_OPS",
    "read_unit",
    "read_unit_with_expectations",
    "load_unit",
    "load_fixture",
]
