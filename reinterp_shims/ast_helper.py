"""
reinterp_shims/ast_helper.py
════════════════════════════

Traversal and small structural queries over the syntax tree.

    ┌─────────────────────────────────────────────────────────────────┐
    │  Traversal                                                      │
    │    • Pre-order iteration, optionally with the ancestor stack    │
    │    • Filtering by node class                                    │
    ├─────────────────────────────────────────────────────────────────┤
    │  Queries                                                        │
    │    • Enclosing function of a node                               │
    │    • Address-of and qualified-name tests                       │
    │    • Expression stringification (for logs and messages)         │
    └─────────────────────────────────────────────────────────────────┘

All functions are read-only and accept ``None`` where a node is optional.

License: MIT
"""

from __future__ import annotations

from typing import (
    Iterator,
    List,
    Optional,
    Sequence,
    Tuple,
    Type,
    Union,
)

from reinterp_shims.ast_nodes import (
    ArrayType,
    BasicLit,
    BinaryExpr,
    CallExpr,
    CompositeLit,
    Expr,
    FuncDecl,
    FuncLit,
    FunctionNode,
    Ident,
    IndexExpr,
    KeyValueExpr,
    Node,
    ParenExpr,
    SelectorExpr,
    StarExpr,
    StructType,
    UnaryExpr,
)

NodeTypes = Union[Type[Node], Tuple[Type[Node], ...]]


# ═══════════════════════════════════════════════════════════════════════════
#  PART 1 - TRAVERSAL
# ═══════════════════════════════════════════════════════════════════════════

def iter_preorder(root: Optional[Node]) -> Iterator[Node]:
    """
    Iterate over tree nodes in pre-order (node, then children in source order).

    Args:
        root: The root node of the subtree

    Yields:
        Nodes in pre-order sequence
    """
    if root is None:
        return
    stack: List[Node] = [root]
    while stack:
        node = stack.pop()
        yield node
        # Push in reverse so the first child is processed first (LIFO)
        stack.extend(reversed(list(node.children())))


def iter_preorder_with_stack(
    root: Optional[Node],
    types: Optional[NodeTypes] = None,
) -> Iterator[Tuple[Node, Tuple[Node, ...]]]:
    """
    Pre-order iteration that also reports the ancestors of each node.

    Args:
        root:  The root node of the subtree
        types: If given, only nodes that are instances of these classes
               are yielded (all nodes are still visited)

    Yields:
        ``(node, ancestors)`` where ``ancestors`` runs from the root down
        to the node's direct parent
    """
    if root is None:
        return
    stack: List[Tuple[Node, Tuple[Node, ...]]] = [(root, ())]
    while stack:
        node, ancestors = stack.pop()
        if types is None or isinstance(node, types):
            yield node, ancestors
        inner = ancestors + (node,)
        for child in reversed(list(node.children())):
            stack.append((child, inner))


def iter_functions(root: Optional[Node]) -> Iterator[FunctionNode]:
    """Yield every function declaration and function literal, in pre-order."""
    for node in iter_preorder(root):
        if isinstance(node, (FuncDecl, FuncLit)):
            yield node


# ═══════════════════════════════════════════════════════════════════════════
#  PART 2 - QUERIES
# ═══════════════════════════════════════════════════════════════════════════

def enclosing_function(ancestors: Sequence[Node]) -> Optional[FunctionNode]:
    """
    Return the innermost function declaration or literal in an ancestor stack.

    Args:
        ancestors: Ancestors of a node, outermost first

    Returns:
        The innermost ``FuncDecl`` or ``FuncLit``, or ``None`` for nodes at
        package level
    """
    for node in reversed(ancestors):
        if isinstance(node, (FuncDecl, FuncLit)):
            return node
    return None


def is_qualified_name(expr: Optional[Expr], package: str, name: str) -> bool:
    """True if *expr* is spelled ``package.name``."""
    if not isinstance(expr, SelectorExpr):
        return False
    return (
        isinstance(expr.x, Ident)
        and expr.x.name == package
        and expr.sel.name == name
    )


def is_address_of(expr: Optional[Expr]) -> bool:
    return isinstance(expr, UnaryExpr) and expr.op == "&"


# ═══════════════════════════════════════════════════════════════════════════
#  PART 3 - STRINGIFICATION
# ═══════════════════════════════════════════════════════════════════════════

def expr_to_string(expr: Optional[Node]) -> str:
    """
    Render an expression back to source-like text.

    Only meant for log messages and test output; the result is not
    guaranteed to re-parse.
    """
    if expr is None:
        return ""
    if isinstance(expr, Ident):
        return expr.name
    if isinstance(expr, BasicLit):
        if expr.lit_kind == "STRING":
            return f'"{expr.value}"'
        return expr.value
    if isinstance(expr, SelectorExpr):
        return f"{expr_to_string(expr.x)}.{expr.sel.name}"
    if isinstance(expr, StarExpr):
        return "*" + expr_to_string(expr.x)
    if isinstance(expr, UnaryExpr):
        return expr.op + expr_to_string(expr.x)
    if isinstance(expr, BinaryExpr):
        return f"{expr_to_string(expr.x)} {expr.op} {expr_to_string(expr.y)}"
    if isinstance(expr, ParenExpr):
        return f"({expr_to_string(expr.x)})"
    if isinstance(expr, CallExpr):
        args = ", ".join(expr_to_string(a) for a in expr.args)
        return f"{expr_to_string(expr.fun)}({args})"
    if isinstance(expr, IndexExpr):
        return f"{expr_to_string(expr.x)}[{expr_to_string(expr.index)}]"
    if isinstance(expr, KeyValueExpr):
        return f"{expr_to_string(expr.key)}: {expr_to_string(expr.value)}"
    if isinstance(expr, CompositeLit):
        elts = ", ".join(expr_to_string(e) for e in expr.elts)
        return f"{expr_to_string(expr.type)}{{{elts}}}"
    if isinstance(expr, ArrayType):
        length = expr_to_string(expr.len) if expr.len is not None else ""
        return f"[{length}]{expr_to_string(expr.elt)}"
    if isinstance(expr, StructType):
        parts = []
        for f in expr.fields:
            names = ", ".join(n.name for n in f.names)
            parts.append(f"{names} {expr_to_string(f.type)}".strip())
        return "struct{" + "; ".join(parts) + "}"
    if isinstance(expr, FuncLit):
        return "func literal"
    return f"<{expr.kind}>"


__all__ = [
    "iter_preorder",
    "iter_preorder_with_stack",
    "iter_functions",
    "enclosing_function",
    "is_qualified_name",
    "is_address_of",
    "expr_to_string",
]
