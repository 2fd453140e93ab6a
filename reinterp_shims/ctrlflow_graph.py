"""
reinterp_shims.ctrlflow_graph
=============================

Intraprocedural Control Flow Graphs (CFGs) over the syntax tree.

Each function declaration or function literal yields one CFG.  A CFG is an
ordered list of *basic blocks*; block 0 is the entry.  A block holds the
simple statements and branch conditions executed in sequence, by identity
(the same node objects the tree holds), and an ordered list of outgoing
edges.  Loops make the graph cyclic.

Public API
----------
    Block              - a basic block
    CFGEdge            - a directed edge between two blocks
    CFG                - the control flow graph for one function
    build_cfg          - build a CFG for a FuncDecl or FuncLit
    build_all_cfgs     - build CFGs for every function in a File
    find_path_to_node  - bounded depth-first search for the node path that
                         leads from the entry to a given node
    CFGCache           - per-run cache in front of front-end supplied CFGs

Typical usage::

    from reinterp_shims.ctrlflow_graph import build_cfg, find_path_to_node

    cfg = build_cfg(func_decl)
    path = find_path_to_node(cfg, assign_stmt, budget=1000)
    if path is None:
        ...  # unreachable, or the search budget ran out

Implementation notes
--------------------
* Block layout follows the usual lowering of structured statements:
  ``if`` cuts into then/else/done blocks, ``for`` into loop/body/post/done,
  ``range`` into loop/body/done with the range statement itself recorded in
  the loop block (it performs the per-iteration key/value assignment), and
  ``switch`` into one body block per clause plus a done block.
* Statements following ``return``/``break``/``continue`` are placed in a
  fresh block that has no predecessors.
* The path search uses an explicit stack and a visit budget instead of
  recursion, so the bound does not depend on interpreter stack depth.
"""

from __future__ import annotations

import enum
import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import (
    Dict,
    Iterator,
    List,
    Mapping,
    Optional,
    Set,
    Tuple,
)

from reinterp_shims.ast_helper import expr_to_string, iter_functions
from reinterp_shims.ast_nodes import (
    AssignStmt,
    BlockStmt,
    BranchStmt,
    ExprStmt,
    File,
    ForStmt,
    FuncDecl,
    FuncLit,
    FunctionNode,
    IfStmt,
    IncDecStmt,
    Node,
    RangeStmt,
    ReturnStmt,
    Stmt,
    SwitchStmt,
    VarSpec,
)

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_BUDGET = 1000


# ---------------------------------------------------------------------------
# Block and edge kinds
# ---------------------------------------------------------------------------


class BlockKind(enum.Enum):
    """Why a block was cut where it was."""

    ENTRY = "entry"
    IF_THEN = "if.then"
    IF_ELSE = "if.else"
    IF_DONE = "if.done"
    FOR_LOOP = "for.loop"
    FOR_BODY = "for.body"
    FOR_POST = "for.post"
    FOR_DONE = "for.done"
    RANGE_LOOP = "range.loop"
    RANGE_BODY = "range.body"
    RANGE_DONE = "range.done"
    SWITCH_BODY = "switch.body"
    SWITCH_DONE = "switch.done"
    UNREACHABLE = "unreachable"


class EdgeKind(enum.Enum):
    """Classification of a CFG edge."""

    FALL_THROUGH = "fall-through"
    BRANCH_TRUE = "branch-true"
    BRANCH_FALSE = "branch-false"
    BACK_EDGE = "back-edge"
    BREAK = "break"
    CONTINUE = "continue"
    SWITCH_CASE = "switch-case"
    SWITCH_DEFAULT = "switch-default"


# ---------------------------------------------------------------------------
# Block  –  a basic block
# ---------------------------------------------------------------------------


class Block:
    """A basic block in the CFG.

    Attributes
    ----------
    index : int
        Position of the block in ``CFG.blocks``; 0 is the entry.
    nodes : list
        Ordered, non-repeating list of statement / condition nodes.
    kind : BlockKind
    successors : list[CFGEdge]
        Outgoing edges, in the order they were created.
    predecessors : list[CFGEdge]
        Incoming edges.
    """

    __slots__ = ("index", "nodes", "kind", "successors", "predecessors")

    def __init__(self, index: int, kind: BlockKind = BlockKind.ENTRY) -> None:
        self.index = index
        self.nodes: List[Node] = []
        self.kind = kind
        self.successors: List[CFGEdge] = []
        self.predecessors: List[CFGEdge] = []

    @property
    def succs(self) -> List[Block]:
        """Successor blocks in edge order."""
        return [e.dst for e in self.successors]

    def contains(self, node: Node) -> bool:
        return any(n is node for n in self.nodes)

    def nodes_until(self, target: Node) -> Optional[List[Node]]:
        """Nodes up to and including the first occurrence of *target*.

        Returns ``None`` when the block does not hold *target*.
        """
        for i, n in enumerate(self.nodes):
            if n is target:
                return self.nodes[: i + 1]
        return None

    def label(self) -> str:
        """Compact, human-readable label for this block."""
        if not self.nodes:
            return f"[{self.kind.value}]"
        parts = [_node_label(n) for n in self.nodes[:4]]
        s = "; ".join(parts)
        if len(self.nodes) > 4:
            s += "; …"
        return s

    def __repr__(self) -> str:
        return f"Block(index={self.index}, kind={self.kind.value!r}, nnodes={len(self.nodes)})"


def _node_label(node: Node) -> str:
    if isinstance(node, AssignStmt):
        lhs = ", ".join(expr_to_string(e) for e in node.lhs)
        rhs = ", ".join(expr_to_string(e) for e in node.rhs)
        return f"{lhs} {node.tok} {rhs}"
    if isinstance(node, VarSpec):
        return "var " + ", ".join(n.name for n in node.names)
    if isinstance(node, ExprStmt):
        return expr_to_string(node.x)
    if isinstance(node, RangeStmt):
        return f"range {expr_to_string(node.x)}"
    if isinstance(node, ReturnStmt):
        return "return"
    return expr_to_string(node)


# ---------------------------------------------------------------------------
# CFGEdge
# ---------------------------------------------------------------------------


class CFGEdge:
    """A directed edge in the CFG."""

    __slots__ = ("src", "dst", "kind")

    def __init__(self, src: Block, dst: Block, kind: EdgeKind = EdgeKind.FALL_THROUGH) -> None:
        self.src = src
        self.dst = dst
        self.kind = kind

    def __repr__(self) -> str:
        return (
            f"CFGEdge(BB{self.src.index} -> BB{self.dst.index}, "
            f"kind={self.kind.value!r})"
        )


# ---------------------------------------------------------------------------
# CFG
# ---------------------------------------------------------------------------


class CFG:
    """Intraprocedural control flow graph for a single function.

    Attributes
    ----------
    function : FuncDecl or FuncLit or None
    blocks : list[Block]
        All basic blocks; ``blocks[0]`` is the entry.
    edges : list[CFGEdge]
    """

    def __init__(self, function: Optional[FunctionNode] = None) -> None:
        self.function = function
        self.blocks: List[Block] = []
        self.edges: List[CFGEdge] = []

    # ----- graph mutation ---------------------------------------------------

    def new_block(self, kind: BlockKind) -> Block:
        block = Block(len(self.blocks), kind)
        self.blocks.append(block)
        return block

    def add_edge(self, src: Block, dst: Block, kind: EdgeKind = EdgeKind.FALL_THROUGH) -> CFGEdge:
        """Create an edge, register it, and wire up predecessor/successor lists."""
        e = CFGEdge(src, dst, kind)
        self.edges.append(e)
        src.successors.append(e)
        dst.predecessors.append(e)
        return e

    # ----- queries ----------------------------------------------------------

    @property
    def entry(self) -> Optional[Block]:
        return self.blocks[0] if self.blocks else None

    @property
    def name(self) -> str:
        fn = self.function
        if isinstance(fn, FuncDecl):
            return fn.name.name
        if isinstance(fn, FuncLit):
            return f"func literal at {fn.loc}"
        return "<unknown>"

    def block_containing(self, node: Node) -> Optional[Block]:
        """Return the first block that holds *node*, or ``None``."""
        for block in self.blocks:
            if block.contains(node):
                return block
        return None

    def reachable_from(self, start: Block) -> Set[int]:
        """Indices of blocks reachable from *start*."""
        visited: Set[int] = set()
        worklist = [start]
        while worklist:
            b = worklist.pop()
            if b.index in visited:
                continue
            visited.add(b.index)
            worklist.extend(b.succs)
        return visited

    def back_edges(self) -> List[CFGEdge]:
        return [e for e in self.edges if e.kind is EdgeKind.BACK_EDGE]

    # ----- serialisation helpers --------------------------------------------

    def to_dot(self, title: Optional[str] = None) -> str:
        """Return a Graphviz DOT representation of this CFG."""
        lines = ["digraph CFG {"]
        if title:
            lines.append(f'  label="{title}";')
        lines.append("  node [shape=box, fontname=monospace, fontsize=10];")
        for b in self.blocks:
            lbl = b.label().replace('"', '\\"').replace("\n", "\\n")
            color = ""
            if b.kind is BlockKind.ENTRY:
                color = ', style=filled, fillcolor="#ccffcc"'
            elif b.kind is BlockKind.UNREACHABLE:
                color = ', style=filled, fillcolor="#dddddd"'
            lines.append(f'  BB{b.index} [label="BB{b.index} {b.kind.value}\\n{lbl}"{color}];')
        for e in self.edges:
            style = ""
            if e.kind is EdgeKind.BRANCH_TRUE:
                style = ', color=green, fontcolor=green'
            elif e.kind is EdgeKind.BRANCH_FALSE:
                style = ', color=red, fontcolor=red'
            elif e.kind is EdgeKind.BACK_EDGE:
                style = ', style=dashed, color=blue, fontcolor=blue'
            elif e.kind in (EdgeKind.BREAK, EdgeKind.CONTINUE):
                style = ', style=dotted'
            lines.append(
                f'  BB{e.src.index} -> BB{e.dst.index} '
                f'[label="{e.kind.value}"{style}];'
            )
        lines.append("}")
        return "\n".join(lines)

    def format(self) -> str:
        """Multi-line textual dump, one block per line."""
        lines = [repr(self)]
        for b in self.blocks:
            succ = ", ".join(f"BB{e.dst.index}({e.kind.value})" for e in b.successors)
            lines.append(f"  BB{b.index} [{b.kind.value}] {b.label()}  succ=[{succ}]")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"CFG(function={self.name!r}, blocks={len(self.blocks)}, edges={len(self.edges)})"


# ===========================================================================
# CFG BUILDER
# ===========================================================================

@dataclass
class _JumpTargets:
    """Targets of ``break``/``continue`` for one enclosing loop or switch."""
    break_to: Block
    continue_to: Optional[Block]


class _CFGBuilder:
    """Internal builder that constructs a CFG for a single function.

    A single recursive pass over the statement tree.  We keep a *current
    block* that simple statements are appended to, and cut it at every
    structured statement.  An explicit stack of jump targets resolves
    ``break`` and ``continue``.
    """

    def __init__(self, function: FunctionNode) -> None:
        self.function = function
        self.cfg = CFG(function)
        self.current = self.cfg.new_block(BlockKind.ENTRY)
        self._targets: List[_JumpTargets] = []

    # ----- helpers ----------------------------------------------------------

    def _add(self, node: Node) -> None:
        self.current.nodes.append(node)

    def _jump(self, dst: Block, kind: EdgeKind = EdgeKind.FALL_THROUGH) -> None:
        self.cfg.add_edge(self.current, dst, kind)

    def _break_target(self) -> Optional[Block]:
        return self._targets[-1].break_to if self._targets else None

    def _continue_target(self) -> Optional[Block]:
        for t in reversed(self._targets):
            if t.continue_to is not None:
                return t.continue_to
        return None

    # ----- main build -------------------------------------------------------

    def build(self) -> CFG:
        body = self.function.body
        if body is not None:
            self._stmt_list(body.stmts)
        return self.cfg

    def _stmt_list(self, stmts: List[Stmt]) -> None:
        for s in stmts:
            self._stmt(s)

    def _stmt(self, s: Stmt) -> None:
        if isinstance(s, BlockStmt):
            self._stmt_list(s.stmts)
        elif isinstance(s, (AssignStmt, VarSpec, ExprStmt, IncDecStmt)):
            self._add(s)
        elif isinstance(s, ReturnStmt):
            self._add(s)
            self.current = self.cfg.new_block(BlockKind.UNREACHABLE)
        elif isinstance(s, BranchStmt):
            self._branch(s)
        elif isinstance(s, IfStmt):
            self._if(s)
        elif isinstance(s, ForStmt):
            self._for(s)
        elif isinstance(s, RangeStmt):
            self._range(s)
        elif isinstance(s, SwitchStmt):
            self._switch(s)
        else:
            self._add(s)

    def _branch(self, s: BranchStmt) -> None:
        if s.tok == "break":
            target, kind = self._break_target(), EdgeKind.BREAK
        else:
            target, kind = self._continue_target(), EdgeKind.CONTINUE
        if target is not None:
            self._jump(target, kind)
        else:
            logger.debug("%s outside loop/switch in %s", s.tok, self.cfg.name)
        self.current = self.cfg.new_block(BlockKind.UNREACHABLE)

    def _if(self, s: IfStmt) -> None:
        if s.init is not None:
            self._stmt(s.init)
        self._add(s.cond)
        cond_block = self.current
        then = self.cfg.new_block(BlockKind.IF_THEN)
        els = self.cfg.new_block(BlockKind.IF_ELSE) if s.else_ is not None else None
        done = self.cfg.new_block(BlockKind.IF_DONE)

        self.cfg.add_edge(cond_block, then, EdgeKind.BRANCH_TRUE)
        self.cfg.add_edge(cond_block, els if els is not None else done, EdgeKind.BRANCH_FALSE)

        self.current = then
        self._stmt_list(s.body.stmts)
        self._jump(done)

        if els is not None:
            self.current = els
            self._stmt(s.else_)
            self._jump(done)

        self.current = done

    def _for(self, s: ForStmt) -> None:
        if s.init is not None:
            self._stmt(s.init)
        loop = self.cfg.new_block(BlockKind.FOR_LOOP)
        self._jump(loop)
        self.current = loop

        body = self.cfg.new_block(BlockKind.FOR_BODY)
        done = self.cfg.new_block(BlockKind.FOR_DONE)
        post = self.cfg.new_block(BlockKind.FOR_POST) if s.post is not None else None

        if s.cond is not None:
            self._add(s.cond)
            self.cfg.add_edge(loop, body, EdgeKind.BRANCH_TRUE)
            self.cfg.add_edge(loop, done, EdgeKind.BRANCH_FALSE)
        else:
            self.cfg.add_edge(loop, body)

        cont = post if post is not None else loop
        self._targets.append(_JumpTargets(break_to=done, continue_to=cont))
        self.current = body
        self._stmt_list(s.body.stmts)
        self._jump(cont, EdgeKind.BACK_EDGE if post is None else EdgeKind.FALL_THROUGH)
        self._targets.pop()

        if post is not None:
            self.current = post
            self._stmt(s.post)
            self._jump(loop, EdgeKind.BACK_EDGE)

        self.current = done

    def _range(self, s: RangeStmt) -> None:
        self._add(s.x)
        loop = self.cfg.new_block(BlockKind.RANGE_LOOP)
        self._jump(loop)
        self.current = loop
        self._add(s)

        body = self.cfg.new_block(BlockKind.RANGE_BODY)
        done = self.cfg.new_block(BlockKind.RANGE_DONE)
        self.cfg.add_edge(loop, body, EdgeKind.BRANCH_TRUE)
        self.cfg.add_edge(loop, done, EdgeKind.BRANCH_FALSE)

        self._targets.append(_JumpTargets(break_to=done, continue_to=loop))
        self.current = body
        self._stmt_list(s.body.stmts)
        self._jump(loop, EdgeKind.BACK_EDGE)
        self._targets.pop()

        self.current = done

    def _switch(self, s: SwitchStmt) -> None:
        if s.init is not None:
            self._stmt(s.init)
        if s.tag is not None:
            self._add(s.tag)
        for clause in s.clauses:
            for e in clause.exprs or []:
                self._add(e)
        dispatch = self.current
        done = self.cfg.new_block(BlockKind.SWITCH_DONE)

        self._targets.append(_JumpTargets(break_to=done, continue_to=None))
        has_default = False
        for clause in s.clauses:
            body = self.cfg.new_block(BlockKind.SWITCH_BODY)
            if clause.is_default:
                has_default = True
                self.cfg.add_edge(dispatch, body, EdgeKind.SWITCH_DEFAULT)
            else:
                self.cfg.add_edge(dispatch, body, EdgeKind.SWITCH_CASE)
            self.current = body
            self._stmt_list(clause.body)
            self._jump(done)
        self._targets.pop()

        if not has_default:
            self.cfg.add_edge(dispatch, done, EdgeKind.SWITCH_DEFAULT)
        self.current = done


# ===========================================================================
# PATH SEARCH
# ===========================================================================

def find_path_to_node(
    cfg: Optional[CFG],
    target: Node,
    budget: int = DEFAULT_SEARCH_BUDGET,
) -> Optional[List[Node]]:
    """Find the node path that leads from the entry block to *target*.

    Depth-first from the entry, visiting successors in edge order and each
    block at most once.  Every block visit costs one unit of *budget*.

    Returns
    -------
    list or None
        The nodes of every block on the discovered block path, followed by
        the target block's nodes up to and including *target*.  ``None``
        when *target* is not reachable or the budget ran out.
    """
    if cfg is None or cfg.entry is None:
        return None

    remaining = budget
    visited: Set[int] = set()

    def visit(block: Block) -> Optional[List[Node]]:
        nonlocal remaining
        remaining -= 1
        visited.add(block.index)
        return block.nodes_until(target)

    if remaining <= 0:
        logger.debug("CFG search budget of %d exhausted in %s", budget, cfg.name)
        return None
    prefix = visit(cfg.entry)
    if prefix is not None:
        return prefix

    stack: List[Tuple[Block, Iterator[Block]]] = [(cfg.entry, iter(cfg.entry.succs))]
    while stack:
        _, succs = stack[-1]
        nxt = next((b for b in succs if b.index not in visited), None)
        if nxt is None:
            stack.pop()
            continue
        if remaining <= 0:
            logger.debug("CFG search budget of %d exhausted in %s", budget, cfg.name)
            return None
        prefix = visit(nxt)
        if prefix is not None:
            path: List[Node] = []
            for block, _ in stack:
                path.extend(block.nodes)
            path.extend(prefix)
            return path
        stack.append((nxt, iter(nxt.succs)))
    return None


# ===========================================================================
# PUBLIC API
# ===========================================================================

def build_cfg(function: FunctionNode) -> CFG:
    """Build a :class:`CFG` for a function declaration or literal.

    A declaration without a body yields a CFG with a single empty entry
    block.
    """
    return _CFGBuilder(function).build()


def build_all_cfgs(file: File) -> "OrderedDict[FunctionNode, CFG]":
    """Build CFGs for every function (declarations and literals) in *file*,
    in source order."""
    result: "OrderedDict[FunctionNode, CFG]" = OrderedDict()
    for func in iter_functions(file):
        result[func] = build_cfg(func)
    return result


class CFGCache:
    """CFGs for the functions of one unit, built on first request.

    CFGs the front end supplied are used as they are; missing ones are
    built from the tree and memoised for the rest of the run.
    """

    def __init__(self, supplied: Optional[Mapping[FunctionNode, CFG]] = None) -> None:
        self._cfgs: Dict[FunctionNode, CFG] = dict(supplied or {})
        self.built = 0

    def get(self, function: FunctionNode) -> CFG:
        cfg = self._cfgs.get(function)
        if cfg is None:
            cfg = build_cfg(function)
            self._cfgs[function] = cfg
            self.built += 1
        return cfg

    def __contains__(self, function: FunctionNode) -> bool:
        return function in self._cfgs

    def __len__(self) -> int:
        return len(self._cfgs)


__all__ = [
    "DEFAULT_SEARCH_BUDGET",
    "BlockKind",
    "EdgeKind",
    "Block",
    "CFGEdge",
    "CFG",
    "build_cfg",
    "build_all_cfgs",
    "find_path_to_node",
    "CFGCache",
]
