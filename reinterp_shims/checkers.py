"""
reinterp_shims/checkers.py
══════════════════════════

Checker framework and the two reinterpretation checkers.

Architecture
────────────

  ┌─────────────────────────────────────────────────────────┐
  │                   CheckerRunner                         │
  │  ┌──────────────────────┐  ┌──────────────────────────┐ │
  │  │  HeaderMisuseChecker │  │  StructCastSizeChecker   │ │
  │  └──────────┬───────────┘  └────────────┬─────────────┘ │
  │             │                           │               │
  │  ┌──────────▼───────────────────────────▼─────────────┐ │
  │  │                 Evidence Collection                │ │
  │  │  shape_matcher │ cast_idioms │ ctrlflow_graph      │ │
  │  └──────────────────────────┬─────────────────────────┘ │
  │                             │                           │
  │  ┌──────────────────────────▼─────────────────────────┐ │
  │  │           SuppressionManager                       │ │
  │  │         file-level  │  global                      │ │
  │  └──────────────────────────┬─────────────────────────┘ │
  │                             │                           │
  │  ┌──────────────────────────▼─────────────────────────┐ │
  │  │        Diagnostic Formatter (JSON / text)          │ │
  │  └────────────────────────────────────────────────────┘ │
  └─────────────────────────────────────────────────────────┘

Each Checker follows a four-phase lifecycle:

  1. **configure()**        - read options, set thresholds
  2. **collect_evidence()** - walk the unit, gather suspicious sites
  3. **diagnose()**         - turn evidence into diagnostics
  4. **report()**           - emit Diagnostics (filtered by suppressions)

Input to a run is a ``CompilationUnit``: the syntax tree, the resolved type
information and, optionally, front-end supplied CFGs.  Checkers never mutate
it.

License: MIT - same as reinterp-shims.
"""

from __future__ import annotations

import json
import logging
import time
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum, auto
from fnmatch import fnmatch
from typing import (
    Any,
    ClassVar,
    Dict,
    FrozenSet,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Set,
    Tuple,
    Type,
)

from reinterp_shims.ast_helper import (
    enclosing_function,
    expr_to_string,
    iter_preorder_with_stack,
)
from reinterp_shims.ast_nodes import (
    AssignStmt,
    CallExpr,
    CompositeLit,
    Expr,
    File,
    FunctionNode,
    Ident,
    Loc,
    Node,
    RangeStmt,
    SelectorExpr,
    VarSpec,
)
from reinterp_shims.cast_idioms import match_header_derivation, match_record_cast
from reinterp_shims.ctrlflow_graph import (
    CFG,
    DEFAULT_SEARCH_BUDGET,
    CFGCache,
    find_path_to_node,
)
from reinterp_shims.shape_matcher import (
    count_platform_dependent_fields,
    is_genuine_reference,
    is_header_shaped,
)
from reinterp_shims.type_analysis import Binding, TypeInfo, TypeKind

logger = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════════
#  PART 0 - INPUT CONTRACT
# ═════════════════════════════════════════════════════════════════════════

@dataclass
class CompilationUnit:
    """
    One parsed, type-checked compilation unit.

    Attributes
    ----------
    filename : source file name used in diagnostics
    file     : root of the syntax tree
    info     : resolved types and bindings
    cfgs     : CFGs the front end already built, keyed by function node
    """
    filename: str
    file: File
    info: TypeInfo = field(default_factory=TypeInfo)
    cfgs: Dict[FunctionNode, CFG] = field(default_factory=dict)


class Requirement(Enum):
    """What a checker needs from the front end."""
    SYNTAX_TREE = auto()
    TYPE_INFO = auto()
    CONTROL_FLOW = auto()


# ═════════════════════════════════════════════════════════════════════════
#  PART 1 - DIAGNOSTIC MODEL
# ═════════════════════════════════════════════════════════════════════════

class DiagnosticSeverity(Enum):
    """Severity levels, spelled the way GCC-style tools print them."""
    ERROR = "error"
    WARNING = "warning"
    STYLE = "style"
    PORTABILITY = "portability"
    INFORMATION = "information"


@dataclass(frozen=True)
class SourceLocation:
    """A specific point in source code."""
    file: str = ""
    line: int = 0
    column: int = 0

    @classmethod
    def from_loc(cls, loc: Loc) -> SourceLocation:
        return cls(file=loc.file, line=loc.line, column=loc.col)

    def __str__(self) -> str:
        if self.column:
            return f"{self.file}:{self.line}:{self.column}"
        return f"{self.file}:{self.line}"


@dataclass(frozen=True)
class Diagnostic:
    """
    A single diagnostic finding.

    Attributes
    ----------
    error_id     : Stable identifier (e.g., "headerLiteral")
    message      : Human-readable description
    severity     : DiagnosticSeverity
    location     : Primary source location
    checker_name : Name of the checker that produced this
    extra        : Additional context string
    """
    error_id: str
    message: str
    severity: DiagnosticSeverity
    location: SourceLocation
    checker_name: str = ""
    extra: str = ""

    def to_json(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "file": self.location.file,
            "linenr": self.location.line,
            "column": self.location.column,
            "severity": self.severity.value,
            "message": self.message,
            "errorId": self.error_id,
            "checker": self.checker_name,
        }
        if self.extra:
            result["extra"] = self.extra
        return result

    def to_json_str(self) -> str:
        """Single-line JSON string."""
        return json.dumps(self.to_json())

    def to_gcc_format(self) -> str:
        """GCC-style diagnostic string: file:line:col: severity: message."""
        sev = self.severity.value
        return f"{self.location}: {sev}: {self.message} [{self.error_id}]"


# ═════════════════════════════════════════════════════════════════════════
#  PART 2 - SUPPRESSION MANAGER
# ═════════════════════════════════════════════════════════════════════════

class SuppressionManager:
    """
    Manages diagnostic suppressions.

    Sources:
      1. File-level suppressions (exact path, path suffix, or fnmatch pattern)
      2. Global suppressions (by error id; ``"*"`` suppresses everything)

    Usage
    -----
    >>> sm = SuppressionManager()
    >>> sm.add_file_suppression("headerLiteral", "vendor/*")
    >>> sm.add_global_suppression("structCastPlatformFields")
    >>> if not sm.is_suppressed(diagnostic):
    ...     emit(diagnostic)
    """

    def __init__(self) -> None:
        # file pattern → set of error_ids
        self._file_level: Dict[str, Set[str]] = defaultdict(set)
        # globally suppressed error_ids
        self._global: Set[str] = set()

    def add_file_suppression(self, error_id: str, file_pattern: str) -> None:
        """Suppress ``error_id`` in files matching ``file_pattern``."""
        self._file_level[file_pattern].add(error_id)

    def add_global_suppression(self, error_id: str) -> None:
        """Globally suppress ``error_id``."""
        self._global.add(error_id)

    def is_suppressed(self, diag: Diagnostic) -> bool:
        """Check whether a diagnostic should be suppressed."""
        eid = diag.error_id

        if eid in self._global or "*" in self._global:
            return True

        path = diag.location.file
        for pattern, ids in self._file_level.items():
            if eid not in ids and "*" not in ids:
                continue
            if pattern == path or path.endswith(pattern) or fnmatch(path, pattern):
                return True

        return False

    def filter_diagnostics(
        self, diagnostics: Iterable[Diagnostic]
    ) -> List[Diagnostic]:
        """Return only non-suppressed diagnostics."""
        return [d for d in diagnostics if not self.is_suppressed(d)]


# ═════════════════════════════════════════════════════════════════════════
#  PART 3 - CHECKER BASE CLASS
# ═════════════════════════════════════════════════════════════════════════

class Checker(ABC):
    """
    Abstract base class for all checkers.

    Lifecycle
    ─────────
      1. ``configure(ctx)``        - receive context, read options
      2. ``collect_evidence(ctx)``  - walk the unit
      3. ``diagnose(ctx)``          - turn evidence into diagnostics
      4. ``report(ctx)``            - yield final diagnostics

    Subclass Contract
    ─────────────────
      - Override ``name``, ``description``, ``error_ids``, ``requires``
      - Implement ``collect_evidence()`` and ``diagnose()``
      - Optionally override ``configure()`` for custom setup
    """

    name: ClassVar[str] = "base-checker"
    description: ClassVar[str] = ""
    error_ids: ClassVar[FrozenSet[str]] = frozenset()
    requires: ClassVar[FrozenSet[Requirement]] = frozenset({Requirement.SYNTAX_TREE})
    default_severity: ClassVar[DiagnosticSeverity] = DiagnosticSeverity.WARNING

    def __init__(self) -> None:
        self._diagnostics: List[Diagnostic] = []

    @property
    def diagnostics(self) -> List[Diagnostic]:
        return list(self._diagnostics)

    def configure(self, ctx: CheckerContext) -> None:
        """
        Called before evidence collection.

        Override to read options.  Default implementation does nothing.
        """

    @abstractmethod
    def collect_evidence(self, ctx: CheckerContext) -> None:
        """Walk the unit and store suspicious sites."""
        ...

    @abstractmethod
    def diagnose(self, ctx: CheckerContext) -> None:
        """Append diagnostics to ``self._diagnostics`` via ``_emit``."""
        ...

    def report(self, ctx: CheckerContext) -> List[Diagnostic]:
        """
        Return final diagnostics, filtered by suppressions.

        Normally you don't need to override this.
        """
        return ctx.suppressions.filter_diagnostics(self._diagnostics)

    def _emit(
        self,
        error_id: str,
        message: str,
        loc: Loc,
        severity: Optional[DiagnosticSeverity] = None,
        extra: str = "",
    ) -> None:
        """Helper to create and store a diagnostic."""
        self._diagnostics.append(Diagnostic(
            error_id=error_id,
            message=message,
            severity=severity or self.default_severity,
            location=SourceLocation.from_loc(loc),
            checker_name=self.name,
            extra=extra,
        ))

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} '{self.name}'>"


@dataclass
class CheckerContext:
    """
    Shared context passed to every checker during execution.

    Attributes
    ----------
    unit         : the CompilationUnit being checked
    suppressions : SuppressionManager
    options      : user-provided options dict
    stats        : mutable dict for timing / counting statistics
    cfgs         : per-run CFG cache in front of the unit's supplied CFGs
    """
    unit: CompilationUnit
    suppressions: SuppressionManager = field(default_factory=SuppressionManager)
    options: Dict[str, Any] = field(default_factory=dict)
    stats: Dict[str, Any] = field(default_factory=dict)
    cfgs: Optional[CFGCache] = None

    def __post_init__(self) -> None:
        if self.cfgs is None:
            self.cfgs = CFGCache(self.unit.cfgs)

    @property
    def info(self) -> TypeInfo:
        return self.unit.info

    def get_option(self, key: str, default: Any = None) -> Any:
        return self.options.get(key, default)

    def cfg_for(self, function: FunctionNode) -> CFG:
        return self.cfgs.get(function)


# ═════════════════════════════════════════════════════════════════════════
#  PART 4 - HEADER MISUSE CHECKER
# ═════════════════════════════════════════════════════════════════════════

HEADER_LITERAL_ID = "headerLiteral"
HEADER_LITERAL_MSG = "header literal construction found"
UNSAFE_HEADER_ASSIGNMENT_ID = "unsafeHeaderAssignment"
UNSAFE_HEADER_ASSIGNMENT_MSG = "assignment to unsafely derived header object"


def defining_expr(node: Node, binding: Binding, info: TypeInfo) -> Tuple[bool, Optional[Expr]]:
    """
    Does *node* assign *binding*, and with which value expression?

    Returns ``(assigns, value)``.  ``value`` is ``None`` when the node
    assigns the binding without a single matching right-hand expression
    (``a, b := f()``, range keys and values).
    """
    if isinstance(node, AssignStmt):
        for i, lhs in enumerate(node.lhs):
            if isinstance(lhs, Ident) and info.binding_of(lhs) is binding:
                if len(node.rhs) == len(node.lhs):
                    return True, node.rhs[i]
                return True, None
    elif isinstance(node, VarSpec):
        for i, name in enumerate(node.names):
            if info.binding_of(name) is binding:
                if len(node.values) == len(node.names):
                    return True, node.values[i]
                return bool(node.values), None
    elif isinstance(node, RangeStmt):
        for target in (node.key, node.value):
            if isinstance(target, Ident) and info.binding_of(target) is binding:
                return True, None
    return False, None


class HeaderMisuseChecker(Checker):
    """
    Detects hand-built or hand-mutated header-shaped records.

    Two checks, both in tree pre-order:

      - every composite literal whose type is header-shaped;
      - every field write through a header-shaped variable whose nearest
        preceding definition on the control flow path is not a
        ``(*T)(unsafe.Pointer(ref))`` cast from a real slice or string.
    """

    name: ClassVar[str] = "header-misuse"
    description: ClassVar[str] = "Slice/string header construction and mutation"
    error_ids: ClassVar[FrozenSet[str]] = frozenset({
        HEADER_LITERAL_ID, UNSAFE_HEADER_ASSIGNMENT_ID,
    })
    requires: ClassVar[FrozenSet[Requirement]] = frozenset({
        Requirement.SYNTAX_TREE, Requirement.TYPE_INFO, Requirement.CONTROL_FLOW,
    })

    def __init__(self) -> None:
        super().__init__()
        self._budget = DEFAULT_SEARCH_BUDGET
        # (error id, node) in tree pre-order
        self._findings: List[Tuple[str, Node]] = []

    def configure(self, ctx: CheckerContext) -> None:
        self._budget = int(ctx.get_option("cfg_search_budget", DEFAULT_SEARCH_BUDGET))

    def collect_evidence(self, ctx: CheckerContext) -> None:
        info = ctx.info
        root = ctx.unit.file

        for node, ancestors in iter_preorder_with_stack(root, (CompositeLit, AssignStmt)):
            if isinstance(node, CompositeLit):
                if is_header_shaped(info.type_of(node)):
                    self._findings.append((HEADER_LITERAL_ID, node))
            elif self._is_unsafe_assignment(ctx, node, ancestors):
                self._findings.append((UNSAFE_HEADER_ASSIGNMENT_ID, node))

        ids = [error_id for error_id, _ in self._findings]
        ctx.stats[f"{self.name}_literals"] = ids.count(HEADER_LITERAL_ID)
        ctx.stats[f"{self.name}_assignments"] = ids.count(UNSAFE_HEADER_ASSIGNMENT_ID)

    def diagnose(self, ctx: CheckerContext) -> None:
        for error_id, node in self._findings:
            if error_id == HEADER_LITERAL_ID:
                self._emit(HEADER_LITERAL_ID, HEADER_LITERAL_MSG, node.loc,
                           extra=expr_to_string(node.type))
            else:
                self._emit(UNSAFE_HEADER_ASSIGNMENT_ID, UNSAFE_HEADER_ASSIGNMENT_MSG, node.loc)

    # ── assignment check ─────────────────────────────────────────────

    def _is_unsafe_assignment(
        self,
        ctx: CheckerContext,
        stmt: AssignStmt,
        ancestors: Sequence[Node],
    ) -> bool:
        info = ctx.info
        for target in stmt.lhs:
            if not isinstance(target, SelectorExpr):
                return False
            base = target.x
            if not isinstance(base, Ident):
                return is_header_shaped(info.type_of(base))
            binding = info.binding_of(base)
            if binding is None:
                logger.debug("unresolved assignment target %s at %s", base.name, stmt.loc)
                return True
            if not is_header_shaped(binding.type):
                continue
            return not self._derived_safely(ctx, stmt, ancestors, binding)
        return False

    def _derived_safely(
        self,
        ctx: CheckerContext,
        stmt: AssignStmt,
        ancestors: Sequence[Node],
        binding: Binding,
    ) -> bool:
        function = enclosing_function(ancestors)
        if function is None:
            logger.debug("header write outside any function at %s", stmt.loc)
            return False

        path = find_path_to_node(ctx.cfg_for(function), stmt, self._budget)
        if path is None:
            logger.debug("no CFG path to %s", stmt.loc)
            return False

        for node in reversed(path[:-1]):
            assigns, value = defining_expr(node, binding, ctx.info)
            if not assigns:
                continue
            derivation = match_header_derivation(value, ctx.info)
            if derivation is None:
                return False
            return is_genuine_reference(derivation.operand_type)
        return False


# ═════════════════════════════════════════════════════════════════════════
#  PART 5 - STRUCT CAST SIZE CHECKER
# ═════════════════════════════════════════════════════════════════════════

STRUCT_CAST_ID = "structCastPlatformFields"
STRUCT_CAST_MSG = (
    "unsafe cast between structs with mismatching platform-dependent field counts"
)


class StructCastSizeChecker(Checker):
    """
    Detects ``(*Dst)(unsafe.Pointer(&src))`` between record types whose
    numbers of int/uint/uintptr fields differ.
    """

    name: ClassVar[str] = "struct-cast-size"
    description: ClassVar[str] = "Casts between structs with differently sized layouts"
    error_ids: ClassVar[FrozenSet[str]] = frozenset({STRUCT_CAST_ID})
    requires: ClassVar[FrozenSet[Requirement]] = frozenset({
        Requirement.SYNTAX_TREE, Requirement.TYPE_INFO,
    })

    def __init__(self) -> None:
        super().__init__()
        self._mismatches: List[Tuple[CallExpr, int, int]] = []

    def collect_evidence(self, ctx: CheckerContext) -> None:
        info = ctx.info
        for call, _ in iter_preorder_with_stack(ctx.unit.file, CallExpr):
            cast = match_record_cast(call)
            if cast is None:
                continue
            src = info.type_of(cast.source).underlying()
            dst = info.type_of(cast.dest_type_expr).underlying()
            if src.kind is not TypeKind.STRUCT or dst.kind is not TypeKind.STRUCT:
                continue
            n_src = count_platform_dependent_fields(src)
            n_dst = count_platform_dependent_fields(dst)
            if n_src != n_dst:
                self._mismatches.append((call, n_src, n_dst))

    def diagnose(self, ctx: CheckerContext) -> None:
        for call, n_src, n_dst in self._mismatches:
            self._emit(STRUCT_CAST_ID, STRUCT_CAST_MSG, call.loc,
                       extra=f"{n_src} vs {n_dst}")


# ═════════════════════════════════════════════════════════════════════════
#  PART 6 - CHECKER RUNNER
# ═════════════════════════════════════════════════════════════════════════

ALL_CHECKERS: Tuple[Type[Checker], ...] = (
    HeaderMisuseChecker,
    StructCastSizeChecker,
)


def checker_by_name(name: str) -> Optional[Type[Checker]]:
    for cls in ALL_CHECKERS:
        if cls.name == name:
            return cls
    return None


@dataclass
class CheckerRunResults:
    """
    Aggregate results from running a suite of checkers.

    Attributes
    ----------
    diagnostics            : All diagnostics from all checkers
    diagnostics_by_checker : Diagnostics grouped by checker name
    stats                  : Timing and counting statistics
    checker_names          : Names of checkers that were run
    """
    diagnostics: List[Diagnostic] = field(default_factory=list)
    diagnostics_by_checker: Dict[str, List[Diagnostic]] = field(
        default_factory=lambda: defaultdict(list)
    )
    stats: Dict[str, Any] = field(default_factory=dict)
    checker_names: List[str] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return sum(
            1 for d in self.diagnostics
            if d.severity == DiagnosticSeverity.ERROR
        )

    @property
    def warning_count(self) -> int:
        return sum(
            1 for d in self.diagnostics
            if d.severity == DiagnosticSeverity.WARNING
        )

    @property
    def total_count(self) -> int:
        return len(self.diagnostics)

    def by_severity(self, severity: DiagnosticSeverity) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == severity]

    def by_file(self, file: str) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.location.file == file]

    def by_error_id(self, error_id: str) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.error_id == error_id]

    def to_json_lines(self) -> str:
        """Format all diagnostics as JSON lines."""
        return "\n".join(d.to_json_str() for d in self.diagnostics)

    def to_gcc_format(self) -> str:
        """Format all diagnostics in GCC-style."""
        return "\n".join(d.to_gcc_format() for d in self.diagnostics)

    def summary(self) -> str:
        """Human-readable summary."""
        lines = [
            f"Checker run complete: {self.total_count} diagnostics "
            f"({self.error_count} errors, {self.warning_count} warnings)",
        ]
        for name in self.checker_names:
            count = len(self.diagnostics_by_checker.get(name, []))
            elapsed = self.stats.get(f"{name}_elapsed_ms", 0)
            lines.append(f"  {name}: {count} findings ({elapsed:.1f}ms)")
        return "\n".join(lines)

    def merge(self, other: CheckerRunResults) -> None:
        self.diagnostics.extend(other.diagnostics)
        for name, diags in other.diagnostics_by_checker.items():
            self.diagnostics_by_checker[name].extend(diags)
        for key, val in other.stats.items():
            if isinstance(val, (int, float)) and key in self.stats:
                self.stats[key] += val
            else:
                self.stats[key] = val
        for name in other.checker_names:
            if name not in self.checker_names:
                self.checker_names.append(name)


class CheckerRunner:
    """
    Runs the checker table against compilation units.

    Usage
    -----
    >>> runner = CheckerRunner(options={"cfg_search_budget": 500})
    >>> results = runner.run(unit)
    >>> print(results.summary())

    >>> # Or select specific checkers:
    >>> results = runner.run(unit, checkers=["struct-cast-size"])

    Parameters for constructor
    ─────────────────────────
    checker_classes : checker table (defaults to ``ALL_CHECKERS``)
    suppressions    : SuppressionManager - pre-loaded suppression rules
    options         : dict - per-checker configuration
    """

    def __init__(
        self,
        checker_classes: Optional[Sequence[Type[Checker]]] = None,
        suppressions: Optional[SuppressionManager] = None,
        options: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.checker_classes = tuple(checker_classes or ALL_CHECKERS)
        self.suppressions = suppressions or SuppressionManager()
        self.options = dict(options or {})

    def _select(self, checkers: Optional[Sequence[str]]) -> List[Type[Checker]]:
        if checkers is None:
            return list(self.checker_classes)
        wanted = set(checkers)
        unknown = wanted - {cls.name for cls in self.checker_classes}
        if unknown:
            logger.debug("ignoring unknown checkers: %s", ", ".join(sorted(unknown)))
        return [cls for cls in self.checker_classes if cls.name in wanted]

    def run(
        self,
        unit: CompilationUnit,
        checkers: Optional[Sequence[str]] = None,
    ) -> CheckerRunResults:
        """
        Run checkers against a single compilation unit.

        Parameters
        ----------
        unit     : CompilationUnit
        checkers : list of checker names to run (None = all)

        Returns
        -------
        CheckerRunResults
        """
        results = CheckerRunResults()
        ctx = CheckerContext(
            unit=unit,
            suppressions=self.suppressions,
            options=self.options,
        )

        for cls in self._select(checkers):
            checker = cls()
            checker_name = cls.name
            results.checker_names.append(checker_name)

            t0 = time.monotonic()
            try:
                checker.configure(ctx)
                checker.collect_evidence(ctx)
                checker.diagnose(ctx)
                diags = checker.report(ctx)
            except Exception as exc:
                logger.exception("checker %s failed on %s", checker_name, unit.filename)
                diags = [Diagnostic(
                    error_id="checkerInternalError",
                    message=f"Checker '{checker_name}' failed: {exc}",
                    severity=DiagnosticSeverity.INFORMATION,
                    location=SourceLocation(file=unit.filename),
                    checker_name=checker_name,
                )]
            elapsed_ms = (time.monotonic() - t0) * 1000.0

            results.diagnostics.extend(diags)
            results.diagnostics_by_checker[checker_name] = diags
            results.stats[f"{checker_name}_elapsed_ms"] = elapsed_ms

        results.stats.update(
            (k, v) for k, v in ctx.stats.items() if k not in results.stats
        )
        results.stats["cfgs_built"] = ctx.cfgs.built
        logger.debug("%s: %d diagnostics", unit.filename, results.total_count)
        return results

    def run_all_units(
        self,
        units: Iterable[CompilationUnit],
        checkers: Optional[Sequence[str]] = None,
    ) -> CheckerRunResults:
        """Run checkers over several independent units, in order."""
        combined = CheckerRunResults()
        for unit in units:
            combined.merge(self.run(unit, checkers=checkers))
        return combined


# ═════════════════════════════════════════════════════════════════════════
#  PART 7 - PUBLIC API
# ═════════════════════════════════════════════════════════════════════════

__all__ = [
    # Input contract
    "CompilationUnit",
    "Requirement",
    # Diagnostic model
    "Diagnostic",
    "DiagnosticSeverity",
    "SourceLocation",
    # Suppression
    "SuppressionManager",
    # Checker framework
    "Checker",
    "CheckerContext",
    # Checkers
    "HeaderMisuseChecker",
    "StructCastSizeChecker",
    "ALL_CHECKERS",
    "checker_by_name",
    "defining_expr",
    # Message catalog
    "HEADER_LITERAL_ID",
    "HEADER_LITERAL_MSG",
    "UNSAFE_HEADER_ASSIGNMENT_ID",
    "UNSAFE_HEADER_ASSIGNMENT_MSG",
    "STRUCT_CAST_ID",
    "STRUCT_CAST_MSG",
    # Runner
    "CheckerRunner",
    "CheckerRunResults",
]
