"""
reinterp_shims - Checkers for Unsafe Memory Reinterpretation
============================================================

Static checks over a parsed, type-checked compilation unit for two classes
of pointer-reinterpretation bugs:

* slice/string headers that are built or mutated by hand instead of being
  derived from a real slice or string;
* casts between record types whose numbers of architecture-sized fields
  differ.

Core modules
------------
ast_nodes
    Syntax tree node classes.
type_analysis
    Type descriptors, bindings and per-unit type information.
shape_matcher
    Structural header-shape and platform-dependent field queries.
cast_idioms
    Recognizers for the ``(*T)(unsafe.Pointer(x))`` cast idioms.
ast_helper
    Tree traversal with ancestor stacks.
ctrlflow_graph
    Per-function CFGs and the bounded path search.
checkers
    Diagnostic model, checker framework, the two checkers and the runner.
unit_reader
    Reference front end reading S-expression unit descriptions.

Quick start
-----------
>>> from reinterp_shims import CheckerRunner, read_unit
>>> unit = read_unit(open("unit.sexp").read(), "unit.sexp")
>>> results = CheckerRunner().run(unit)
>>> print(results.to_gcc_format())

Package layout
--------------
::

    reinterp_shims/
    ├── __init__.py            ← this file
    ├── ast_nodes.py
    ├── type_analysis.py
    ├── shape_matcher.py
    ├── cast_idioms.py
    ├── ast_helper.py
    ├── ctrlflow_graph.py
    ├── checkers.py
    └── unit_reader.py
"""

from __future__ import annotations

import importlib
import logging
import sys
from typing import List

# ---------------------------------------------------------------------------
# Package metadata
# ---------------------------------------------------------------------------

__version__ = "0.1.0"
__author__ = "reinterp-shims contributors"
__license__ = "MIT"
__all__: List[str] = []          # populated incrementally below

_log = logging.getLogger(__name__)
_log.addHandler(logging.NullHandler())

# ---------------------------------------------------------------------------
# Internal registry: (module_name, list_of_names_to_import)
# ---------------------------------------------------------------------------

_CORE_MODULES = {
    "type_analysis": [
        "TypeKind",
        "BasicKind",
        "TypeDescriptor",
        "StructField",
        "INVALID",
        "Binding",
        "BindingKind",
        "TypeInfo",
    ],
    "shape_matcher": [
        "ShapeSpec",
        "is_header_shaped",
        "is_genuine_reference",
        "count_platform_dependent_fields",
    ],
    "cast_idioms": [
        "HeaderDerivation",
        "RecordCast",
        "match_header_derivation",
        "match_record_cast",
    ],
    "ctrlflow_graph": [
        "CFG",
        "Block",
        "build_cfg",
        "find_path_to_node",
    ],
    "checkers": [
        "CompilationUnit",
        "Diagnostic",
        "DiagnosticSeverity",
        "SuppressionManager",
        "Checker",
        "CheckerContext",
        "HeaderMisuseChecker",
        "StructCastSizeChecker",
        "ALL_CHECKERS",
        "CheckerRunner",
        "CheckerRunResults",
    ],
    "unit_reader": [
        "UnitFormatError",
        "Expectation",
        "read_unit",
        "load_unit",
        "load_fixture",
    ],
}

# ---------------------------------------------------------------------------
# Import helper
# ---------------------------------------------------------------------------

def _import_names(module_rel_name: str, names: List[str]) -> None:
    """Import *names* from a submodule and bind them in the package namespace.

    An ``ImportError`` from the submodule propagates with the submodule
    named in the message.
    """
    fq_name = f"{__name__}.{module_rel_name}"
    try:
        mod = importlib.import_module(fq_name)
    except ImportError as exc:
        raise ImportError(
            f"reinterp_shims: required submodule '{module_rel_name}' "
            f"failed to import: {exc}"
        ) from exc

    current_module = sys.modules[__name__]
    for name in names:
        if not hasattr(mod, name):
            raise AttributeError(
                f"reinterp_shims.{module_rel_name} does not export '{name}'"
            )
        setattr(current_module, name, getattr(mod, name))
        __all__.append(name)

    # Also expose the submodule itself so that
    #   reinterp_shims.checkers.CheckerRunner
    # works in addition to
    #   reinterp_shims.CheckerRunner
    setattr(current_module, module_rel_name, mod)
    if module_rel_name not in __all__:
        __all__.append(module_rel_name)


for _mod, _names in _CORE_MODULES.items():
    _import_names(_mod, _names)

del _mod, _names


def list_submodules() -> List[str]:
    """Return the names of the re-exported submodules."""
    return sorted(_CORE_MODULES)


__all__ += ["list_submodules"]
