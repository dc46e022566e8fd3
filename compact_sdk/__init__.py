"""compact_sdk — scope and type analysis for Compact contracts.

This package turns Compact abstract syntax trees into trees of symbol
tables, inferring the type of every declared name along the way.

Submodules
----------
ast
    Frozen-dataclass AST nodes, their traversal roles and the
    expression visitor protocol.

traversal
    ``Symbol`` / ``Composite`` / ``NewScope`` envelopes and the
    worklist-based walkers.

type_system
    ``Int``, ``Bool``, ``String``, ``Vector`` and ``Unknown``.

symbol_table
    Per-scope tables with refine-on-insert and parent-chain lookup.

inference
    Expression type inference against a symbol table.

scopes
    ``build_symbol_table`` and its ``BuilderConfig``.

codebase
    Multi-file container: file-level tables, import linking, node
    storage, and the sealed read-only view.

detector
    ``Detector`` base class, ``DetectorResult`` and report templates.

detectors
    The shipped detectors and the ``DETECTORS`` registry.

sexp
    S-expression reader producing ASTs (``sexpdata`` based).

errors
    Exception hierarchy with ``CMPT-NNNN`` codes and GCC-style
    rendering.

Usage
-----
::

    from compact_sdk import DETECTORS, Codebase, run_detectors

    cb = Codebase()
    cb.add_source("main.compact", '''
        (program
          (circuit add ((a Nat) (b Nat)) :returns Nat
            (var sum (+ a b))
            (return sum)))
    ''')
    sealed = cb.seal()
    print(sealed.symbol_table("main.compact").pretty())
    print(run_detectors(sealed, DETECTORS))
"""

from __future__ import annotations

from compact_sdk.codebase import Codebase, SealedCodebase, SourceFile
from compact_sdk.detector import Detector, DetectorResult, run_detectors
from compact_sdk.detectors import DETECTORS
from compact_sdk.errors import (
    CompactError,
    DuplicateSymbolError,
    DuplicateWithoutTypeError,
    NotAVectorError,
    SemanticError,
    TypeMismatchError,
    UndefinedIdentifierError,
    VectorLengthError,
)
from compact_sdk.inference import infer_expr
from compact_sdk.scopes import BuilderConfig, build_symbol_table
from compact_sdk.symbol_table import SymbolEntry, SymbolTable
from compact_sdk.traversal import Composite, NewScope, NodeKind, Symbol, classify
from compact_sdk.type_system import (
    BOOL,
    INT,
    STRING,
    UNKNOWN,
    BoolType,
    CompactType,
    IntType,
    StringType,
    UnknownType,
    VectorType,
)

__version__: str = "0.1.0"
__all__: list[str] = [
    "__version__",
    "Codebase",
    "SealedCodebase",
    "SourceFile",
    "Detector",
    "DetectorResult",
    "run_detectors",
    "DETECTORS",
    "CompactError",
    "SemanticError",
    "DuplicateSymbolError",
    "DuplicateWithoutTypeError",
    "UndefinedIdentifierError",
    "TypeMismatchError",
    "NotAVectorError",
    "VectorLengthError",
    "infer_expr",
    "BuilderConfig",
    "build_symbol_table",
    "SymbolEntry",
    "SymbolTable",
    "Symbol",
    "Composite",
    "NewScope",
    "NodeKind",
    "classify",
    "CompactType",
    "IntType",
    "BoolType",
    "StringType",
    "VectorType",
    "UnknownType",
    "INT",
    "BOOL",
    "STRING",
    "UNKNOWN",
]
