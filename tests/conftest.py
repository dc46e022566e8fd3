# tests/conftest.py
"""
Shared fixtures and AST builders for the Compact SDK test-suite.
"""

import logging

import pytest

from compact_sdk import ast as A
from compact_sdk.symbol_table import SymbolTable


# ─── AST builders ─────────────────────────────────────────────────────────

def nat(value):
    return A.Nat(value)


def boolean(value):
    return A.Bool(value)


def ident(name):
    return A.Identifier(name)


def var(name, value=None, ty=None):
    return A.Var(name, value, ty)


def binary(left, op, right):
    return A.Binary(left, right, op)


def vector_type(size, element=None):
    return A.TypeVector(size, element if element is not None else A.TypeNat())


def module(name, *items):
    return A.Module(name, tuple(items))


def circuit(name, *statements, params=(), result=None):
    return A.Circuit(name, tuple(params), result, A.Block(tuple(statements)))


def program(*items):
    """Sort *items* into the directive / declaration / definition slots."""
    directives = tuple(i for i in items if isinstance(i, (A.Pragma, A.Include)))
    definitions = tuple(i for i in items if isinstance(i, (A.Module, A.Circuit)))
    declarations = tuple(
        i for i in items if i not in directives and i not in definitions
    )
    return A.Program(directives, declarations, definitions)


def loc(line, column=1, source="test.compact"):
    return A.Location(source=source, start_line=line, start_column=column)


# ─── S-expression sources ─────────────────────────────────────────────────

ADDER_SEXP = """
(program
  (pragma language_version "0.14.0")
  (import CompactStandardLibrary)
  (ledger counter Nat)
  (circuit add ((a Nat) (b Nat)) :returns Nat :export
    (var sum (+ a b))
    (return sum)))
"""

VECTOR_SEXP = """
(program
  (module storage
    (var v :type (Vector 3 Nat))
    (var w (index v 0))
    (var ok (== w 1))))
"""

LIB_SEXP = """
(program
  (struct Point (x Nat) (y Nat))
  (enum Color red green)
  (circuit origin () :returns Nat :pure
    (return 0)))
"""

MAIN_SEXP = """
(program
  (import lib)
  (circuit main ((p Nat)) :returns Boolean
    (const o (call origin))
    (assert (== o p) "not at origin")
    (for (var i 0) (< i 3) (assign i 1 +=)
      (block (var sq (* i i))))
    (return (== o p))))
"""


# ─── Fixtures ─────────────────────────────────────────────────────────────

@pytest.fixture
def root_table():
    return SymbolTable()


@pytest.fixture
def debug_logs(caplog):
    caplog.set_level(logging.DEBUG, logger="compact_sdk")
    return caplog
