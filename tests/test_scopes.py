# tests/test_scopes.py
"""
Tests for scope construction: end-to-end scenarios, tree invariants,
boundary cases and builder configuration.
"""

import logging

import pytest

from compact_sdk import ast as A
from compact_sdk.errors import (
    DuplicateSymbolError,
    DuplicateWithoutTypeError,
    ScopeDepthExceeded,
    TypeMismatchError,
    UndefinedIdentifierError,
    VectorLengthError,
)
from compact_sdk.scopes import BuilderConfig, ScopeBuilder, build_symbol_table
from compact_sdk.symbol_table import SymbolTable
from compact_sdk.traversal import classify
from compact_sdk.type_system import BOOL, INT, STRING, UNKNOWN, VectorType
from tests.conftest import (
    binary,
    boolean,
    circuit,
    ident,
    loc,
    module,
    nat,
    program,
    var,
    vector_type,
)

Op = A.BinaryOperator


def all_tables(table):
    stack = [table]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(current.children)


class TestScenarios:

    def test_simple_declaration(self):
        table = build_symbol_table(module("m", var("x", ty=nat(42))))
        assert table.to_dict()["symbols"] == {"x": "Int"}
        assert table.lookup("x") == INT

    def test_forward_reference_fails(self):
        root = module("m", var("a", ident("b")), var("b", nat(1)))
        with pytest.raises(UndefinedIdentifierError) as exc:
            build_symbol_table(root)
        assert exc.value.name == "b"
        assert exc.value.symbol == "a"

    def test_nested_scope_isolation(self):
        inner = module("inner", var("x", boolean(True)))
        outer = build_symbol_table(module("outer", var("x", nat(1)), inner))
        assert len(outer.children) == 1
        child = outer.children[0]
        assert outer.lookup("x") == INT
        assert child.lookup("x") == BOOL
        assert child.parent is outer

    def test_binary_type_mismatch(self):
        root = module("m", var("y", binary(nat(1), Op.ADD, boolean(True))))
        with pytest.raises(TypeMismatchError) as exc:
            build_symbol_table(root)
        assert (exc.value.left, exc.value.right) == (INT, BOOL)
        assert exc.value.symbol == "y"

    def test_index_access(self):
        root = module(
            "m",
            var("v", ty=vector_type(3)),
            var("w", A.IndexAccess(ident("v"), nat(0))),
        )
        table = build_symbol_table(root)
        assert table.lookup("v") == VectorType(3, INT)
        assert table.lookup("w") == INT

    def test_refinement(self):
        table = build_symbol_table(module("m", var("z"), var("z", ty=A.TypeNat())))
        assert table.lookup("z") == INT


class TestInvariants:

    def sample(self):
        return program(
            A.Import("lib"),
            module(
                "a",
                var("x", nat(1)),
                module("b", var("y", binary(ident("x"), Op.LT, nat(2)))),
                circuit("c", var("z", A.Str("s")), params=[A.Parameter("p", A.TypeBool())]),
            ),
            circuit("top", A.Return(nat(0)), result=A.TypeNat()),
        )

    def test_child_parent_links(self):
        root = build_symbol_table(self.sample())
        for table in all_tables(root):
            for child in table.children:
                assert child.parent is table

    def test_names_unique_per_table(self):
        for table in all_tables(build_symbol_table(self.sample())):
            names = table.names()
            assert len(names) == len(set(names))

    def test_innermost_binding(self):
        root = build_symbol_table(self.sample())
        mod_a = root.children[0]
        mod_b, circ_c = mod_a.children
        assert mod_b.lookup("y") == BOOL
        assert mod_b.lookup("x") == INT
        assert circ_c.lookup("p") == BOOL
        assert circ_c.lookup("z") == STRING
        assert mod_a.lookup("z") is None
        assert root.lookup("x") is None

    def test_deterministic(self):
        first = build_symbol_table(self.sample()).to_dict()
        second = build_symbol_table(self.sample()).to_dict()
        assert first == second

    def test_same_ast_twice(self):
        ast = self.sample()
        assert build_symbol_table(ast).to_dict() == build_symbol_table(ast).to_dict()

    def test_children_in_traversal_order(self):
        root = build_symbol_table(self.sample())
        assert [c.name for c in root.children] == ["a", "top"]
        assert [c.name for c in root.children[0].children] == ["b", "c"]


class TestBoundaries:

    def test_empty_program(self):
        table = build_symbol_table(A.Program())
        assert len(table) == 0
        assert table.children == []
        assert table.lookup("anything") is None

    def test_empty_scope_gets_child_table(self):
        table = build_symbol_table(program(module("empty")))
        assert len(table.children) == 1
        assert len(table.children[0]) == 0
        assert table.children[0].name == "empty"

    def test_self_reference(self):
        with pytest.raises(UndefinedIdentifierError) as exc:
            build_symbol_table(module("m", var("x", ident("x"))))
        assert exc.value.name == "x"

    def test_unknown_reference_propagates(self):
        table = build_symbol_table(module("m", var("a"), var("b", ident("a"))))
        assert table.lookup("b") == UNKNOWN

    def test_unannotated_var_without_initializer(self):
        assert build_symbol_table(module("m", var("x"))).lookup("x") == UNKNOWN

    def test_annotation_wins_over_initializer(self):
        table = build_symbol_table(module("m", var("x", A.Str("s"), A.TypeNat())))
        assert table.lookup("x") == INT

    def test_duplicate_symbol(self):
        with pytest.raises(DuplicateSymbolError):
            build_symbol_table(module("m", var("x", nat(1)), var("x", nat(2))))

    def test_duplicate_without_type(self):
        with pytest.raises(DuplicateWithoutTypeError):
            build_symbol_table(module("m", var("x"), var("x")))

    def test_const_and_parameters(self):
        c = circuit(
            "f",
            A.Const("k", binary(ident("a"), Op.ADD, nat(1))),
            params=[A.Parameter("a", A.TypeNat()), A.Parameter("b")],
        )
        table = build_symbol_table(program(c)).children[0]
        assert table.lookup("a") == INT
        assert table.lookup("b") == UNKNOWN
        assert table.lookup("k") == INT

    def test_statements_are_composite(self):
        body = A.If(
            boolean(True),
            A.Block((var("inner", nat(1)),)),
            A.Block((var("other", boolean(False)),)),
        )
        table = build_symbol_table(module("m", body))
        assert table.lookup("inner") == INT
        assert table.lookup("other") == BOOL
        assert table.children == []

    def test_constructor_params_in_enclosing_scope(self):
        ctor = A.Constructor((A.Parameter("owner", A.TypeString()),), A.Block())
        table = build_symbol_table(program(ctor))
        assert table.lookup("owner") == STRING

    def test_signature_params_are_not_bound(self):
        ext = A.External("hash", (A.Parameter("data", A.TypeNat()),), A.TypeNat())
        table = build_symbol_table(program(ext))
        assert table.lookup("data") is None

    def test_error_carries_declaration_location(self):
        decl = A.Var("y", binary(nat(1), Op.EQ, boolean(True)), loc=loc(12, 3))
        with pytest.raises(TypeMismatchError) as exc:
            build_symbol_table(module("m", decl))
        assert exc.value.span.line == 12
        assert exc.value.to_json()["location"]["column"] == 3

    def test_vector_length_error_names_declaration(self):
        decl = A.Var("v", ty=vector_type(-1), loc=loc(7))
        with pytest.raises(VectorLengthError) as exc:
            build_symbol_table(module("m", decl))
        assert exc.value.symbol == "v"
        assert exc.value.span.line == 7

    def test_precise_location_is_kept(self):
        decl = A.Var("y", A.Identifier("nope", loc=loc(5, 9)), loc=loc(4))
        with pytest.raises(UndefinedIdentifierError) as exc:
            build_symbol_table(module("m", decl))
        assert exc.value.span.line == 5

    def test_external_parent(self):
        parent = SymbolTable(name="globals")
        parent.insert("g", VectorType(2, BOOL))
        table = build_symbol_table(module("m", var("e", A.IndexAccess(ident("g"), nat(1)))), parent)
        assert table.parent is parent
        assert parent.children == []
        assert table.lookup("e") == BOOL

    def test_envelope_root(self):
        table = build_symbol_table(classify(module("m", var("x", nat(1)))))
        assert table.name == "m"
        assert table.lookup("x") == INT

    def test_symbol_root(self):
        table = build_symbol_table(var("x", nat(1)))
        assert table.lookup("x") == INT


class TestConfig:

    def test_default_config_is_valid(self):
        assert BuilderConfig().validate() == []

    def test_invalid_depth_warns(self, caplog):
        with caplog.at_level(logging.WARNING, logger="compact_sdk"):
            ScopeBuilder(BuilderConfig(max_scope_depth=-1))
        assert "max_scope_depth must be non-negative" in caplog.text

    def test_without_initializer_inference(self):
        config = BuilderConfig(infer_initializers=False)
        table = build_symbol_table(
            module("m", var("x", nat(1)), var("y", nat(1), A.TypeBool())),
            config=config,
        )
        assert table.lookup("x") == UNKNOWN
        assert table.lookup("y") == BOOL

    def test_reference_checking(self):
        root = module("m", A.Assign(ident("nowhere"), nat(1)))
        assert len(build_symbol_table(root)) == 0
        with pytest.raises(UndefinedIdentifierError) as exc:
            build_symbol_table(root, config=BuilderConfig(check_references=True))
        assert exc.value.name == "nowhere"

    def test_reference_checking_accepts_bound_names(self):
        root = module("m", var("x", nat(1)), A.Assign(ident("x"), nat(2)))
        table = build_symbol_table(root, config=BuilderConfig(check_references=True))
        assert table.lookup("x") == INT

    def test_scope_depth_limit(self):
        root = module("a", module("b", module("c")))
        build_symbol_table(root, config=BuilderConfig(max_scope_depth=2))
        with pytest.raises(ScopeDepthExceeded) as exc:
            build_symbol_table(root, config=BuilderConfig(max_scope_depth=1))
        assert exc.value.limit == 1
        assert exc.value.code == "CMPT-3004"

    def test_debug_logging(self, debug_logs):
        build_symbol_table(module("m", var("x", nat(1))))
        assert "open scope m" in debug_logs.text
        assert "bind x -> Int" in debug_logs.text
