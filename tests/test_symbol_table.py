# tests/test_symbol_table.py
"""
Tests for per-scope symbol tables: insert / refine rules, lookup through
the parent chain, and the structural snapshot.
"""

import pytest

from compact_sdk.errors import DuplicateSymbolError, DuplicateWithoutTypeError
from compact_sdk.symbol_table import SymbolTable
from compact_sdk.type_system import BOOL, INT, STRING, UNKNOWN, VectorType
from tests.conftest import loc


class TestInsert:

    def test_insert_new_name(self, root_table):
        entry = root_table.insert("x", INT)
        assert entry.name == "x"
        assert entry.type == INT
        assert root_table.lookup("x") == INT
        assert len(root_table) == 1

    def test_insert_defaults_to_unknown(self, root_table):
        root_table.insert("x")
        assert root_table.lookup("x") == UNKNOWN

    def test_unknown_refined_by_concrete(self, root_table):
        root_table.insert("z", UNKNOWN)
        entry = root_table.insert("z", INT, node_id=7)
        assert root_table.lookup("z") == INT
        assert entry.node_id == 7
        assert len(root_table) == 1

    def test_concrete_kept_over_unknown(self, root_table):
        root_table.insert("z", BOOL, node_id=1)
        entry = root_table.insert("z", UNKNOWN, node_id=2)
        assert root_table.lookup("z") == BOOL
        assert entry.node_id == 1

    def test_unknown_twice_fails(self, root_table):
        root_table.insert("z")
        with pytest.raises(DuplicateWithoutTypeError) as exc:
            root_table.insert("z")
        assert exc.value.name == "z"
        assert exc.value.code == "CMPT-3002"

    @pytest.mark.parametrize("first, second", [
        (INT, INT),
        (INT, BOOL),
        (VectorType(2, INT), VectorType(2, INT)),
    ])
    def test_concrete_twice_fails(self, root_table, first, second):
        root_table.insert("z", first)
        with pytest.raises(DuplicateSymbolError) as exc:
            root_table.insert("z", second)
        assert exc.value.name == "z"
        assert exc.value.symbol == "z"
        assert exc.value.code == "CMPT-3001"
        assert root_table.lookup("z") == first

    def test_duplicate_reports_both_locations(self, root_table):
        root_table.insert("z", INT, loc=loc(3))
        with pytest.raises(DuplicateSymbolError) as exc:
            root_table.insert("z", BOOL, loc=loc(9))
        err = exc.value
        assert err.span.line == 9
        assert err.span.file == "test.compact"
        assert len(err.error_message.notes) == 1
        assert err.error_message.notes[0].span.line == 3
        assert "test.compact:9:1: error: Symbol 'z' already exists [CMPT-3001]" in str(err)

    def test_shadowing_parent_is_allowed(self, root_table):
        root_table.insert("x", INT)
        child = SymbolTable(root_table)
        child.insert("x", BOOL)
        assert child.lookup("x") == BOOL
        assert root_table.lookup("x") == INT


class TestLookup:

    def test_missing_name(self, root_table):
        assert root_table.lookup("nope") is None

    def test_lookup_follows_parent_chain(self, root_table):
        root_table.insert("a", INT)
        middle = SymbolTable(root_table, name="m")
        middle.insert("b", STRING)
        leaf = SymbolTable(middle, name="c")
        assert leaf.lookup("a") == INT
        assert leaf.lookup("b") == STRING
        assert leaf.lookup_local("a") is None

    def test_innermost_binding_wins(self, root_table):
        root_table.insert("x", INT)
        middle = SymbolTable(root_table)
        middle.insert("x", STRING)
        leaf = SymbolTable(middle)
        assert leaf.lookup("x") == STRING

    def test_lookup_does_not_mutate(self, root_table):
        root_table.insert("x", INT)
        child = SymbolTable(root_table)
        before = (root_table.to_dict(), child.to_dict())
        child.lookup("x")
        child.lookup("missing")
        assert (root_table.to_dict(), child.to_dict()) == before

    def test_resolve_returns_entry(self, root_table):
        root_table.insert("x", INT, node_id=42, loc=loc(5))
        entry = SymbolTable(root_table).resolve("x")
        assert entry.node_id == 42
        assert entry.loc.start_line == 5

    def test_resolve_id_searches_nested_scopes(self, root_table):
        child = SymbolTable(root_table, name="inner")
        child.insert("y", BOOL, node_id=9)
        root_table.add_child(child)
        assert root_table.resolve_id(9).name == "y"
        assert child.resolve_id(9).type == BOOL
        assert root_table.resolve_id(10) is None


class TestStructure:

    def test_child_attached_explicitly(self, root_table):
        child = SymbolTable(root_table, name="inner")
        assert child.parent is root_table
        assert root_table.children == []
        root_table.add_child(child)
        assert root_table.children == [child]

    def test_children_property_is_a_copy(self, root_table):
        root_table.add_child(SymbolTable(root_table))
        root_table.children.clear()
        assert len(root_table.children) == 1

    def test_depth(self, root_table):
        child = SymbolTable(root_table)
        assert root_table.depth == 0
        assert SymbolTable(child).depth == 2

    def test_contains_and_names(self, root_table):
        root_table.insert("b", INT)
        root_table.insert("a", BOOL)
        assert "a" in root_table
        assert "c" not in root_table
        assert root_table.names() == ["b", "a"]

    def test_to_dict(self, root_table):
        root_table.insert("b", INT)
        root_table.insert("a", VectorType(2, BOOL))
        child = SymbolTable(root_table, name="m")
        child.insert("c", STRING)
        root_table.add_child(child)
        assert root_table.to_dict() == {
            "name": "<root>",
            "symbols": {"a": "Vector<2, Bool>", "b": "Int"},
            "children": [{"name": "m", "symbols": {"c": "String"}, "children": []}],
        }

    def test_pretty(self, root_table):
        root_table.insert("x", INT)
        child = SymbolTable(root_table, name="m")
        child.insert("y", BOOL)
        root_table.add_child(child)
        assert root_table.pretty() == "scope <root>\n  x: Int\n  scope m\n    y: Bool"
