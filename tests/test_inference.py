# tests/test_inference.py
"""
Tests for expression type inference, one class per expression family.
"""

import pytest

from compact_sdk import ast as A
from compact_sdk.errors import (
    NotAVectorError,
    TypeCheckError,
    TypeMismatchError,
    UndefinedIdentifierError,
    VectorLengthError,
)
from compact_sdk.inference import TypeInferencer, infer_expr
from compact_sdk.symbol_table import SymbolTable
from compact_sdk.type_system import (
    BOOL,
    INT,
    MAX_VECTOR_LENGTH,
    STRING,
    UNKNOWN,
    VectorType,
)
from tests.conftest import binary, boolean, ident, loc, nat, vector_type

Op = A.BinaryOperator

TYPE_PRESERVING = [
    Op.ADD, Op.SUB, Op.MUL, Op.DIV, Op.MOD, Op.POW,
    Op.BIT_AND, Op.BIT_OR, Op.BIT_XOR, Op.BIT_NOT, Op.SHL, Op.SHR,
]
BOOLEAN_PRODUCING = [Op.EQ, Op.NE, Op.LT, Op.LE, Op.GT, Op.GE, Op.AND, Op.OR]


@pytest.fixture
def scope():
    table = SymbolTable()
    table.insert("n", INT)
    table.insert("flag", BOOL)
    table.insert("s", STRING)
    table.insert("u", UNKNOWN)
    table.insert("v", VectorType(3, INT))
    table.insert("grid", VectorType(2, VectorType(4, BOOL)))
    return table


class TestLiterals:

    @pytest.mark.parametrize("expr, expected", [
        (A.Nat(42), INT),
        (A.Bool(False), BOOL),
        (A.Str("hi"), STRING),
        (A.Version("0.14.0"), UNKNOWN),
    ])
    def test_literal(self, scope, expr, expected):
        assert infer_expr(expr, scope) == expected


class TestIdentifier:

    def test_bound(self, scope):
        assert infer_expr(ident("n"), scope) == INT

    def test_bound_in_parent(self, scope):
        assert infer_expr(ident("flag"), SymbolTable(scope)) == BOOL

    def test_unknown_binding_propagates(self, scope):
        assert infer_expr(ident("u"), scope) == UNKNOWN

    def test_unbound(self, scope):
        node = A.Identifier("missing", loc=loc(4, 7))
        with pytest.raises(UndefinedIdentifierError) as exc:
            infer_expr(node, scope)
        assert exc.value.name == "missing"
        assert exc.value.code == "CMPT-3003"
        assert exc.value.span.line == 4
        assert exc.value.span.column == 7


class TestBinary:

    @pytest.mark.parametrize("op", TYPE_PRESERVING)
    def test_type_preserving(self, scope, op):
        assert infer_expr(binary(ident("n"), op, nat(1)), scope) == INT

    @pytest.mark.parametrize("op", BOOLEAN_PRODUCING)
    def test_boolean_producing(self, scope, op):
        assert infer_expr(binary(ident("n"), op, nat(1)), scope) == BOOL

    def test_partition_is_complete(self):
        assert set(TYPE_PRESERVING) | set(BOOLEAN_PRODUCING) == set(Op)
        assert len(Op) == 20
        assert all(op.is_type_preserving for op in TYPE_PRESERVING)
        assert all(op.is_boolean_producing for op in BOOLEAN_PRODUCING)

    def test_preserves_vector_type(self, scope):
        assert infer_expr(binary(ident("v"), Op.ADD, ident("v")), scope) == VectorType(3, INT)

    def test_unknown_operands(self, scope):
        assert infer_expr(binary(ident("u"), Op.MUL, ident("u")), scope) == UNKNOWN
        assert infer_expr(binary(ident("u"), Op.EQ, ident("u")), scope) == BOOL

    def test_mismatch(self, scope):
        with pytest.raises(TypeMismatchError) as exc:
            infer_expr(binary(nat(1), Op.ADD, boolean(True)), scope)
        err = exc.value
        assert (err.left, err.right) == (INT, BOOL)
        assert err.code == "CMPT-2001"
        assert "'Int' vs 'Bool'" in err.message

    def test_unknown_does_not_equal_concrete(self, scope):
        with pytest.raises(TypeMismatchError):
            infer_expr(binary(ident("u"), Op.EQ, nat(1)), scope)

    def test_nested(self, scope):
        inner = binary(ident("n"), Op.MUL, nat(2))
        outer = binary(inner, Op.LT, nat(10))
        assert infer_expr(binary(outer, Op.AND, ident("flag")), scope) == BOOL


class TestConditional:

    def test_common_type(self, scope):
        expr = A.Conditional(ident("flag"), nat(1), ident("n"))
        assert infer_expr(expr, scope) == INT

    def test_branch_mismatch(self, scope):
        expr = A.Conditional(ident("flag"), nat(1), A.Str("x"))
        with pytest.raises(TypeMismatchError) as exc:
            infer_expr(expr, scope)
        assert exc.value.context == "conditional branches"

    def test_condition_is_not_checked(self, scope):
        expr = A.Conditional(nat(0), boolean(True), boolean(False))
        assert infer_expr(expr, scope) == BOOL


class TestIndexAccess:

    def test_element_type(self, scope):
        assert infer_expr(A.IndexAccess(ident("v"), nat(0)), scope) == INT

    def test_nested_vectors(self, scope):
        row = A.IndexAccess(ident("grid"), nat(1))
        assert infer_expr(row, scope) == VectorType(4, BOOL)
        assert infer_expr(A.IndexAccess(row, nat(3)), scope) == BOOL

    @pytest.mark.parametrize("name, observed", [("n", INT), ("u", UNKNOWN)])
    def test_not_a_vector(self, scope, name, observed):
        with pytest.raises(NotAVectorError) as exc:
            infer_expr(A.IndexAccess(ident(name), nat(0)), scope)
        assert exc.value.observed == observed
        assert exc.value.code == "CMPT-2002"
        assert isinstance(exc.value, TypeCheckError)


class TestOtherForms:

    def test_cast_uses_target(self, scope):
        assert infer_expr(A.Cast(ident("n"), A.TypeBool()), scope) == BOOL

    def test_member_access_uses_base(self, scope):
        assert infer_expr(A.MemberAccess(ident("s"), "length"), scope) == STRING

    def test_function_call_uses_callee(self, scope):
        call = A.FunctionCall(ident("n"), (boolean(True), A.Str("ignored")))
        assert infer_expr(call, scope) == INT

    def test_call_arguments_are_not_resolved(self, scope):
        call = A.FunctionCall(ident("n"), (ident("nowhere"),))
        assert infer_expr(call, scope) == INT


class TestTypeExpressions:

    @pytest.mark.parametrize("expr, expected", [
        (A.TypeNat(), INT),
        (A.TypeBool(), BOOL),
        (A.TypeString(), STRING),
    ])
    def test_primitive(self, scope, expr, expected):
        assert infer_expr(expr, scope) == expected

    def test_vector(self, scope):
        assert infer_expr(vector_type(3), scope) == VectorType(3, INT)
        nested = vector_type(2, vector_type(5, A.TypeBool()))
        assert infer_expr(nested, scope) == VectorType(2, VectorType(5, BOOL))

    def test_vector_length_bounds(self, scope):
        assert infer_expr(vector_type(0), scope) == VectorType(0, INT)
        top = vector_type(MAX_VECTOR_LENGTH)
        assert infer_expr(top, scope) == VectorType(MAX_VECTOR_LENGTH, INT)

    @pytest.mark.parametrize("size", [-1, MAX_VECTOR_LENGTH + 1])
    def test_vector_length_out_of_range(self, scope, size):
        expr = A.TypeVector(size, A.TypeNat(), loc=loc(6, 2))
        with pytest.raises(VectorLengthError) as exc:
            infer_expr(expr, scope)
        assert isinstance(exc.value, TypeCheckError)
        assert exc.value.code == "CMPT-2003"
        assert exc.value.length == size
        assert exc.value.span.line == 6

    def test_type_ref(self, scope):
        assert infer_expr(A.TypeRef("v"), scope) == VectorType(3, INT)
        assert infer_expr(A.TypeRef("Point"), scope) == UNKNOWN


def test_inferencer_rejects_non_expressions(scope):
    with pytest.raises(TypeError):
        TypeInferencer(scope).infer(A.Block())
