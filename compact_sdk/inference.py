"""
Expression type inference.

``infer_expr(expr, table)`` computes the type of an expression, resolving
identifiers through ``table`` and its enclosing scopes.

Rules
-----
* ``Nat`` → Int, ``Bool`` → Bool, ``Str`` → String, ``Version`` → Unknown
* ``Identifier`` → its binding, else ``UndefinedIdentifierError``
* ``Conditional`` → the common type of both branches
* ``Binary`` → both operands must agree; arithmetic and bitwise
  operators keep that type, relational and logical ones give Bool
* ``Cast`` → the type of the target type expression
* ``IndexAccess`` → the element type of a Vector operand
* ``MemberAccess`` → the type of the base (members are not checked yet)
* ``FunctionCall`` → the type of the callee (arguments are not checked)
* Type expressions map onto the corresponding types; named types
  resolve through the scope chain and default to Unknown.
"""

from __future__ import annotations

from compact_sdk import ast as A
from compact_sdk.errors import (
    NotAVectorError,
    SourceSpan,
    TypeMismatchError,
    UndefinedIdentifierError,
    VectorLengthError,
)
from compact_sdk.symbol_table import SymbolTable
from compact_sdk.type_system import (
    BOOL,
    INT,
    MAX_VECTOR_LENGTH,
    STRING,
    UNKNOWN,
    CompactType,
    VectorType,
)

__all__ = ["TypeInferencer", "infer_expr"]


class TypeInferencer:
    """Implements ``ExpressionVisitor[CompactType]`` against one scope."""

    def __init__(self, table: SymbolTable) -> None:
        self.table = table

    def infer(self, expr: A.Expression) -> CompactType:
        return A.dispatch_expression(expr, self)

    # --- Literals ---

    def visit_nat(self, node: A.Nat) -> CompactType:
        return INT

    def visit_bool(self, node: A.Bool) -> CompactType:
        return BOOL

    def visit_str(self, node: A.Str) -> CompactType:
        return STRING

    def visit_version(self, node: A.Version) -> CompactType:
        # No version type exists yet.
        return UNKNOWN

    # --- References ---

    def visit_identifier(self, node: A.Identifier) -> CompactType:
        ty = self.table.lookup(node.name)
        if ty is None:
            raise UndefinedIdentifierError(node.name, span=SourceSpan.from_node(node))
        return ty

    # --- Compound expressions ---

    def visit_conditional(self, node: A.Conditional) -> CompactType:
        then_type = self.infer(node.then_branch)
        else_type = self.infer(node.else_branch)
        if then_type != else_type:
            raise TypeMismatchError(
                then_type, else_type,
                span=SourceSpan.from_node(node),
                context="conditional branches",
            )
        return then_type

    def visit_binary(self, node: A.Binary) -> CompactType:
        left = self.infer(node.left)
        right = self.infer(node.right)
        if left != right:
            raise TypeMismatchError(
                left, right,
                span=SourceSpan.from_node(node),
                context=f"operator '{node.operator.value}'",
            )
        if node.operator.is_type_preserving:
            return left
        return BOOL

    def visit_cast(self, node: A.Cast) -> CompactType:
        return self.infer(node.target_type)

    def visit_index_access(self, node: A.IndexAccess) -> CompactType:
        array_type = self.infer(node.array)
        if not isinstance(array_type, VectorType):
            raise NotAVectorError(array_type, span=SourceSpan.from_node(node))
        return array_type.element

    def visit_member_access(self, node: A.MemberAccess) -> CompactType:
        return self.infer(node.base)

    def visit_function_call(self, node: A.FunctionCall) -> CompactType:
        return self.infer(node.function)

    # --- Type expressions ---

    def visit_type_nat(self, node: A.TypeNat) -> CompactType:
        return INT

    def visit_type_bool(self, node: A.TypeBool) -> CompactType:
        return BOOL

    def visit_type_string(self, node: A.TypeString) -> CompactType:
        return STRING

    def visit_type_vector(self, node: A.TypeVector) -> CompactType:
        if not 0 <= node.size <= MAX_VECTOR_LENGTH:
            raise VectorLengthError(node.size, span=SourceSpan.from_node(node))
        return VectorType(node.size, self.infer(node.element))

    def visit_type_ref(self, node: A.TypeRef) -> CompactType:
        ty = self.table.lookup(node.name)
        return ty if ty is not None else UNKNOWN


def infer_expr(expr: A.Expression, table: SymbolTable) -> CompactType:
    """Infer the type of *expr* in the scope described by *table*."""
    return TypeInferencer(table).infer(expr)
