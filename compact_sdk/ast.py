"""compact_sdk/ast.py – AST definitions for Compact contracts.

A Compact program describes a contract built from modules, circuits and
top-level declarations (imports, exports, externals, witnesses, ledgers,
constructors, contracts, structs, enums).  This module defines the
*abstract* syntax: a tree of frozen dataclasses that a front end
produces and the analysis passes consume.

Design invariants
-----------------
* Every AST node is a frozen dataclass (immutable after construction),
  so one subtree may be shared by any number of observers.
* Nodes that carry children use tuples, never lists.
* Every node records a 128-bit identity (``id``) and its source location
  (``loc``).  Neither takes part in equality: two trees with the same
  content compare equal.
* Every node class declares its traversal ``role``:

      SYMBOL     – declares a name in the current scope (``Var``,
                   ``Const``, ``Parameter``) or references one
                   (``Identifier``)
      NEW_SCOPE  – opens a nested scope (``Module``, ``Circuit``)
      COMPOSITE  – everything else

* ``children()`` returns the ordered child nodes; leaves return ``()``.

Module layout
-------------
§1  Source location, identity & node base
§2  Expressions (literals, operators, type expressions)
§3  Statements
§4  Declarations, definitions & directives
§5  Program
§6  Visitor protocol & dispatch
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field
from typing import (
    ClassVar,
    Optional,
    Protocol,
    Tuple,
    TypeVar,
    Union,
    runtime_checkable,
)

# ════════════════════════════════════════════════════════════════════════
# §1  Source location, identity & node base
# ════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Location:
    """Points back to a span of a Compact source file.

    The layout is opaque to the analysis core; it is carried verbatim so
    hosts can attach it to diagnostics.
    """

    source: str = ""
    start_line: int = 0
    start_column: int = 0
    end_line: int = 0
    end_column: int = 0
    offset_start: int = 0
    offset_end: int = 0

    def __str__(self) -> str:
        return f"{self.source or '<unknown>'}:{self.start_line}:{self.start_column}"


#: Sentinel for nodes synthesised without a source position.
NO_LOC = Location()


def new_node_id() -> int:
    """Return a fresh random 128-bit node identity."""
    return uuid.uuid4().int


class NodeRole(enum.Enum):
    """How the traversal treats a node."""

    SYMBOL = enum.auto()
    COMPOSITE = enum.auto()
    NEW_SCOPE = enum.auto()


@dataclass(frozen=True, slots=True, kw_only=True)
class Node:
    """Base of every AST node."""

    role: ClassVar[NodeRole] = NodeRole.COMPOSITE

    id: int = field(default_factory=new_node_id, compare=False, repr=False)
    loc: Location = field(default=NO_LOC, compare=False, repr=False)

    def children(self) -> Tuple["Node", ...]:
        return ()

    @property
    def node_type_name(self) -> str:
        return type(self).__name__


def _present(*nodes: Optional[Node]) -> Tuple[Node, ...]:
    return tuple(n for n in nodes if n is not None)


# ════════════════════════════════════════════════════════════════════════
# §2  Expressions
# ════════════════════════════════════════════════════════════════════════

# --- Literals ---------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Nat(Node):
    """Natural-number literal."""

    value: int = 0


@dataclass(frozen=True, slots=True)
class Bool(Node):
    value: bool = False


@dataclass(frozen=True, slots=True)
class Str(Node):
    value: str = ""


@dataclass(frozen=True, slots=True)
class Version(Node):
    """Version literal, as used by ``pragma language_version``."""

    value: str = ""


Literal = Union[Nat, Bool, Str, Version]


# --- Operators ----------------------------------------------------------


class BinaryOperator(enum.Enum):
    """The twenty binary operators.

    Arithmetic and bitwise operators preserve their operand type;
    relational and logical operators produce ``Bool``.
    """

    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    MOD = "%"
    POW = "**"
    BIT_AND = "&"
    BIT_OR = "|"
    BIT_XOR = "^"
    BIT_NOT = "~"
    SHL = "<<"
    SHR = ">>"
    EQ = "=="
    NE = "!="
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="
    AND = "&&"
    OR = "||"

    @property
    def is_type_preserving(self) -> bool:
        return self in _TYPE_PRESERVING

    @property
    def is_boolean_producing(self) -> bool:
        return not self.is_type_preserving


_TYPE_PRESERVING = frozenset({
    BinaryOperator.ADD, BinaryOperator.SUB, BinaryOperator.MUL,
    BinaryOperator.DIV, BinaryOperator.MOD, BinaryOperator.POW,
    BinaryOperator.BIT_AND, BinaryOperator.BIT_OR, BinaryOperator.BIT_XOR,
    BinaryOperator.BIT_NOT, BinaryOperator.SHL, BinaryOperator.SHR,
})


# --- Identifier -----------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Identifier(Node):
    """A reference site.

    Classified as a symbol so the traversal reaches it, but it never
    introduces a binding (``declares_symbol`` is false).
    """

    role: ClassVar[NodeRole] = NodeRole.SYMBOL
    declares_symbol: ClassVar[bool] = False

    name: str = ""

    def declared_type_expr(self, *, use_initializer: bool = True) -> Optional[Expression]:
        return None


# --- Type expressions -------------------------------------------------------
#
# Compact type syntax (``Field``, ``Boolean``, ``Vector<3, Field>`` ...) is
# an expression for inference purposes: annotating ``x: Vector<3, Field>``
# types ``x`` by inferring the annotation.


@dataclass(frozen=True, slots=True)
class TypeNat(Node):
    pass


@dataclass(frozen=True, slots=True)
class TypeBool(Node):
    pass


@dataclass(frozen=True, slots=True)
class TypeString(Node):
    pass


@dataclass(frozen=True, slots=True)
class TypeVector(Node):
    size: int = 0
    element: Expression = field(default_factory=TypeNat)

    def children(self) -> Tuple[Node, ...]:
        return (self.element,)


@dataclass(frozen=True, slots=True)
class TypeRef(Node):
    """A named type such as a struct, enum or type alias."""

    name: str = ""


TypeExpression = Union[TypeNat, TypeBool, TypeString, TypeVector, TypeRef]


# --- Compound expressions -----------------------------------------------------


@dataclass(frozen=True, slots=True)
class Conditional(Node):
    """``cond ? a : b``"""

    condition: Expression
    then_branch: Expression
    else_branch: Expression

    def children(self) -> Tuple[Node, ...]:
        return (self.condition, self.then_branch, self.else_branch)


@dataclass(frozen=True, slots=True)
class Binary(Node):
    left: Expression
    right: Expression
    operator: BinaryOperator

    def children(self) -> Tuple[Node, ...]:
        return (self.left, self.right)


@dataclass(frozen=True, slots=True)
class Cast(Node):
    """``expression as target_type``"""

    expression: Expression
    target_type: Expression

    def children(self) -> Tuple[Node, ...]:
        return (self.expression, self.target_type)


@dataclass(frozen=True, slots=True)
class IndexAccess(Node):
    array: Expression
    index: Expression

    def children(self) -> Tuple[Node, ...]:
        return (self.array, self.index)


@dataclass(frozen=True, slots=True)
class MemberAccess(Node):
    base: Expression
    member: str

    def children(self) -> Tuple[Node, ...]:
        return (self.base,)


@dataclass(frozen=True, slots=True)
class FunctionCall(Node):
    function: Expression
    arguments: Tuple[Expression, ...] = ()

    def children(self) -> Tuple[Node, ...]:
        return (self.function, *self.arguments)


Expression = Union[
    Conditional,
    Binary,
    Cast,
    IndexAccess,
    MemberAccess,
    FunctionCall,
    Identifier,
    Nat,
    Bool,
    Str,
    Version,
    TypeNat,
    TypeBool,
    TypeString,
    TypeVector,
    TypeRef,
]


# ════════════════════════════════════════════════════════════════════════
# §3  Statements
# ════════════════════════════════════════════════════════════════════════


class AssignOperator(enum.Enum):
    SIMPLE = "="
    ADD = "+="
    SUB = "-="


@dataclass(frozen=True, slots=True)
class Assign(Node):
    target: Expression
    value: Expression
    operator: AssignOperator = AssignOperator.SIMPLE

    def children(self) -> Tuple[Node, ...]:
        return (self.target, self.value)


@dataclass(frozen=True, slots=True)
class Return(Node):
    value: Optional[Expression] = None

    def children(self) -> Tuple[Node, ...]:
        return _present(self.value)


@dataclass(frozen=True, slots=True)
class If(Node):
    condition: Expression
    then_branch: Statement
    else_branch: Optional[Statement] = None

    def children(self) -> Tuple[Node, ...]:
        return _present(self.condition, self.then_branch, self.else_branch)


@dataclass(frozen=True, slots=True)
class For(Node):
    body: Statement
    init: Optional[Statement] = None
    condition: Optional[Expression] = None
    update: Optional[Statement] = None

    def children(self) -> Tuple[Node, ...]:
        return _present(self.init, self.condition, self.update, self.body)


@dataclass(frozen=True, slots=True)
class Assert(Node):
    condition: Expression
    message: Optional[str] = None

    def children(self) -> Tuple[Node, ...]:
        return (self.condition,)


@dataclass(frozen=True, slots=True)
class Block(Node):
    """``{ ... }``.  Statements run in the enclosing scope."""

    statements: Tuple[Statement, ...] = ()

    def children(self) -> Tuple[Node, ...]:
        return self.statements


@dataclass(frozen=True, slots=True)
class Var(Node):
    """Variable declaration ``let name: ty = value``.

    ``value`` and ``ty`` are both optional; a declaration with neither is
    recorded with an unknown type and may be refined by a later one.
    """

    role: ClassVar[NodeRole] = NodeRole.SYMBOL
    declares_symbol: ClassVar[bool] = True

    name: str
    value: Optional[Expression] = None
    ty: Optional[Expression] = None

    def declared_type_expr(self, *, use_initializer: bool = True) -> Optional[Expression]:
        """The annotation, falling back to the initializer when allowed."""
        if self.ty is not None:
            return self.ty
        return self.value if use_initializer else None

    def children(self) -> Tuple[Node, ...]:
        return _present(self.value, self.ty)


@dataclass(frozen=True, slots=True)
class Const(Node):
    """``const name: ty = value``"""

    role: ClassVar[NodeRole] = NodeRole.SYMBOL
    declares_symbol: ClassVar[bool] = True

    name: str
    value: Expression
    ty: Optional[Expression] = None

    def declared_type_expr(self, *, use_initializer: bool = True) -> Optional[Expression]:
        if self.ty is not None:
            return self.ty
        return self.value if use_initializer else None

    def children(self) -> Tuple[Node, ...]:
        return _present(self.value, self.ty)


Statement = Union[Assign, Return, If, For, Assert, Block, Var, Const]


# ════════════════════════════════════════════════════════════════════════
# §4  Declarations, definitions & directives
# ════════════════════════════════════════════════════════════════════════

# --- Directives ---------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Pragma(Node):
    """``pragma language_version >= 0.14.0;``"""

    name: str
    version: Version


@dataclass(frozen=True, slots=True)
class Include(Node):
    path: str


Directive = Union[Pragma, Include]


# --- Parameters -----------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Parameter(Node):
    """A circuit or constructor parameter, bound in the body's scope."""

    role: ClassVar[NodeRole] = NodeRole.SYMBOL
    declares_symbol: ClassVar[bool] = True

    name: str
    ty: Optional[Expression] = None

    def declared_type_expr(self, *, use_initializer: bool = True) -> Optional[Expression]:
        return self.ty

    def children(self) -> Tuple[Node, ...]:
        return _present(self.ty)


# --- Declarations ---------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Import(Node):
    """``import Name;`` – names another file or module."""

    name: str


@dataclass(frozen=True, slots=True)
class Export(Node):
    names: Tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class External(Node):
    """Signature of a circuit implemented outside the contract.

    Signature parameters are not visited: they bind nothing in the
    enclosing scope.
    """

    name: str
    params: Tuple[Parameter, ...] = ()
    result: Optional[Expression] = None


@dataclass(frozen=True, slots=True)
class Witness(Node):
    """Signature of a private-state witness function."""

    name: str
    params: Tuple[Parameter, ...] = ()
    result: Optional[Expression] = None


@dataclass(frozen=True, slots=True)
class Ledger(Node):
    """Public ledger field ``ledger name: ty;``"""

    name: str
    ty: Optional[Expression] = None

    def children(self) -> Tuple[Node, ...]:
        return _present(self.ty)


@dataclass(frozen=True, slots=True)
class Constructor(Node):
    """The contract constructor.  Its parameters are visible to its body."""

    params: Tuple[Parameter, ...] = ()
    body: Block = field(default_factory=Block)

    def children(self) -> Tuple[Node, ...]:
        return (*self.params, self.body)


@dataclass(frozen=True, slots=True)
class Contract(Node):
    """Declaration of another contract's callable circuits."""

    name: str
    circuits: Tuple[External, ...] = ()

    def children(self) -> Tuple[Node, ...]:
        return self.circuits


@dataclass(frozen=True, slots=True)
class StructField(Node):
    name: str
    ty: Expression

    def children(self) -> Tuple[Node, ...]:
        return (self.ty,)


@dataclass(frozen=True, slots=True)
class Struct(Node):
    name: str
    fields: Tuple[StructField, ...] = ()

    def children(self) -> Tuple[Node, ...]:
        return self.fields


@dataclass(frozen=True, slots=True)
class Enum(Node):
    name: str
    variants: Tuple[str, ...] = ()


Declaration = Union[
    Import, Export, External, Witness, Ledger, Constructor, Contract, Struct, Enum,
]


# --- Definitions ----------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Module(Node):
    """``module Name { ... }`` – opens a nested scope."""

    role: ClassVar[NodeRole] = NodeRole.NEW_SCOPE

    name: str
    items: Tuple[Node, ...] = ()

    def children(self) -> Tuple[Node, ...]:
        return self.items


@dataclass(frozen=True, slots=True)
class Circuit(Node):
    """``circuit name(params): result { body }`` – opens a nested scope.

    The parameters are symbols of the circuit's own scope.
    """

    role: ClassVar[NodeRole] = NodeRole.NEW_SCOPE

    name: str
    params: Tuple[Parameter, ...] = ()
    result: Optional[Expression] = None
    body: Block = field(default_factory=Block)
    exported: bool = False
    pure: bool = False

    def children(self) -> Tuple[Node, ...]:
        return (*self.params, *_present(self.result), self.body)


Definition = Union[Module, Circuit]


# ════════════════════════════════════════════════════════════════════════
# §5  Program
# ════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Program(Node):
    """Root of one source file."""

    directives: Tuple[Directive, ...] = ()
    declarations: Tuple[Declaration, ...] = ()
    definitions: Tuple[Definition, ...] = ()

    def children(self) -> Tuple[Node, ...]:
        return (*self.definitions, *self.declarations, *self.directives)

    def circuits(self) -> Tuple[Circuit, ...]:
        return tuple(d for d in self.definitions if isinstance(d, Circuit))

    def modules(self) -> Tuple[Module, ...]:
        return tuple(d for d in self.definitions if isinstance(d, Module))

    def constructors(self) -> Tuple[Constructor, ...]:
        return tuple(d for d in self.declarations if isinstance(d, Constructor))

    def imports(self) -> Tuple[Import, ...]:
        return tuple(d for d in self.declarations if isinstance(d, Import))

    def structs(self) -> Tuple[Struct, ...]:
        return tuple(d for d in self.declarations if isinstance(d, Struct))

    def enums(self) -> Tuple[Enum, ...]:
        return tuple(d for d in self.declarations if isinstance(d, Enum))


#: Nodes that bind a name in the scope they are visited in.
SymbolNode = Union[Var, Const, Parameter, Identifier]


# ════════════════════════════════════════════════════════════════════════
# §6  Visitor protocol & dispatch
# ════════════════════════════════════════════════════════════════════════
#
# Expressions are a Union rather than a class hierarchy with ``accept``
# methods, so passes route a node to the right visitor method through
# ``dispatch_expression``.

T = TypeVar("T")


@runtime_checkable
class ExpressionVisitor(Protocol[T]):
    """Visitor protocol for expression nodes."""

    # Literals
    def visit_nat(self, node: Nat) -> T: ...
    def visit_bool(self, node: Bool) -> T: ...
    def visit_str(self, node: Str) -> T: ...
    def visit_version(self, node: Version) -> T: ...

    # References
    def visit_identifier(self, node: Identifier) -> T: ...

    # Compound expressions
    def visit_conditional(self, node: Conditional) -> T: ...
    def visit_binary(self, node: Binary) -> T: ...
    def visit_cast(self, node: Cast) -> T: ...
    def visit_index_access(self, node: IndexAccess) -> T: ...
    def visit_member_access(self, node: MemberAccess) -> T: ...
    def visit_function_call(self, node: FunctionCall) -> T: ...

    # Type expressions
    def visit_type_nat(self, node: TypeNat) -> T: ...
    def visit_type_bool(self, node: TypeBool) -> T: ...
    def visit_type_string(self, node: TypeString) -> T: ...
    def visit_type_vector(self, node: TypeVector) -> T: ...
    def visit_type_ref(self, node: TypeRef) -> T: ...


_EXPR_DISPATCH: dict[type, str] = {
    Nat: "visit_nat",
    Bool: "visit_bool",
    Str: "visit_str",
    Version: "visit_version",
    Identifier: "visit_identifier",
    Conditional: "visit_conditional",
    Binary: "visit_binary",
    Cast: "visit_cast",
    IndexAccess: "visit_index_access",
    MemberAccess: "visit_member_access",
    FunctionCall: "visit_function_call",
    TypeNat: "visit_type_nat",
    TypeBool: "visit_type_bool",
    TypeString: "visit_type_string",
    TypeVector: "visit_type_vector",
    TypeRef: "visit_type_ref",
}


def dispatch_expression(expr: Expression, visitor: ExpressionVisitor[T]) -> T:
    """Dispatch an ``Expression`` node to the appropriate visitor method."""
    method_name = _EXPR_DISPATCH.get(type(expr))
    if method_name is None:
        raise TypeError(f"Unknown expression node type: {type(expr).__name__}")
    return getattr(visitor, method_name)(expr)
