"""
sexp.py — S-expression reader for Compact ASTs
==============================================

Builds ``compact_sdk.ast`` trees from a small S-expression notation.
Hosts without a Compact front end (and the test-suite) use it to feed
programs to the codebase.

Parsing is delegated to the ``sexpdata`` library; this module only maps
the resulting nested lists onto AST nodes.

Notation
--------
::

    (program ITEM...)
    (pragma NAME VERSION)                 (include PATH)
    (import NAME)                         (export NAME...)
    (external NAME (PARAM...) [TYPE])     (witness NAME (PARAM...) [TYPE])
    (ledger NAME [TYPE])                  (constructor (PARAM...) STMT...)
    (contract NAME (circuit NAME (PARAM...) [TYPE])...)
    (struct NAME (FIELD TYPE)...)         (enum NAME VARIANT...)
    (module NAME ITEM...)
    (circuit NAME (PARAM...) [:returns TYPE] [:export] [:pure] STMT...)

    PARAM := NAME | (NAME TYPE)

    (var NAME [VALUE] [:type TYPE])       (const NAME VALUE [:type TYPE])
    (assign TARGET VALUE [= | += | -=])   (return [EXPR])
    (if COND THEN [ELSE])                 (for INIT COND UPDATE BODY)
    (assert COND [MESSAGE])               (block STMT...)

    42  "text"  true  false  name         (version "0.14.0")
    (? COND THEN ELSE)                    (OP LEFT RIGHT)
    (cast EXPR TYPE)                      (index ARRAY INDEX)
    (member BASE NAME)                    (call FUNCTION ARG...)
    Nat  Field  Boolean  String           (Vector SIZE TYPE)  (type NAME)

``_`` stands for an absent optional slot of ``for``.  Node ids are
allocated sequentially per call (unless a shared counter is passed), so
reading the same text twice yields trees with the same ids.
"""

from __future__ import annotations

import itertools
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, Union

import sexpdata

from compact_sdk import ast as A
from compact_sdk.errors import SexpReadError, SourceSpan
from compact_sdk.type_system import MAX_VECTOR_LENGTH

__all__ = ["SexpReader", "loads", "load"]

logger = logging.getLogger(__name__)

_BINARY_OPERATORS: Dict[str, A.BinaryOperator] = {
    op.value: op for op in A.BinaryOperator
}
_ASSIGN_OPERATORS: Dict[str, A.AssignOperator] = {
    op.value: op for op in A.AssignOperator
}
_TYPE_ATOMS: Dict[str, type] = {
    "Nat": A.TypeNat,
    "Field": A.TypeNat,
    "Boolean": A.TypeBool,
    "String": A.TypeString,
}

_DIRECTIVES = frozenset({"pragma", "include"})
_DECLARATIONS = frozenset({
    "import", "export", "external", "witness", "ledger",
    "constructor", "contract", "struct", "enum",
})
_DEFINITIONS = frozenset({"module", "circuit"})
_STATEMENTS = frozenset({
    "var", "const", "assign", "return", "if", "for", "assert", "block",
})


def _is_symbol(obj: Any) -> bool:
    return isinstance(obj, sexpdata.Symbol)


def _sym_name(sym: Any) -> str:
    value = getattr(sym, "value", None)
    return str(value()) if callable(value) else str(sym)


def _text(obj: Any) -> str:
    """Symbol or string atom as plain text."""
    if _is_symbol(obj):
        return _sym_name(obj)
    if isinstance(obj, str):
        return obj
    raise SexpReadError(f"expected a name, got {obj!r}")


def _keyword(obj: Any) -> Optional[str]:
    """``type`` for the symbol ``:type``; ``None`` for anything else."""
    if _is_symbol(obj):
        name = _sym_name(obj)
        if name.startswith(":") and len(name) > 1:
            return name[1:]
    return None


def _head(form: Any) -> Optional[str]:
    if isinstance(form, list) and form and _is_symbol(form[0]):
        return _sym_name(form[0])
    return None


def _dump(form: Any) -> str:
    if isinstance(form, list):
        return "(" + " ".join(_dump(item) for item in form) + ")"
    if _is_symbol(form):
        return _sym_name(form)
    return repr(form)


class SexpReader:
    """Maps parsed S-expressions onto AST nodes.

    Ids come from *ids* when given (so several readers can share one
    counter), otherwise from a private counter starting at 1.
    """

    def __init__(
        self,
        source: str = "<string>",
        ids: Optional[Iterator[int]] = None,
    ) -> None:
        self.source = source
        self._ids = ids if ids is not None else itertools.count(1)
        self._loc = A.Location(source=source)
        self._statement_readers: Dict[str, Callable[[List[Any]], A.Node]] = {
            "var": self._read_var,
            "const": self._read_const,
            "assign": self._read_assign,
            "return": self._read_return,
            "if": self._read_if,
            "for": self._read_for,
            "assert": self._read_assert,
            "block": self._read_block,
        }

    # ------------------------------------------------------------------
    # entry points
    # ------------------------------------------------------------------

    def read_text(self, text: str) -> A.Program:
        try:
            form = sexpdata.loads(text, nil=None, true=None, false=None)
        except Exception as e:
            raise SexpReadError(
                f"Failed to parse S-expression: {e}", span=self._span()
            ) from e
        return self.read_program(form)

    def read_program(self, form: Any) -> A.Program:
        if _head(form) != "program":
            raise self._error("expected (program ...)", form)
        directives: List[A.Node] = []
        declarations: List[A.Node] = []
        definitions: List[A.Node] = []
        for item in form[1:]:
            head = _head(item)
            if head in _DIRECTIVES:
                directives.append(self._read_directive(item))
            elif head in _DECLARATIONS:
                declarations.append(self._read_declaration(item))
            elif head in _DEFINITIONS:
                definitions.append(self._read_definition(item))
            else:
                raise self._error("not a program item", item)
        program = self._node(
            A.Program,
            directives=tuple(directives),
            declarations=tuple(declarations),
            definitions=tuple(definitions),
        )
        logger.debug(
            "read %s: %d directives, %d declarations, %d definitions",
            self.source, len(directives), len(declarations), len(definitions),
        )
        return program

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _node(self, cls: type, *args: Any, **kwargs: Any) -> Any:
        return cls(*args, id=next(self._ids), loc=self._loc, **kwargs)

    def _span(self) -> SourceSpan:
        return SourceSpan(file=self.source)

    def _error(self, message: str, form: Any) -> SexpReadError:
        return SexpReadError(message, span=self._span(), form=_dump(form))

    def _arity(self, form: List[Any], low: int, high: int) -> None:
        n = len(form) - 1
        if not low <= n <= high:
            raise self._error(
                f"'{form[0]}' takes {low}..{high} arguments, got {n}", form
            )

    def _split_options(
        self, rest: List[Any], valued: Tuple[str, ...], flags: Tuple[str, ...] = ()
    ) -> Tuple[Dict[str, Any], List[Any]]:
        """Separate ``:key VALUE`` / ``:flag`` options from positional forms."""
        options: Dict[str, Any] = {}
        positional: List[Any] = []
        items = iter(rest)
        for item in items:
            key = _keyword(item)
            if key is None:
                positional.append(item)
            elif key in valued:
                try:
                    options[key] = next(items)
                except StopIteration:
                    raise self._error(f"option :{key} needs a value", rest) from None
            elif key in flags:
                options[key] = True
            else:
                raise self._error(f"unknown option :{key}", rest)
        return options, positional

    def _read_params(self, form: Any) -> Tuple[A.Parameter, ...]:
        if not isinstance(form, list):
            raise self._error("expected a parameter list", form)
        params = []
        for p in form:
            if isinstance(p, list):
                if len(p) != 2:
                    raise self._error("parameter must be (NAME TYPE)", p)
                params.append(self._node(A.Parameter, _text(p[0]), self.read_expression(p[1])))
            else:
                params.append(self._node(A.Parameter, _text(p)))
        return tuple(params)

    def _optional(self, form: Any) -> Optional[Any]:
        return None if _is_symbol(form) and _sym_name(form) == "_" else form

    # ------------------------------------------------------------------
    # directives, declarations, definitions
    # ------------------------------------------------------------------

    def _read_directive(self, form: List[Any]) -> A.Node:
        head = _head(form)
        if head == "pragma":
            self._arity(form, 2, 2)
            return self._node(
                A.Pragma, _text(form[1]), self._node(A.Version, _version_text(form[2]))
            )
        self._arity(form, 1, 1)
        return self._node(A.Include, _text(form[1]))

    def _read_declaration(self, form: List[Any]) -> A.Node:
        head = _head(form)
        if head == "import":
            self._arity(form, 1, 1)
            return self._node(A.Import, _text(form[1]))
        if head == "export":
            return self._node(A.Export, tuple(_text(n) for n in form[1:]))
        if head in ("external", "witness"):
            return self._read_signature(form, A.External if head == "external" else A.Witness)
        if head == "ledger":
            self._arity(form, 1, 2)
            ty = self.read_expression(form[2]) if len(form) == 3 else None
            return self._node(A.Ledger, _text(form[1]), ty)
        if head == "constructor":
            self._arity(form, 1, 10_000)
            return self._node(
                A.Constructor,
                self._read_params(form[1]),
                self._node(A.Block, tuple(self.read_statement(s) for s in form[2:])),
            )
        if head == "contract":
            self._arity(form, 1, 10_000)
            circuits = []
            for sig in form[2:]:
                if _head(sig) != "circuit":
                    raise self._error("contract members are (circuit ...) signatures", sig)
                circuits.append(self._read_signature(sig, A.External))
            return self._node(A.Contract, _text(form[1]), tuple(circuits))
        if head == "struct":
            self._arity(form, 1, 10_000)
            fields = []
            for f in form[2:]:
                if not isinstance(f, list) or len(f) != 2:
                    raise self._error("struct field must be (NAME TYPE)", f)
                fields.append(self._node(A.StructField, _text(f[0]), self.read_expression(f[1])))
            return self._node(A.Struct, _text(form[1]), tuple(fields))
        # enum
        self._arity(form, 1, 10_000)
        return self._node(A.Enum, _text(form[1]), tuple(_text(v) for v in form[2:]))

    def _read_signature(self, form: List[Any], cls: type) -> A.Node:
        self._arity(form, 2, 3)
        result = self.read_expression(form[3]) if len(form) == 4 else None
        return self._node(cls, _text(form[1]), self._read_params(form[2]), result)

    def _read_definition(self, form: List[Any]) -> A.Node:
        head = _head(form)
        self._arity(form, 1, 10_000)
        if head == "module":
            return self._node(
                A.Module, _text(form[1]), tuple(self._read_module_item(i) for i in form[2:])
            )
        if len(form) < 3:
            raise self._error("circuit needs a parameter list", form)
        options, body = self._split_options(
            form[3:], valued=("returns",), flags=("export", "pure")
        )
        result = options.get("returns")
        return self._node(
            A.Circuit,
            _text(form[1]),
            self._read_params(form[2]),
            self.read_expression(result) if result is not None else None,
            self._node(A.Block, tuple(self.read_statement(s) for s in body)),
            exported=bool(options.get("export", False)),
            pure=bool(options.get("pure", False)),
        )

    def _read_module_item(self, form: Any) -> A.Node:
        head = _head(form)
        if head in _DIRECTIVES:
            return self._read_directive(form)
        if head in _DECLARATIONS:
            return self._read_declaration(form)
        if head in _DEFINITIONS:
            return self._read_definition(form)
        if head in _STATEMENTS:
            return self.read_statement(form)
        raise self._error("not a module item", form)

    # ------------------------------------------------------------------
    # statements
    # ------------------------------------------------------------------

    def read_statement(self, form: Any) -> A.Node:
        reader = self._statement_readers.get(_head(form) or "")
        if reader is None:
            raise self._error("not a statement", form)
        return reader(form)

    def _read_var(self, form: List[Any]) -> A.Node:
        self._arity(form, 1, 4)
        options, rest = self._split_options(form[2:], valued=("type",))
        if len(rest) > 1:
            raise self._error("var takes at most one initializer", form)
        value = self.read_expression(rest[0]) if rest else None
        ty = self.read_expression(options["type"]) if "type" in options else None
        return self._node(A.Var, _text(form[1]), value, ty)

    def _read_const(self, form: List[Any]) -> A.Node:
        self._arity(form, 2, 4)
        options, rest = self._split_options(form[2:], valued=("type",))
        if len(rest) != 1:
            raise self._error("const takes exactly one initializer", form)
        ty = self.read_expression(options["type"]) if "type" in options else None
        return self._node(A.Const, _text(form[1]), self.read_expression(rest[0]), ty)

    def _read_assign(self, form: List[Any]) -> A.Node:
        self._arity(form, 2, 3)
        operator = A.AssignOperator.SIMPLE
        if len(form) == 4:
            operator = _ASSIGN_OPERATORS.get(_text(form[3]))
            if operator is None:
                raise self._error(f"unknown assignment operator {form[3]!r}", form)
        return self._node(
            A.Assign, self.read_expression(form[1]), self.read_expression(form[2]), operator
        )

    def _read_return(self, form: List[Any]) -> A.Node:
        self._arity(form, 0, 1)
        value = self.read_expression(form[1]) if len(form) == 2 else None
        return self._node(A.Return, value)

    def _read_if(self, form: List[Any]) -> A.Node:
        self._arity(form, 2, 3)
        else_branch = self.read_statement(form[3]) if len(form) == 4 else None
        return self._node(
            A.If, self.read_expression(form[1]), self.read_statement(form[2]), else_branch
        )

    def _read_for(self, form: List[Any]) -> A.Node:
        self._arity(form, 4, 4)
        init, cond, update = (self._optional(f) for f in form[1:4])
        return self._node(
            A.For,
            self.read_statement(form[4]),
            init=self.read_statement(init) if init is not None else None,
            condition=self.read_expression(cond) if cond is not None else None,
            update=self.read_statement(update) if update is not None else None,
        )

    def _read_assert(self, form: List[Any]) -> A.Node:
        self._arity(form, 1, 2)
        message = _text(form[2]) if len(form) == 3 else None
        return self._node(A.Assert, self.read_expression(form[1]), message)

    def _read_block(self, form: List[Any]) -> A.Node:
        return self._node(A.Block, tuple(self.read_statement(s) for s in form[1:]))

    # ------------------------------------------------------------------
    # expressions
    # ------------------------------------------------------------------

    def read_expression(self, form: Any) -> A.Node:
        if isinstance(form, bool):
            return self._node(A.Bool, form)
        if isinstance(form, int):
            if form < 0:
                raise self._error("natural-number literals cannot be negative", form)
            return self._node(A.Nat, form)
        if _is_symbol(form):
            return self._read_atom(_sym_name(form))
        if isinstance(form, str):
            return self._node(A.Str, form)
        if isinstance(form, list) and form:
            return self._read_compound(form)
        raise self._error("not an expression", form)

    def _read_atom(self, name: str) -> A.Node:
        if name in ("true", "false"):
            return self._node(A.Bool, name == "true")
        type_cls = _TYPE_ATOMS.get(name)
        if type_cls is not None:
            return self._node(type_cls)
        return self._node(A.Identifier, name)

    def _read_compound(self, form: List[Any]) -> A.Node:
        head = _head(form)
        if head is None:
            raise self._error("expression form must start with a symbol", form)
        op = _BINARY_OPERATORS.get(head)
        if op is not None:
            self._arity(form, 2, 2)
            return self._node(
                A.Binary, self.read_expression(form[1]), self.read_expression(form[2]), op
            )
        if head == "?":
            self._arity(form, 3, 3)
            return self._node(A.Conditional, *(self.read_expression(f) for f in form[1:]))
        if head == "cast":
            self._arity(form, 2, 2)
            return self._node(A.Cast, self.read_expression(form[1]), self.read_expression(form[2]))
        if head == "index":
            self._arity(form, 2, 2)
            return self._node(
                A.IndexAccess, self.read_expression(form[1]), self.read_expression(form[2])
            )
        if head in ("member", "."):
            self._arity(form, 2, 2)
            return self._node(A.MemberAccess, self.read_expression(form[1]), _text(form[2]))
        if head == "call":
            self._arity(form, 1, 10_000)
            return self._node(
                A.FunctionCall,
                self.read_expression(form[1]),
                tuple(self.read_expression(a) for a in form[2:]),
            )
        if head == "version":
            self._arity(form, 1, 1)
            return self._node(A.Version, _version_text(form[1]))
        if head == "Vector":
            self._arity(form, 2, 2)
            if not isinstance(form[1], int) or isinstance(form[1], bool) or form[1] < 0:
                raise self._error("vector size must be a natural number", form)
            if form[1] > MAX_VECTOR_LENGTH:
                raise self._error("vector size exceeds 2**128 - 1", form)
            return self._node(A.TypeVector, form[1], self.read_expression(form[2]))
        if head == "type":
            self._arity(form, 1, 1)
            return self._node(A.TypeRef, _text(form[1]))
        raise self._error(f"unknown expression form '{head}'", form)


def _version_text(obj: Any) -> str:
    if isinstance(obj, (int, float)) and not isinstance(obj, bool):
        return str(obj)
    return _text(obj)


def loads(
    text: str,
    source: str = "<string>",
    ids: Optional[Iterator[int]] = None,
) -> A.Program:
    """Read one ``(program ...)`` form from *text*."""
    return SexpReader(source, ids).read_text(text)


def load(path: Union[str, Path]) -> A.Program:
    """Read a program from a file; its path becomes the location source."""
    p = Path(path)
    return SexpReader(str(p)).read_text(p.read_text(encoding="utf-8"))
