"""
Scope construction.

``build_symbol_table`` walks an AST and produces a tree of symbol tables
mirroring its lexical scopes.  Within one scope the walk is the explicit
worklist of ``walk_scope``; the builder recurses only when a ``NewScope``
node opens a nested scope, so recursion depth follows scope nesting and
not tree depth.

Symbols become visible as they are declared: a declaration may use names
declared before it in the same scope (or in any enclosing scope) but not
names declared after it, and never itself.  A nested scope is built to
completion, then attached to its parent, before the parent's remaining
siblings are visited.

Any error aborts the whole pass; the partially built tables are dropped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Union

from compact_sdk import ast as A
from compact_sdk.errors import (
    ScopeDepthExceeded,
    SemanticError,
    SourceSpan,
    UndefinedIdentifierError,
)
from compact_sdk.inference import infer_expr
from compact_sdk.symbol_table import SymbolTable
from compact_sdk.traversal import NewScope, NodeKind, Symbol, classify, walk_scope
from compact_sdk.type_system import UNKNOWN

__all__ = ["BuilderConfig", "ScopeBuilder", "build_symbol_table"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuilderConfig:
    """Tuning knobs for scope construction."""

    #: Type unannotated declarations from their initializer.
    infer_initializers: bool = True
    #: Require every identifier reference to resolve when it is reached.
    check_references: bool = False
    #: Maximum nesting of scopes below the root; ``None`` for no bound.
    max_scope_depth: Optional[int] = None

    def validate(self) -> List[str]:
        """Return a list of validation warnings (empty if valid)."""
        warnings: List[str] = []
        if self.max_scope_depth is not None and self.max_scope_depth < 0:
            warnings.append("max_scope_depth must be non-negative")
        return warnings


DEFAULT_CONFIG = BuilderConfig()


class ScopeBuilder:
    """Builds symbol-table trees according to a ``BuilderConfig``."""

    def __init__(self, config: Optional[BuilderConfig] = None) -> None:
        self.config = config or DEFAULT_CONFIG
        for warning in self.config.validate():
            logger.warning("builder config: %s", warning)

    def build(
        self,
        root: Union[NodeKind, A.Node],
        parent: Optional[SymbolTable] = None,
    ) -> SymbolTable:
        if isinstance(root, A.Node):
            root = classify(root)
        return self._build_scope(root, parent, depth=0)

    def _build_scope(
        self,
        root: NodeKind,
        parent: Optional[SymbolTable],
        depth: int,
    ) -> SymbolTable:
        limit = self.config.max_scope_depth
        if limit is not None and depth > limit:
            raise ScopeDepthExceeded(limit, span=SourceSpan.from_node(root.node))

        table = SymbolTable(parent, name=_scope_name(root.node))
        logger.debug("open scope %s (depth %d)", table.name, depth)
        for kind in walk_scope(root):
            if isinstance(kind, NewScope):
                if kind is root:
                    continue
                table.add_child(self._build_scope(kind, table, depth + 1))
            elif isinstance(kind, Symbol):
                self._visit_symbol(kind, table)
        logger.debug("close scope %s (%d symbols)", table.name, len(table))
        return table

    def _visit_symbol(self, kind: Symbol, table: SymbolTable) -> None:
        node = kind.node
        if not kind.declares_symbol:
            if self.config.check_references and table.lookup(node.name) is None:
                raise UndefinedIdentifierError(node.name, span=SourceSpan.from_node(node))
            return

        expr = node.declared_type_expr(use_initializer=self.config.infer_initializers)
        try:
            ty = infer_expr(expr, table) if expr is not None else UNKNOWN
            table.insert(node.name, ty, node_id=node.id, loc=node.loc)
        except SemanticError as err:
            err.attach(node.name, SourceSpan.from_node(node))
            raise


def _scope_name(node: A.Node) -> str:
    name = getattr(node, "name", None)
    if isinstance(name, str) and name:
        return name
    return f"<{node.node_type_name.lower()}>"


def build_symbol_table(
    root: Union[NodeKind, A.Node],
    parent: Optional[SymbolTable] = None,
    *,
    config: Optional[BuilderConfig] = None,
) -> SymbolTable:
    """Build the scope tree rooted at *root*.

    *root* may be an envelope or a bare node (classified on the spot).
    The returned table is fresh; *parent*, when given, becomes its parent
    link but does not list it as a child.
    """
    return ScopeBuilder(config).build(root, parent)
