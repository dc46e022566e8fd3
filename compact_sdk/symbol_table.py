"""
Per-scope symbol tables.

A ``SymbolTable`` maps names to inferred types for one lexical scope.  It
links to the table of the enclosing scope (``parent``) and owns the
tables of the scopes it encloses (``children``, in traversal order).

``insert`` is the only mutator.  It refines rather than rejects when one
side of a clash is ``Unknown``:

    ==============  ==============  =================================
    existing        incoming        result
    ==============  ==============  =================================
    Unknown         concrete        replaced by the incoming type
    concrete        Unknown         existing binding kept
    Unknown         Unknown         ``DuplicateWithoutTypeError``
    concrete        concrete        ``DuplicateSymbolError``
    ==============  ==============  =================================
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional

from compact_sdk.ast import NO_LOC, Location
from compact_sdk.errors import (
    DuplicateSymbolError,
    DuplicateWithoutTypeError,
    SourceSpan,
)
from compact_sdk.type_system import UNKNOWN, CompactType, is_unknown

__all__ = ["SymbolEntry", "SymbolTable"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SymbolEntry:
    """A name bound to a type, plus where the binding came from."""

    name: str
    type: CompactType
    node_id: Optional[int] = None
    loc: Location = NO_LOC


class SymbolTable:
    """
    Symbol table for one scope.

    ``name`` is informational (the module or circuit that opened the
    scope, ``"<root>"`` otherwise).  The parent does not list a child
    until the child is attached with ``add_child``; the scope builder
    attaches a nested table only once it is complete.
    """

    def __init__(
        self,
        parent: Optional[SymbolTable] = None,
        name: str = "<root>",
    ) -> None:
        self.name = name
        self.parent = parent
        self._symbols: Dict[str, SymbolEntry] = {}
        self._children: List[SymbolTable] = []

    # -- mutation ------------------------------------------------------

    def insert(
        self,
        name: str,
        ty: CompactType = UNKNOWN,
        *,
        node_id: Optional[int] = None,
        loc: Location = NO_LOC,
    ) -> SymbolEntry:
        """Insert *name* or refine its existing binding.

        Returns the entry that is bound after the call.
        """
        existing = self._symbols.get(name)
        if existing is None:
            entry = SymbolEntry(name, ty, node_id, loc)
            self._symbols[name] = entry
            logger.debug("scope %s: bind %s -> %s", self.name, name, ty.pretty())
            return entry

        old_unknown = is_unknown(existing.type)
        new_unknown = is_unknown(ty)
        span = SourceSpan.from_node(loc)
        original_span = SourceSpan.from_node(existing.loc)
        if old_unknown and not new_unknown:
            entry = SymbolEntry(name, ty, node_id, loc)
            self._symbols[name] = entry
            logger.debug("scope %s: refine %s -> %s", self.name, name, ty.pretty())
            return entry
        if new_unknown and not old_unknown:
            logger.debug(
                "scope %s: keep %s -> %s", self.name, name, existing.type.pretty()
            )
            return existing
        if old_unknown and new_unknown:
            raise DuplicateWithoutTypeError(name, span=span, original_span=original_span)
        raise DuplicateSymbolError(name, span=span, original_span=original_span)

    def add_child(self, child: SymbolTable) -> None:
        self._children.append(child)

    # -- queries ---------------------------------------------------------

    def lookup(self, name: str) -> Optional[CompactType]:
        """Type bound to *name* here or in the nearest enclosing scope."""
        entry = self.resolve(name)
        return entry.type if entry is not None else None

    def resolve(self, name: str) -> Optional[SymbolEntry]:
        """Like ``lookup`` but returns the whole entry."""
        table: Optional[SymbolTable] = self
        while table is not None:
            entry = table._symbols.get(name)
            if entry is not None:
                return entry
            table = table.parent
        return None

    def lookup_local(self, name: str) -> Optional[CompactType]:
        entry = self._symbols.get(name)
        return entry.type if entry is not None else None

    def resolve_id(self, node_id: int) -> Optional[SymbolEntry]:
        """Entry bound by declaration *node_id*, searching this scope and
        the scopes nested in it (not the enclosing ones)."""
        worklist: List[SymbolTable] = [self]
        while worklist:
            table = worklist.pop()
            for entry in table._symbols.values():
                if entry.node_id == node_id:
                    return entry
            worklist.extend(reversed(table._children))
        return None

    @property
    def children(self) -> List[SymbolTable]:
        return list(self._children)

    @property
    def depth(self) -> int:
        depth, table = 0, self.parent
        while table is not None:
            depth, table = depth + 1, table.parent
        return depth

    def names(self) -> List[str]:
        return list(self._symbols)

    def entries(self) -> Iterator[SymbolEntry]:
        return iter(self._symbols.values())

    def __contains__(self, name: object) -> bool:
        return name in self._symbols

    def __len__(self) -> int:
        return len(self._symbols)

    # -- rendering -------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Structural snapshot: names, types and nested scopes.

        Parent links, node ids and locations are left out, so two tables
        built from equal ASTs produce equal snapshots.
        """
        return {
            "name": self.name,
            "symbols": {n: e.type.pretty() for n, e in sorted(self._symbols.items())},
            "children": [child.to_dict() for child in self._children],
        }

    def pretty(self, indent: int = 0) -> str:
        pad = "  " * indent
        lines = [f"{pad}scope {self.name}"]
        for name, entry in sorted(self._symbols.items()):
            lines.append(f"{pad}  {name}: {entry.type.pretty()}")
        for child in self._children:
            lines.append(child.pretty(indent + 1))
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"SymbolTable(name={self.name!r}, symbols={len(self._symbols)}, "
            f"children={len(self._children)})"
        )
