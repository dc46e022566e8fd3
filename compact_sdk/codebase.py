"""
Multi-file codebase container.

A ``Codebase`` collects the programs of a project while it is *open*.
``seal()`` resolves the project in one go and returns a read-only
``SealedCodebase``:

1. every file gets a *file-level table* binding its top-level circuits
   (typed by their declared result type) and its structs and enums;
2. ``import NAME`` declarations naming another file of the codebase copy
   that file's file-level entries into the importer's file-level table;
3. every program gets its scope tree from ``build_symbol_table``, with
   its file-level table as the parent scope.

All nodes are indexed by id as files are added, so a sealed codebase can
answer "which node is this", "what encloses it" and "which file is it
in" for any id.  Node ids must be unique across the codebase; a node
object shared within one tree is indexed once.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Optional, Tuple, Type

from compact_sdk import ast as A
from compact_sdk import sexp
from compact_sdk.errors import (
    CodebaseSealedError,
    DuplicateFileError,
    DuplicateNodeIdError,
    SemanticError,
    SourceSpan,
    UnknownFileError,
)
from compact_sdk.inference import infer_expr
from compact_sdk.scopes import BuilderConfig, build_symbol_table
from compact_sdk.symbol_table import SymbolTable
from compact_sdk.traversal import NewScope, Symbol, classify, walk_scope
from compact_sdk.type_system import UNKNOWN, CompactType

__all__ = ["SourceFile", "NodeStorage", "Codebase", "SealedCodebase"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceFile:
    fname: str
    program: A.Program


class NodeStorage:
    """Id index over every node reachable through ``children()``."""

    def __init__(self) -> None:
        self._nodes: Dict[int, A.Node] = {}
        self._parents: Dict[int, Optional[int]] = {}
        self._files: Dict[int, str] = {}

    def add_program(self, fname: str, program: A.Program) -> int:
        """Index *program*; returns the number of nodes added.

        A node object reached twice is indexed once, under the parent it
        was first reached from.  Nothing is indexed if two distinct nodes
        share an id.
        """
        pending: List[Tuple[A.Node, Optional[int]]] = []
        seen: Dict[int, A.Node] = {}
        stack: List[Tuple[A.Node, Optional[int]]] = [(program, None)]
        while stack:
            node, parent = stack.pop()
            if seen.get(node.id) is node:
                continue
            if node.id in self._nodes or node.id in seen:
                raise DuplicateNodeIdError(
                    node.id, fname, span=SourceSpan.from_node(node)
                )
            seen[node.id] = node
            pending.append((node, parent))
            stack.extend((child, node.id) for child in reversed(node.children()))

        for node, parent in pending:
            self._nodes[node.id] = node
            self._parents[node.id] = parent
            self._files[node.id] = fname
        return len(pending)

    def find_node(self, node_id: int) -> Optional[A.Node]:
        return self._nodes.get(node_id)

    def find_parent_node(self, node_id: int) -> Optional[A.Node]:
        parent = self._parents.get(node_id)
        return self._nodes.get(parent) if parent is not None else None

    def file_of(self, node_id: int) -> Optional[str]:
        return self._files.get(node_id)

    def nodes(self) -> Iterator[A.Node]:
        """All indexed nodes: files in insertion order, each pre-order."""
        return iter(self._nodes.values())

    def __len__(self) -> int:
        return len(self._nodes)


class Codebase:
    """The open phase: files can be added until ``seal`` is called."""

    def __init__(self) -> None:
        self._files: Dict[str, SourceFile] = {}
        self._storage = NodeStorage()
        self._ids = itertools.count(1)
        self._sealed = False

    def add_file(self, fname: str, program: A.Program) -> SourceFile:
        if self._sealed:
            raise CodebaseSealedError(f"add '{fname}'")
        if fname in self._files:
            raise DuplicateFileError(fname)
        count = self._storage.add_program(fname, program)
        source = SourceFile(fname, program)
        self._files[fname] = source
        logger.debug("added %s (%d nodes)", fname, count)
        return source

    def add_source(self, fname: str, text: str) -> SourceFile:
        """Read *text* as an S-expression program and add it.

        Ids come from a counter shared by every file added this way.
        """
        if self._sealed:
            raise CodebaseSealedError(f"add '{fname}'")
        return self.add_file(fname, sexp.loads(text, source=fname, ids=self._ids))

    @property
    def files(self) -> List[str]:
        return list(self._files)

    def __len__(self) -> int:
        return len(self._files)

    def seal(self, config: Optional[BuilderConfig] = None) -> SealedCodebase:
        """Resolve every file and return the sealed view.

        The open codebase cannot be used afterwards.
        """
        if self._sealed:
            raise CodebaseSealedError("seal")

        local_tables = {
            fname: _file_level_table(source) for fname, source in self._files.items()
        }
        file_tables: Dict[str, SymbolTable] = {}
        import_targets: Dict[int, str] = {}
        for fname, source in self._files.items():
            table = _copy_table(local_tables[fname])
            for imp in source.program.imports():
                if imp.name not in local_tables:
                    logger.debug("%s: import %s is not part of the codebase", fname, imp.name)
                    continue
                import_targets[imp.id] = imp.name
                _link_import(table, local_tables[imp.name], imp)
            file_tables[fname] = table

        symbol_tables: Dict[str, SymbolTable] = {}
        for fname, source in self._files.items():
            symbol_tables[fname] = build_symbol_table(
                source.program, parent=file_tables[fname], config=config
            )

        self._sealed = True
        logger.info(
            "sealed codebase: %d files, %d nodes", len(self._files), len(self._storage)
        )
        return SealedCodebase(
            dict(self._files), self._storage, file_tables, symbol_tables, import_targets
        )


def _file_level_table(source: SourceFile) -> SymbolTable:
    table = SymbolTable(name=f"<file {source.fname}>")
    program = source.program
    entries: List[Tuple[A.Node, Optional[A.Expression]]] = [
        (circuit, circuit.result) for circuit in program.circuits()
    ]
    entries.extend((decl, None) for decl in program.structs())
    entries.extend((decl, None) for decl in program.enums())
    for node, result in entries:
        try:
            ty = infer_expr(result, table) if result is not None else UNKNOWN
            table.insert(node.name, ty, node_id=node.id, loc=node.loc)
        except SemanticError as err:
            err.attach(node.name, SourceSpan.from_node(node))
            raise
    return table


def _copy_table(table: SymbolTable) -> SymbolTable:
    copy = SymbolTable(name=table.name)
    for entry in table.entries():
        copy.insert(entry.name, entry.type, node_id=entry.node_id, loc=entry.loc)
    return copy


def _link_import(table: SymbolTable, imported: SymbolTable, imp: A.Import) -> None:
    for entry in imported.entries():
        try:
            table.insert(entry.name, entry.type, node_id=entry.node_id, loc=entry.loc)
        except SemanticError as err:
            err.attach(entry.name, SourceSpan.from_node(imp))
            raise
    logger.debug("%s: linked %d symbols from %s", table.name, len(imported), imp.name)


class SealedCodebase:
    """Read-only view of a resolved codebase."""

    def __init__(
        self,
        files: Dict[str, SourceFile],
        storage: NodeStorage,
        file_tables: Dict[str, SymbolTable],
        symbol_tables: Dict[str, SymbolTable],
        import_targets: Dict[int, str],
    ) -> None:
        self._files = files
        self._storage = storage
        self._file_tables = file_tables
        self._symbol_tables = symbol_tables
        self._import_targets = import_targets

    @property
    def files(self) -> List[str]:
        return list(self._files)

    def programs(self) -> Iterator[A.Program]:
        return (source.program for source in self._files.values())

    def source_file(self, fname: str) -> SourceFile:
        try:
            return self._files[fname]
        except KeyError:
            raise UnknownFileError(fname) from None

    def symbol_table(self, fname: str) -> SymbolTable:
        try:
            return self._symbol_tables[fname]
        except KeyError:
            raise UnknownFileError(fname) from None

    def file_table(self, fname: str) -> SymbolTable:
        try:
            return self._file_tables[fname]
        except KeyError:
            raise UnknownFileError(fname) from None

    # -- node storage ----------------------------------------------------

    def find_node(self, node_id: int) -> Optional[A.Node]:
        return self._storage.find_node(node_id)

    def find_parent_node(self, node_id: int) -> Optional[A.Node]:
        return self._storage.find_parent_node(node_id)

    def find_node_file(self, node_id: int) -> Optional[SourceFile]:
        fname = self._storage.file_of(node_id)
        return self._files[fname] if fname is not None else None

    def parent_container(self, node_id: int) -> Optional[A.Node]:
        """Nearest enclosing ``Circuit``, ``Constructor`` or ``Module``."""
        node = self._storage.find_parent_node(node_id)
        while node is not None:
            if isinstance(node, (A.Circuit, A.Constructor, A.Module)):
                return node
            node = self._storage.find_parent_node(node.id)
        return None

    def children_matching(
        self, node_id: int, predicate: Callable[[A.Node], bool]
    ) -> List[A.Node]:
        """Nodes in the subtree of *node_id* (itself included) matching
        *predicate*, pre-order."""
        root = self._storage.find_node(node_id)
        if root is None:
            return []
        result = []
        stack = [root]
        while stack:
            node = stack.pop()
            if predicate(node):
                result.append(node)
            stack.extend(reversed(node.children()))
        return result

    def nodes_of_type(self, *classes: Type[A.Node]) -> Iterator[A.Node]:
        return (n for n in self._storage.nodes() if isinstance(n, classes))

    def assert_nodes(self) -> Iterator[A.Assert]:
        return self.nodes_of_type(A.Assert)

    def for_nodes(self) -> Iterator[A.For]:
        return self.nodes_of_type(A.For)

    def import_target(self, import_id: int) -> Optional[str]:
        """File an ``Import`` node was linked to, if any."""
        return self._import_targets.get(import_id)

    def symbol_type_by_id(self, node_id: int) -> Optional[CompactType]:
        """Type bound by the declaration with id *node_id*."""
        source = self.find_node_file(node_id)
        if source is None:
            return None
        entry = self._file_tables[source.fname].resolve_id(node_id)
        if entry is None:
            entry = self._symbol_tables[source.fname].resolve_id(node_id)
        return entry.type if entry is not None else None

    def reference_type(self, node_id: int) -> Optional[CompactType]:
        """Type of the declaration an ``Identifier`` refers to.

        Scopes are searched from the innermost one enclosing the
        reference outwards; names bound only at file level (local
        circuits and imports) are looked up last.
        """
        ref = self._storage.find_node(node_id)
        if not isinstance(ref, A.Identifier):
            return None
        scope = self._storage.find_parent_node(node_id)
        while scope is not None:
            kind = classify(scope)
            if isinstance(kind, NewScope) or isinstance(scope, A.Program):
                decls = [
                    k.node
                    for k in walk_scope(kind)
                    if isinstance(k, Symbol) and k.declares_symbol and k.name == ref.name
                ]
                for decl in decls:
                    ty = self.symbol_type_by_id(decl.id)
                    if ty is not None:
                        return ty
            scope = self._storage.find_parent_node(scope.id)
        fname = self._storage.file_of(node_id)
        return self._file_tables[fname].lookup(ref.name) if fname is not None else None
