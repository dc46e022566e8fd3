"""
compact_sdk/traversal.py
========================

Node classification and traversal for the Compact AST.

Every visited node is wrapped in a ``NodeKind`` envelope:

- ``Symbol``: declares (or references) a name in the enclosing scope
- ``Composite``: structural; its children stay in the enclosing scope
- ``NewScope``: opens a nested scope

Envelopes are computed on demand from ``node.role`` and carry no state of
their own.  Both walkers use an explicit worklist, so arbitrarily deep
expression trees never grow the Python call stack.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Union

from compact_sdk import ast as A

__all__ = [
    "Symbol",
    "Composite",
    "NewScope",
    "NodeKind",
    "classify",
    "children_of",
    "walk_scope",
    "walk",
]


@dataclass(frozen=True, slots=True)
class Symbol:
    node: A.SymbolNode

    @property
    def name(self) -> str:
        return self.node.name

    @property
    def declares_symbol(self) -> bool:
        return self.node.declares_symbol


@dataclass(frozen=True, slots=True)
class Composite:
    node: A.Node


@dataclass(frozen=True, slots=True)
class NewScope:
    node: A.Node


NodeKind = Union[Symbol, Composite, NewScope]

_ENVELOPES = {
    A.NodeRole.SYMBOL: Symbol,
    A.NodeRole.COMPOSITE: Composite,
    A.NodeRole.NEW_SCOPE: NewScope,
}


def classify(node: A.Node) -> NodeKind:
    """Wrap *node* in the envelope matching its role."""
    return _ENVELOPES[node.role](node)


def children_of(kind: NodeKind) -> List[NodeKind]:
    """The envelopes of ``kind.node``'s children, in source order."""
    return [classify(child) for child in kind.node.children()]


def walk_scope(root: NodeKind) -> Iterator[NodeKind]:
    """Yield every envelope that belongs to the scope of *root*.

    The root itself is yielded first.  If it is a ``NewScope`` its
    children are expanded, because they form the scope being walked.
    Any other ``NewScope`` reached is yielded but not expanded: its
    contents belong to a nested scope.

    Siblings come out left to right.  A ``Symbol``'s children are
    scheduled only after the consumer resumes the generator, so a
    declaration is fully handled before anything nested in it.
    """
    worklist: List[NodeKind] = [root]
    while worklist:
        kind = worklist.pop()
        yield kind
        if isinstance(kind, NewScope) and kind is not root:
            continue
        worklist.extend(reversed(children_of(kind)))


def walk(node: A.Node) -> Iterator[NodeKind]:
    """Yield the envelope of every node in the subtree, pre-order.

    Unlike ``walk_scope`` this crosses scope boundaries.
    """
    worklist: List[NodeKind] = [classify(node)]
    while worklist:
        kind = worklist.pop()
        yield kind
        worklist.extend(reversed(children_of(kind)))
