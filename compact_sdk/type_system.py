"""
Inferred types of the Compact analysis core.

The set is closed::

    Int | Bool | String | Vector(length, element) | Unknown

``Unknown`` is the default whenever nothing has been determined.  Under
the inference rules ``Unknown`` equals ``Unknown`` and nothing else, so
unknown types propagate without false positives while definite
mismatches between concrete types are still flagged.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

__all__ = [
    "CompactType",
    "IntType",
    "BoolType",
    "StringType",
    "VectorType",
    "UnknownType",
    "INT",
    "BOOL",
    "STRING",
    "UNKNOWN",
    "is_unknown",
    "MAX_VECTOR_LENGTH",
]

#: Vector lengths are 128-bit non-negative integers.
MAX_VECTOR_LENGTH = (1 << 128) - 1


class CompactType(ABC):
    """Base class for inferred types."""

    @abstractmethod
    def pretty(self) -> str:
        """Return a human-readable representation."""
        ...

    def __str__(self) -> str:
        return self.pretty()


@dataclass(frozen=True, slots=True)
class IntType(CompactType):
    def pretty(self) -> str:
        return "Int"


@dataclass(frozen=True, slots=True)
class BoolType(CompactType):
    def pretty(self) -> str:
        return "Bool"


@dataclass(frozen=True, slots=True)
class StringType(CompactType):
    def pretty(self) -> str:
        return "String"


@dataclass(frozen=True, slots=True)
class VectorType(CompactType):
    """Fixed-length vector; ``element`` may itself be a vector."""

    length: int
    element: CompactType

    def __post_init__(self) -> None:
        if not 0 <= self.length <= MAX_VECTOR_LENGTH:
            raise ValueError(f"vector length out of range: {self.length}")

    def pretty(self) -> str:
        return f"Vector<{self.length}, {self.element.pretty()}>"


@dataclass(frozen=True, slots=True)
class UnknownType(CompactType):
    def pretty(self) -> str:
        return "Unknown"


INT = IntType()
BOOL = BoolType()
STRING = StringType()
UNKNOWN = UnknownType()


def is_unknown(ty: CompactType) -> bool:
    return isinstance(ty, UnknownType)
