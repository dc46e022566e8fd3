# compact_sdk/errors.py
"""
Compact SDK Error Types

Every failure raised by the analysis core is a ``CompactError``.  Errors
carry a structured code, a source span and optional notes, and render in
GCC style so hosts can print them verbatim.

Error Hierarchy:
────────────────
┌─────────────────────────────────────────────────────────────────────┐
│  CompactError (base)                                                │
│  ├── ReadError               - S-expression AST input failures      │
│  │   └── SexpReadError                                              │
│  ├── SemanticError           - Scope / type failures                │
│  │   ├── TypeCheckError                                             │
│  │   │   ├── TypeMismatchError                                      │
│  │   │   ├── NotAVectorError                                        │
│  │   │   └── VectorLengthError                                      │
│  │   └── ScopeError                                                 │
│  │       ├── DuplicateSymbolError                                   │
│  │       ├── DuplicateWithoutTypeError                              │
│  │       ├── UndefinedIdentifierError                               │
│  │       └── ScopeDepthExceeded                                     │
│  └── CodebaseError           - Container / storage failures         │
│      ├── DuplicateNodeIdError                                       │
│      ├── UnknownFileError                                           │
│      ├── DuplicateFileError                                         │
│      └── CodebaseSealedError                                        │
└─────────────────────────────────────────────────────────────────────┘

Error Codes:
────────────
``CMPT-NNNN`` where NNNN falls in:
  - 1000-1999: Read errors
  - 2000-2999: Type errors
  - 3000-3999: Scope errors
  - 9000-9999: Codebase / internal errors
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto, unique
from typing import Any, Dict, List, Optional

__all__ = [
    "ErrorSeverity",
    "ErrorPhase",
    "ErrorCategory",
    "ErrorCode",
    "CompactErrorCodes",
    "SourceSpan",
    "ErrorNote",
    "ErrorMessage",
    "CompactError",
    "ReadError",
    "SexpReadError",
    "SemanticError",
    "TypeCheckError",
    "TypeMismatchError",
    "NotAVectorError",
    "VectorLengthError",
    "ScopeError",
    "DuplicateSymbolError",
    "DuplicateWithoutTypeError",
    "UndefinedIdentifierError",
    "ScopeDepthExceeded",
    "CodebaseError",
    "DuplicateNodeIdError",
    "UnknownFileError",
    "DuplicateFileError",
    "CodebaseSealedError",
]


# ═══════════════════════════════════════════════════════════════════════════════
# SEVERITY AND CLASSIFICATION
# ═══════════════════════════════════════════════════════════════════════════════

@unique
class ErrorSeverity(Enum):
    """Severity of a reported error.  Every core error is fatal to its pass."""

    ERROR = "error"


@unique
class ErrorPhase(Enum):
    """Pipeline phase where the error occurred."""

    READ = "read"
    SEMANTIC = "semantic"
    CODEBASE = "codebase"


@unique
class ErrorCategory(Enum):
    """Fine-grained categories for filtering and statistics."""

    MALFORMED_INPUT = auto()

    TYPE_MISMATCH = auto()
    NOT_A_VECTOR = auto()
    VECTOR_LENGTH = auto()

    DUPLICATE_SYMBOL = auto()
    DUPLICATE_WITHOUT_TYPE = auto()
    UNDEFINED_IDENTIFIER = auto()
    SCOPE_DEPTH = auto()

    DUPLICATE_NODE_ID = auto()
    UNKNOWN_FILE = auto()
    DUPLICATE_FILE = auto()
    CODEBASE_SEALED = auto()


class ErrorCode:
    """
    Structured error code of the form ``CMPT-NNNN``.

    Codes compare equal to their string rendering so tests and hosts can
    match on ``err.code == "CMPT-3001"``.
    """

    __slots__ = ("prefix", "number", "category", "phase", "default_severity")

    def __init__(
        self,
        prefix: str,
        number: int,
        category: ErrorCategory,
        phase: ErrorPhase,
        default_severity: ErrorSeverity = ErrorSeverity.ERROR,
    ) -> None:
        self.prefix = prefix
        self.number = number
        self.category = category
        self.phase = phase
        self.default_severity = default_severity

    @property
    def code(self) -> str:
        return f"{self.prefix}-{self.number:04d}"

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"ErrorCode({self.code!r}, {self.category.name})"

    def __hash__(self) -> int:
        return hash((self.prefix, self.number))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ErrorCode):
            return self.prefix == other.prefix and self.number == other.number
        if isinstance(other, str):
            return self.code == other
        return False


class CompactErrorCodes:
    """Predefined error codes."""

    MALFORMED_SEXP = ErrorCode(
        "CMPT", 1001, ErrorCategory.MALFORMED_INPUT, ErrorPhase.READ
    )

    TYPE_MISMATCH = ErrorCode(
        "CMPT", 2001, ErrorCategory.TYPE_MISMATCH, ErrorPhase.SEMANTIC
    )
    NOT_A_VECTOR = ErrorCode(
        "CMPT", 2002, ErrorCategory.NOT_A_VECTOR, ErrorPhase.SEMANTIC
    )
    VECTOR_LENGTH = ErrorCode(
        "CMPT", 2003, ErrorCategory.VECTOR_LENGTH, ErrorPhase.SEMANTIC
    )

    DUPLICATE_SYMBOL = ErrorCode(
        "CMPT", 3001, ErrorCategory.DUPLICATE_SYMBOL, ErrorPhase.SEMANTIC
    )
    DUPLICATE_WITHOUT_TYPE = ErrorCode(
        "CMPT", 3002, ErrorCategory.DUPLICATE_WITHOUT_TYPE, ErrorPhase.SEMANTIC
    )
    UNDEFINED_IDENTIFIER = ErrorCode(
        "CMPT", 3003, ErrorCategory.UNDEFINED_IDENTIFIER, ErrorPhase.SEMANTIC
    )
    SCOPE_DEPTH_EXCEEDED = ErrorCode(
        "CMPT", 3004, ErrorCategory.SCOPE_DEPTH, ErrorPhase.SEMANTIC
    )

    DUPLICATE_NODE_ID = ErrorCode(
        "CMPT", 9001, ErrorCategory.DUPLICATE_NODE_ID, ErrorPhase.CODEBASE
    )
    UNKNOWN_FILE = ErrorCode(
        "CMPT", 9002, ErrorCategory.UNKNOWN_FILE, ErrorPhase.CODEBASE
    )
    DUPLICATE_FILE = ErrorCode(
        "CMPT", 9003, ErrorCategory.DUPLICATE_FILE, ErrorPhase.CODEBASE
    )
    CODEBASE_SEALED = ErrorCode(
        "CMPT", 9004, ErrorCategory.CODEBASE_SEALED, ErrorPhase.CODEBASE
    )


# ═══════════════════════════════════════════════════════════════════════════════
# SOURCE SPANS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SourceSpan:
    """A span of source text with start and end positions."""

    file: str = ""
    line: int = 0
    column: int = 0
    end_line: int = 0
    end_column: int = 0

    def __post_init__(self) -> None:
        if self.end_line == 0:
            object.__setattr__(self, "end_line", self.line)
        if self.end_column == 0:
            object.__setattr__(self, "end_column", self.column)

    @classmethod
    def from_node(cls, node: Any) -> "SourceSpan":
        """Create a span from anything carrying an AST ``Location``."""
        loc = getattr(node, "loc", node)
        return cls(
            file=getattr(loc, "source", ""),
            line=getattr(loc, "start_line", 0),
            column=getattr(loc, "start_column", 0),
            end_line=getattr(loc, "end_line", 0),
            end_column=getattr(loc, "end_column", 0),
        )

    @property
    def is_known(self) -> bool:
        return bool(self.file) or self.line > 0

    def __str__(self) -> str:
        if not self.is_known:
            return "<unknown location>"
        parts = []
        if self.file:
            parts.append(self.file)
        if self.line > 0:
            parts.append(str(self.line))
            if self.column > 0:
                parts.append(str(self.column))
        return ":".join(parts)


# ═══════════════════════════════════════════════════════════════════════════════
# ERROR MESSAGES
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class ErrorNote:
    """Extra context attached to an error, such as a previous definition."""

    message: str
    span: Optional[SourceSpan] = None
    label: str = "note"

    def __str__(self) -> str:
        prefix = f"{self.label}: " if self.label else ""
        if self.span is not None and self.span.is_known:
            return f"{self.span}: {prefix}{self.message}"
        return f"{prefix}{self.message}"


@dataclass
class ErrorMessage:
    """Internal representation of an error before it is printed."""

    code: ErrorCode
    message: str
    span: SourceSpan = field(default_factory=SourceSpan)
    severity: Optional[ErrorSeverity] = None
    notes: List[ErrorNote] = field(default_factory=list)
    hint: str = ""

    def __post_init__(self) -> None:
        if self.severity is None:
            self.severity = self.code.default_severity

    def to_gcc_format(self) -> str:
        severity = self.severity.value if self.severity else "error"
        lines = [f"{self.span}: {severity}: {self.message} [{self.code}]"]
        lines.extend(str(note) for note in self.notes)
        if self.hint:
            lines.append(f"hint: {self.hint}")
        return "\n".join(lines)

    def to_json(self) -> Dict[str, Any]:
        return {
            "code": self.code.code,
            "message": self.message,
            "severity": self.severity.value if self.severity else "error",
            "location": {
                "file": self.span.file,
                "line": self.span.line,
                "column": self.span.column,
                "end_line": self.span.end_line,
                "end_column": self.span.end_column,
            },
            "phase": self.code.phase.value,
            "category": self.code.category.name,
            "notes": [str(note) for note in self.notes],
            "hint": self.hint,
        }


# ═══════════════════════════════════════════════════════════════════════════════
# EXCEPTION CLASSES
# ═══════════════════════════════════════════════════════════════════════════════

class CompactError(Exception):
    """
    Base exception for every error raised by the SDK.

    The structured payload lives in ``error_message``; ``str(err)`` gives
    the GCC-style rendering.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        span: Optional[SourceSpan] = None,
        severity: Optional[ErrorSeverity] = None,
        notes: Optional[List[ErrorNote]] = None,
        hint: str = "",
    ) -> None:
        super().__init__(message)
        self.error_message = ErrorMessage(
            code=code,
            message=message,
            span=span or SourceSpan(),
            severity=severity,
            notes=notes or [],
            hint=hint,
        )

    @property
    def code(self) -> ErrorCode:
        return self.error_message.code

    @property
    def message(self) -> str:
        return self.error_message.message

    @property
    def span(self) -> SourceSpan:
        return self.error_message.span

    @span.setter
    def span(self, value: SourceSpan) -> None:
        self.error_message.span = value

    @property
    def severity(self) -> ErrorSeverity:
        return self.error_message.severity or ErrorSeverity.ERROR

    def add_note(
        self,
        message: str,
        span: Optional[SourceSpan] = None,
        label: str = "note",
    ) -> "CompactError":
        self.error_message.notes.append(ErrorNote(message, span, label))
        return self

    def with_hint(self, hint: str) -> "CompactError":
        self.error_message.hint = hint
        return self

    def to_gcc_format(self) -> str:
        return self.error_message.to_gcc_format()

    def to_json(self) -> Dict[str, Any]:
        return self.error_message.to_json()

    def __str__(self) -> str:
        return self.to_gcc_format()


# ───────────────────────────────────────────────────────────────────────────────
# READ ERRORS
# ───────────────────────────────────────────────────────────────────────────────

class ReadError(CompactError):
    """Error while reading a serialized AST."""


class SexpReadError(ReadError):
    """Malformed S-expression AST input."""

    def __init__(
        self,
        message: str,
        span: Optional[SourceSpan] = None,
        form: str = "",
    ) -> None:
        super().__init__(
            message=message,
            code=CompactErrorCodes.MALFORMED_SEXP,
            span=span,
        )
        self.form = form
        if form:
            self.add_note(f"in form: {form}")


# ───────────────────────────────────────────────────────────────────────────────
# SEMANTIC ERRORS
# ───────────────────────────────────────────────────────────────────────────────

class SemanticError(CompactError):
    """
    Error raised by scope construction or type inference.

    ``symbol`` names the declaration that was being processed when the
    error surfaced; the scope builder fills it in (together with the
    declaration's span) when the inferencer could not know it.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        span: Optional[SourceSpan] = None,
        symbol: str = "",
        **kwargs: Any,
    ) -> None:
        super().__init__(message=message, code=code, span=span, **kwargs)
        self.symbol = symbol

    def attach(self, symbol: str, span: SourceSpan) -> "SemanticError":
        """Record the enclosing declaration unless already more precise."""
        if not self.symbol:
            self.symbol = symbol
        if not self.span.is_known:
            self.span = span
        return self


class TypeCheckError(SemanticError):
    """Type-related semantic error."""


class TypeMismatchError(TypeCheckError):
    """Two operand types that must agree do not."""

    def __init__(
        self,
        left: Any,
        right: Any,
        span: Optional[SourceSpan] = None,
        context: str = "",
        **kwargs: Any,
    ) -> None:
        ctx = f" in {context}" if context else ""
        super().__init__(
            message=f"Type mismatch{ctx}: '{_pretty(left)}' vs '{_pretty(right)}'",
            code=CompactErrorCodes.TYPE_MISMATCH,
            span=span,
            **kwargs,
        )
        self.left = left
        self.right = right
        self.context = context


class NotAVectorError(TypeCheckError):
    """Index access applied to a value that is not a vector."""

    def __init__(
        self,
        observed: Any,
        span: Optional[SourceSpan] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message=f"Cannot index a value of type '{_pretty(observed)}'",
            code=CompactErrorCodes.NOT_A_VECTOR,
            span=span,
            **kwargs,
        )
        self.observed = observed
        self.with_hint("only Vector values support index access")


class VectorLengthError(TypeCheckError):
    """Vector type whose length is outside ``0 .. 2**128 - 1``."""

    def __init__(
        self,
        length: int,
        span: Optional[SourceSpan] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message=f"Vector length out of range: {length}",
            code=CompactErrorCodes.VECTOR_LENGTH,
            span=span,
            **kwargs,
        )
        self.length = length


class ScopeError(SemanticError):
    """Scope-related semantic error."""


class DuplicateSymbolError(ScopeError):
    """A name is declared twice in one scope with concrete types."""

    def __init__(
        self,
        name: str,
        span: Optional[SourceSpan] = None,
        original_span: Optional[SourceSpan] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message=f"Symbol '{name}' already exists",
            code=CompactErrorCodes.DUPLICATE_SYMBOL,
            span=span,
            symbol=name,
            **kwargs,
        )
        self.name = name
        if original_span is not None and original_span.is_known:
            self.add_note("previously defined here", span=original_span)


class DuplicateWithoutTypeError(ScopeError):
    """A name is declared twice in one scope and neither has a type."""

    def __init__(
        self,
        name: str,
        span: Optional[SourceSpan] = None,
        original_span: Optional[SourceSpan] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message=f"Symbol '{name}' declared again without a type",
            code=CompactErrorCodes.DUPLICATE_WITHOUT_TYPE,
            span=span,
            symbol=name,
            **kwargs,
        )
        self.name = name
        if original_span is not None and original_span.is_known:
            self.add_note("previously declared here", span=original_span)
        self.with_hint(f"annotate one of the declarations of '{name}'")


class UndefinedIdentifierError(ScopeError):
    """An identifier does not resolve in the enclosing scope chain."""

    def __init__(
        self,
        name: str,
        span: Optional[SourceSpan] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message=f"Undefined identifier '{name}'",
            code=CompactErrorCodes.UNDEFINED_IDENTIFIER,
            span=span,
            **kwargs,
        )
        self.name = name


class ScopeDepthExceeded(ScopeError):
    """Scope nesting went deeper than the configured bound."""

    def __init__(
        self,
        limit: int,
        span: Optional[SourceSpan] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message=f"Scope nesting exceeds the configured limit of {limit}",
            code=CompactErrorCodes.SCOPE_DEPTH_EXCEEDED,
            span=span,
            **kwargs,
        )
        self.limit = limit


# ───────────────────────────────────────────────────────────────────────────────
# CODEBASE ERRORS
# ───────────────────────────────────────────────────────────────────────────────

class CodebaseError(CompactError):
    """Error raised by the codebase container."""


class DuplicateNodeIdError(CodebaseError):
    """Two nodes of one program share an identity."""

    def __init__(
        self,
        node_id: int,
        fname: str,
        span: Optional[SourceSpan] = None,
    ) -> None:
        super().__init__(
            message=f"Node id {node_id:#x} is not unique in '{fname}'",
            code=CompactErrorCodes.DUPLICATE_NODE_ID,
            span=span,
        )
        self.node_id = node_id
        self.fname = fname


class UnknownFileError(CodebaseError):
    """A file name that was never added to the codebase."""

    def __init__(self, fname: str) -> None:
        super().__init__(
            message=f"No such file in codebase: '{fname}'",
            code=CompactErrorCodes.UNKNOWN_FILE,
        )
        self.fname = fname


class DuplicateFileError(CodebaseError):
    """A file name that was already added to the codebase."""

    def __init__(self, fname: str) -> None:
        super().__init__(
            message=f"File already in codebase: '{fname}'",
            code=CompactErrorCodes.DUPLICATE_FILE,
        )
        self.fname = fname


class CodebaseSealedError(CodebaseError):
    """An open-phase operation on a codebase that was already sealed."""

    def __init__(self, operation: str) -> None:
        super().__init__(
            message=f"Cannot {operation}: the codebase is sealed",
            code=CompactErrorCodes.CODEBASE_SEALED,
        )
        self.operation = operation


def _pretty(ty: Any) -> str:
    pretty = getattr(ty, "pretty", None)
    return pretty() if callable(pretty) else str(ty)
