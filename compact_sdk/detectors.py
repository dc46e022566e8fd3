"""
Shipped detectors.

``assertion-error-message-verbose``
    ``assert`` statements whose message is missing, blank or shorter
    than three characters.

``array-loop-bound-check``
    Vector index accesses inside a ``for`` loop that can run past the
    vector's length: a literal index ``>= length``, or the loop counter
    as the index when the loop bound exceeds the length.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Set, Tuple, Type

from compact_sdk import ast as A
from compact_sdk.codebase import SealedCodebase
from compact_sdk.detector import Detector, DetectorResult, ReportTemplate, container_extra
from compact_sdk.type_system import VectorType

__all__ = [
    "AssertionErrorMessageVerbose",
    "ArrayLoopBoundCheck",
    "DETECTORS",
]

logger = logging.getLogger(__name__)

#: Messages shorter than this are flagged.
MIN_ASSERT_MESSAGE_LENGTH = 3


class AssertionErrorMessageVerbose(Detector):

    id = "assertion-error-message-verbose"
    uid = "3HgyHb"
    description = (
        "Detects assert statements whose error message does not tell users "
        "what went wrong."
    )
    severity = "low"
    tags = ("audit", "reportable", "compact")
    template = ReportTemplate(
        title_single_instance="Unhelpful Assertion Error Message",
        title_multiple_instance="Unhelpful Assertion Error Messages",
        opening=(
            "Assert statements should give a clear, human-readable reason "
            "when they fail."
        ),
        body_single_file_single_instance=(
            "In `$file_name`, an assert statement in the `$PARENT_NAME` "
            "$PARENT_TYPE on line $instance_line has a missing or too short "
            "error message."
        ),
        body_single_file_multiple_instance=(
            "In `$file_name`, multiple assert statements have missing or too "
            "short error messages."
        ),
        body_multiple_file_multiple_instance=(
            "Across $total_files files, multiple assert statements have "
            "missing or too short error messages."
        ),
        body_list_item_intro="The following assert statements were found:",
        body_list_item_single_file=(
            "- In `$PARENT_NAME` $PARENT_TYPE on line $instance_line"
        ),
        body_list_item_multiple_file=(
            "- In `$PARENT_NAME` $PARENT_TYPE on line $instance_line of "
            "`$file_name`"
        ),
        closing=(
            "Give every assert a concise message that explains the failed "
            "condition without exposing internal details."
        ),
    )

    def check(self, codebase: SealedCodebase) -> Optional[List[DetectorResult]]:
        results = [
            DetectorResult.at(codebase, node, container_extra(codebase, node.id))
            for node in codebase.assert_nodes()
            if _weak_message(node.message)
        ]
        return results or None


def _weak_message(message: Optional[str]) -> bool:
    return message is None or len(message.strip()) < MIN_ASSERT_MESSAGE_LENGTH


class ArrayLoopBoundCheck(Detector):

    id = "array-loop-bound-check"
    uid = "3fTuAe"
    description = (
        "Detects vector index accesses within loops that can exceed the "
        "vector's length."
    )
    severity = "medium"
    tags = ("audit", "reportable", "compact")
    template = ReportTemplate(
        title_single_instance="Potential Out-of-Bounds Array Index Access Detected",
        title_multiple_instance="Potential Out-of-Bounds Array Index Accesses Detected",
        opening=(
            "Accessing vector elements outside their valid index range fails "
            "at runtime.  This typically happens when a loop iterates beyond "
            "the vector's length."
        ),
        body_single_file_single_instance=(
            "In `$file_name`, a potential out-of-bounds access was detected in "
            "the `$PARENT_NAME` $PARENT_TYPE on line $instance_line.  The "
            "access `$ARRAY_INDEX_ACCESS` may exceed the vector's length."
        ),
        body_single_file_multiple_instance=(
            "In `$file_name`, multiple potential out-of-bounds accesses were "
            "detected."
        ),
        body_multiple_file_multiple_instance=(
            "Across $total_files files, multiple potential out-of-bounds "
            "accesses were detected."
        ),
        body_list_item_intro="The following accesses were found:",
        body_list_item_single_file=(
            "- `$ARRAY_INDEX_ACCESS` in the `$PARENT_NAME` $PARENT_TYPE on "
            "line $instance_line"
        ),
        body_list_item_multiple_file=(
            "- `$ARRAY_INDEX_ACCESS` in the `$PARENT_NAME` $PARENT_TYPE on "
            "line $instance_line of `$file_name`"
        ),
        closing=(
            "Bound every loop that indexes a vector by the vector's length."
        ),
    )

    def check(self, codebase: SealedCodebase) -> Optional[List[DetectorResult]]:
        results: List[DetectorResult] = []
        flagged: Set[int] = set()
        for loop in codebase.for_nodes():
            bound = loop_bound(loop)
            if bound is None:
                continue
            counter, limit = bound
            accesses = codebase.children_matching(
                loop.id, lambda n: isinstance(n, A.IndexAccess)
            )
            for access in accesses:
                if access.id in flagged or not isinstance(access.array, A.Identifier):
                    continue
                ty = codebase.reference_type(access.array.id)
                if not isinstance(ty, VectorType):
                    continue
                if not _exceeds(access.index, ty.length, counter, limit):
                    continue
                flagged.add(access.id)
                extra = {"ARRAY_INDEX_ACCESS": render_expression(access)}
                extra.update(container_extra(codebase, access.id))
                results.append(DetectorResult.at(codebase, access, extra))
                logger.debug(
                    "%s: %s out of %s", self.id, extra["ARRAY_INDEX_ACCESS"], ty.pretty()
                )
        return results or None


def loop_bound(loop: A.For) -> Optional[Tuple[str, int]]:
    """``(counter, exclusive upper bound)`` for ``i < N`` / ``i <= N``."""
    cond = loop.condition
    if not (
        isinstance(cond, A.Binary)
        and isinstance(cond.left, A.Identifier)
        and isinstance(cond.right, A.Nat)
    ):
        return None
    if cond.operator is A.BinaryOperator.LT:
        return cond.left.name, cond.right.value
    if cond.operator is A.BinaryOperator.LE:
        return cond.left.name, cond.right.value + 1
    return None


def _exceeds(index: A.Expression, length: int, counter: str, limit: int) -> bool:
    if isinstance(index, A.Nat):
        return index.value >= length
    if isinstance(index, A.Identifier) and index.name == counter:
        return limit > length
    return False


def render_expression(expr: A.Expression) -> str:
    """Short source-like text for the expressions an access is built from."""
    if isinstance(expr, A.Identifier):
        return expr.name
    if isinstance(expr, A.Nat):
        return str(expr.value)
    if isinstance(expr, A.IndexAccess):
        return f"{render_expression(expr.array)}[{render_expression(expr.index)}]"
    if isinstance(expr, A.MemberAccess):
        return f"{render_expression(expr.base)}.{expr.member}"
    if isinstance(expr, A.Binary):
        left, right = render_expression(expr.left), render_expression(expr.right)
        return f"{left} {expr.operator.value} {right}"
    return "..."


DETECTORS: Tuple[Type[Detector], ...] = (
    AssertionErrorMessageVerbose,
    ArrayLoopBoundCheck,
)
