"""
compact_sdk/detector.py
═══════════════════════

Detector framework: checks that run over a ``SealedCodebase`` and
report the source ranges they flag.

Each detector subclasses ``Detector``, declares its metadata as class
attributes and implements ``check``.  Findings are ``DetectorResult``
records; their ``extra`` map fills the ``$NAME`` placeholders of the
detector's ``ReportTemplate``, alongside the built-in ``$file_name``,
``$instance_line`` and ``$total_files``.

Usage
─────
>>> sealed = codebase.seal()
>>> for detector_id, results in run_detectors(sealed, DETECTORS).items():
...     print(detector_id, len(results))
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from string import Template
from typing import (
    Any,
    ClassVar,
    Dict,
    Iterable,
    List,
    Optional,
    Tuple,
    Type,
)

from compact_sdk import ast as A
from compact_sdk.codebase import SealedCodebase

__all__ = [
    "DetectorResult",
    "ReportTemplate",
    "Detector",
    "container_extra",
    "run_detectors",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DetectorResult:
    """One flagged source range."""

    file_path: str
    offset_start: int
    offset_end: int
    extra: Optional[Dict[str, str]] = None
    line: int = 0

    @classmethod
    def at(
        cls,
        codebase: SealedCodebase,
        node: A.Node,
        extra: Optional[Dict[str, str]] = None,
    ) -> "DetectorResult":
        source = codebase.find_node_file(node.id)
        return cls(
            file_path=source.fname if source is not None else node.loc.source,
            offset_start=node.loc.offset_start,
            offset_end=node.loc.offset_end,
            extra=extra,
            line=node.loc.start_line,
        )

    def to_json(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "file": self.file_path,
            "offset_start": self.offset_start,
            "offset_end": self.offset_end,
            "line": self.line,
        }
        if self.extra:
            result["extra"] = dict(self.extra)
        return result


@dataclass(frozen=True)
class ReportTemplate:
    """Report text with ``string.Template`` placeholders."""

    title_single_instance: str
    title_multiple_instance: str
    opening: str
    body_single_file_single_instance: str
    body_single_file_multiple_instance: str
    body_multiple_file_multiple_instance: str
    body_list_item_single_file: str
    body_list_item_multiple_file: str
    closing: str
    body_list_item_intro: str = ""

    def render(self, results: List[DetectorResult]) -> str:
        """Render the report for *results*; empty when there are none."""
        if not results:
            return ""
        files = sorted({r.file_path for r in results})
        first = results[0]
        common = {"total_files": str(len(files)), "file_name": first.file_path}

        def fill(text: str, result: DetectorResult) -> str:
            values = dict(common)
            values["file_name"] = result.file_path
            values["instance_line"] = str(result.line)
            values.update(result.extra or {})
            return Template(text).safe_substitute(values).strip()

        if len(results) == 1:
            lines = [
                self.title_single_instance,
                self.opening,
                fill(self.body_single_file_single_instance, first),
            ]
        else:
            if len(files) == 1:
                body, item = (
                    self.body_single_file_multiple_instance,
                    self.body_list_item_single_file,
                )
            else:
                body, item = (
                    self.body_multiple_file_multiple_instance,
                    self.body_list_item_multiple_file,
                )
            lines = [self.title_multiple_instance, self.opening, fill(body, first)]
            if self.body_list_item_intro:
                lines.append(self.body_list_item_intro)
            lines.extend(fill(item, r) for r in results)
        lines.append(self.closing)
        return "\n\n".join(line.strip() for line in lines if line)


class Detector(ABC):
    """
    Base class for all detectors.

    Subclass Contract
    ─────────────────
      - Override ``id``, ``uid``, ``description``, ``severity``, ``tags``
        and ``template``
      - Implement ``check()``; return ``None`` when nothing is flagged
    """

    id: ClassVar[str] = "base-detector"
    uid: ClassVar[str] = ""
    description: ClassVar[str] = ""
    severity: ClassVar[str] = "low"
    tags: ClassVar[Tuple[str, ...]] = ()
    template: ClassVar[Optional[ReportTemplate]] = None

    @abstractmethod
    def check(self, codebase: SealedCodebase) -> Optional[List[DetectorResult]]:
        ...

    def report(self, results: List[DetectorResult]) -> str:
        if self.template is None:
            return ""
        return self.template.render(results)

    def __str__(self) -> str:
        return self.id

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} '{self.id}'>"


def container_extra(codebase: SealedCodebase, node_id: int) -> Dict[str, str]:
    """``PARENT_NAME`` / ``PARENT_TYPE`` for the container of *node_id*."""
    parent = codebase.parent_container(node_id)
    if isinstance(parent, A.Circuit):
        return {"PARENT_NAME": parent.name, "PARENT_TYPE": "circuit"}
    if isinstance(parent, A.Constructor):
        return {"PARENT_NAME": "", "PARENT_TYPE": "constructor"}
    if isinstance(parent, A.Module):
        return {"PARENT_NAME": parent.name, "PARENT_TYPE": "module"}
    return {"PARENT_NAME": "", "PARENT_TYPE": "program"}


def run_detectors(
    codebase: SealedCodebase,
    detectors: Iterable[Type[Detector]],
) -> Dict[str, List[DetectorResult]]:
    """Run every detector class; map detector ids to their findings.

    Detectors that flag nothing are left out of the mapping.
    """
    findings: Dict[str, List[DetectorResult]] = {}
    for detector_cls in detectors:
        detector = detector_cls()
        results = detector.check(codebase)
        logger.debug("%s: %d finding(s)", detector, len(results or ()))
        if results:
            findings[detector.id] = results
    logger.info(
        "detectors flagged %d instance(s)", sum(len(r) for r in findings.values())
    )
    return findings
