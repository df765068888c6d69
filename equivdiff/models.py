"""Data models for the equivdiff engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from .paths import build_path, describe_path, parse_path_segments


class FailureType(Enum):
    VALUE_MISMATCH = "VALUE_MISMATCH"
    NULL_MISMATCH = "NULL_MISMATCH"
    TYPE_MISMATCH = "TYPE_MISMATCH"
    MISSING_MEMBER = "MISSING_MEMBER"
    CYCLIC_REFERENCE = "CYCLIC_REFERENCE"
    COLLECTION_SIZE = "COLLECTION_SIZE"
    COLLECTION_TYPE = "COLLECTION_TYPE"
    DICTIONARY_TYPE = "DICTIONARY_TYPE"
    DICTIONARY_KEYS = "DICTIONARY_KEYS"
    MISSING_KEY = "MISSING_KEY"
    COMPARER_FAILED = "COMPARER_FAILED"
    INTROSPECTION_ERROR = "INTROSPECTION_ERROR"
    CUSTOM = "CUSTOM"


class CyclicReferenceHandling(Enum):
    FAIL = "fail"
    IGNORE = "ignore"


class EnumHandling(Enum):
    BY_VALUE = "by_value"
    BY_NAME = "by_name"


class OrderingMode(Enum):
    STRICT = "strict"
    LOOSE = "loose"


@dataclass(frozen=True)
class ComparisonNode:
    """
    One pair of values visited during a comparison.

    A node is never mutated; every descent step builds a new child node whose
    path extends the parent's path by one segment.
    """
    subject: Any
    expectation: Any
    path: str = ""
    declared_type: Optional[type] = None
    depth: int = 0

    @property
    def is_root_level(self) -> bool:
        """The root itself or an item of a root collection."""
        if self.depth == 0:
            return True
        return self.depth == 1 and isinstance(parse_path_segments(self.path)[-1], int)

    @property
    def description(self) -> str:
        return describe_path(self.path)

    def child(self, segment, subject: Any, expectation: Any,
              declared_type: Optional[type] = None) -> "ComparisonNode":
        if declared_type is None and expectation is not None:
            declared_type = type(expectation)
        return ComparisonNode(
            subject=subject,
            expectation=expectation,
            path=build_path(self.path, segment),
            declared_type=declared_type,
            depth=self.depth + 1,
        )


@dataclass(frozen=True)
class Failure:
    """A single divergence found during comparison."""
    path: str
    type: FailureType
    message: str

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "type": self.type.value,
            "message": self.message,
        }


@dataclass(frozen=True)
class MatchCandidate:
    """Pairing hypothesis used while matching unordered collections."""
    subject_index: int
    expectation_index: int
    mismatch_score: int
    failures: tuple = ()

    def sort_key(self) -> tuple:
        # fewest mismatches first, then the pairing that keeps the original position
        return (
            self.mismatch_score,
            self.subject_index != self.expectation_index,
            self.expectation_index,
            self.subject_index,
        )


@dataclass
class TraceEntry:
    """Trace entry for rule application (when tracing is enabled)."""
    path: str
    rule: str
    action: str
    details: Any = None

    def to_dict(self) -> dict:
        result = {
            "path": self.path,
            "rule": self.rule,
            "action": self.action,
        }
        if self.details:
            result["details"] = self.details
        return result


@dataclass
class ExecutionInfo:
    """Execution metadata."""
    duration_ms: int
    timestamp: str
    engine_version: str = "1.0.0"

    def to_dict(self) -> dict:
        return {
            "duration_ms": self.duration_ms,
            "timestamp": self.timestamp,
            "engine_version": self.engine_version,
        }


@dataclass
class Summary:
    """Summary statistics of a comparison."""
    members_compared: int = 0
    failures_found: int = 0

    def to_dict(self) -> dict:
        return {
            "members_compared": self.members_compared,
            "failures_found": self.failures_found,
        }


@dataclass
class EquivalencyReport:
    """Complete comparison report."""
    is_match: bool
    execution: ExecutionInfo
    summary: Summary
    failures: list[Failure] = field(default_factory=list)
    trace: list[TraceEntry] = field(default_factory=list)

    @property
    def messages(self) -> list[str]:
        return [f.message for f in self.failures]

    def to_dict(self) -> dict:
        result = {
            "is_match": self.is_match,
            "execution": self.execution.to_dict(),
            "summary": self.summary.to_dict(),
            "failures": [f.to_dict() for f in self.failures],
        }
        if self.trace:
            result["trace"] = [t.to_dict() for t in self.trace]
        return result
