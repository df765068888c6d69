"""
equivdiff engine - structural equivalency of two object graphs.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from .collection import CollectionEquivalence
from .comparators import compare_leaf
from .cycles import CycleTracker
from .exceptions import ConfigurationError, EquivalencyAssertionError
from .formatting import AlreadyFormatted, format_reason, type_name
from .introspection import (
    enumerate_members,
    has_value_semantics,
    is_byte_sequence,
    is_collection,
)
from .matching import MemberMatcher
from .models import (
    ComparisonNode,
    CyclicReferenceHandling,
    EquivalencyReport,
    ExecutionInfo,
    Failure,
    FailureType,
    Summary,
    TraceEntry,
)
from .options import EquivalencyOptions
from .scope import FailureScope, active_scope
from .selection import MemberSelector

logger = logging.getLogger(__name__)

ENGINE_VERSION = "1.0.0"


class ComparisonRun:
    """
    State of a single comparison: the failure scope it reports into, the
    ancestors currently being descended and the optional trace.
    """

    def __init__(self, options: EquivalencyOptions, scope: FailureScope):
        self.options = options
        self.scope = scope
        self.tracker = CycleTracker()
        self.selector = MemberSelector(options)
        self.matcher = MemberMatcher(options)
        self.rules = options.rule_set()
        self.collections = CollectionEquivalence(self)
        self.trace: list[TraceEntry] = []
        self.members_compared = 0

    def add_trace(self, path: str, rule: str, action: str, details: Any = None):
        if self.options.trace:
            self.trace.append(TraceEntry(path=path, rule=rule, action=action, details=details))

    def fail_introspection(self, node: ComparisonNode, error: Exception) -> None:
        self.scope.fail_with(
            "Could not read {context}{reason}: {0}.",
            AlreadyFormatted(f"{type(error).__name__}: {error}"),
            node=node,
            failure_type=FailureType.INTROSPECTION_ERROR,
        )

    def is_value_type(self, value: Any) -> bool:
        if self.options.member_types and isinstance(value, self.options.member_types):
            return False
        if self.options.value_types and isinstance(value, self.options.value_types):
            return True
        return has_value_semantics(value)

    def is_composite(self, value: Any) -> bool:
        """True for values compared member by member."""
        if value is None or isinstance(value, Mapping) or is_byte_sequence(value):
            return False
        if is_collection(value) and not isinstance(value, self.options.member_types):
            return False
        if self.is_value_type(value):
            return False
        return bool(enumerate_members(value))

    def compare(self, node: ComparisonNode) -> None:
        """Compare one node, recording every mismatch into the current scope."""
        subject, expectation = node.subject, node.expectation

        if subject is None or expectation is None:
            self._compare_nulls(node)
            return

        rule = self.rules.find(node)
        if rule is not None:
            is_match = self.rules.apply(rule, node, self.scope)
            self.add_trace(node.path, str(rule), "match" if is_match else "mismatch")
            self.members_compared += 1
            return

        if is_byte_sequence(expectation):
            self.add_trace(node.path, "bytes", "compared")
            self.collections.compare_bytes(node)
        elif isinstance(expectation, Mapping):
            with self._descend(node) as proceed:
                if proceed:
                    self.add_trace(node.path, "dictionary", "compared")
                    self.collections.compare_dictionaries(node)
        elif is_collection(expectation) and not isinstance(expectation, self.options.member_types):
            with self._descend(node) as proceed:
                if proceed:
                    self.add_trace(node.path, "collection", "compared")
                    self.collections.compare(node)
        elif self.is_composite(expectation):
            self._compare_members(node)
        else:
            self._compare_leaf(node)

    def _compare_nulls(self, node: ComparisonNode) -> None:
        self.members_compared += 1
        if node.subject is None and node.expectation is None:
            return
        self.scope.fail_with(
            "Expected {context} to be {0}{reason}, but found {1}.",
            node.expectation,
            node.subject,
            node=node,
            failure_type=FailureType.NULL_MISMATCH,
        )

    def _fail_incompatible_subject(self, node: ComparisonNode) -> bool:
        """A dictionary or collection subject can't stand in for a single value."""
        if isinstance(node.subject, Mapping) and not self.is_composite(node.expectation):
            self.scope.fail_with(
                "{context} is a dictionary and cannot be compared with a non-dictionary type.",
                node=node,
                failure_type=FailureType.DICTIONARY_TYPE,
            )
            return True
        if is_collection(node.subject) and not isinstance(node.subject, self.options.member_types):
            self.scope.fail_with(
                "{context} is a collection and cannot be compared with a non-collection type.",
                node=node,
                failure_type=FailureType.COLLECTION_TYPE,
            )
            return True
        return False

    def _compare_leaf(self, node: ComparisonNode) -> None:
        self.members_compared += 1
        if self._fail_incompatible_subject(node):
            return

        try:
            result = compare_leaf(
                node.subject,
                node.expectation,
                enum_handling=self.options.enum_handling,
                allow_conversion=self.options.allows_conversion(node.path, node.declared_type),
            )
        except Exception as e:
            self.fail_introspection(node, e)
            return

        if result.converted:
            self.add_trace(node.path, "conversion", "converted")
        if not result.is_match:
            self.scope.fail_with(result.template, *result.args, node=node,
                                 failure_type=FailureType.VALUE_MISMATCH)

    def _descend(self, node: ComparisonNode):
        return _Descent(self, node)

    def _compare_members(self, node: ComparisonNode) -> None:
        if self._fail_incompatible_subject(node):
            self.members_compared += 1
            return

        if not isinstance(node.subject, Mapping) and self.is_value_type(node.subject):
            self.members_compared += 1
            self.scope.fail_with(
                "Expected {context} to be {0}{reason}, but found {1} {2}.",
                node.expectation,
                AlreadyFormatted(type_name(node.subject)),
                node.subject,
                node=node,
                failure_type=FailureType.TYPE_MISMATCH,
            )
            return

        if self.options.exclude_nested_objects and not node.is_root_level:
            self.add_trace(node.path, "nested-objects", "compared with ==")
            self.members_compared += 1
            if node.subject != node.expectation:
                self.scope.fail_with(
                    "Expected {context} to be {0}{reason}, but found {1}.",
                    node.expectation,
                    node.subject,
                    node=node,
                    failure_type=FailureType.VALUE_MISMATCH,
                )
            return

        with self._descend(node) as proceed:
            if not proceed:
                return
            try:
                members = self.selector.select_members(node)
            except Exception as e:
                self.fail_introspection(node, e)
                return

            for member in members:
                self._compare_member(node, member)

    def _compare_member(self, node: ComparisonNode, member) -> None:
        expectation_member = self.matcher.match_member(member, node.expectation, node)
        if expectation_member is None:
            if self.options.exclude_missing_members:
                self.add_trace(node.path, "missing-member", "skipped", member.name)
                return
            self.scope.fail_with(
                "Subject has property {0} that the other object does not have.",
                AlreadyFormatted(node.child(member.name, None, None).path),
                node=node.child(member.name, None, None),
                failure_type=FailureType.MISSING_MEMBER,
            )
            return

        declared_type = expectation_member.declared_type or member.declared_type
        try:
            subject_value = member.get()
            expectation_value = expectation_member.get()
        except Exception as e:
            self.fail_introspection(node.child(member.name, None, None, declared_type), e)
            return

        self.compare(node.child(expectation_member.name, subject_value, expectation_value, declared_type))


class _Descent:
    """
    Guards one step down into a container or composite node.

    Entering yields False when the node must not be descended: it closes a
    cycle (reported unless cycles are ignored) or it lies past the maximum
    recursion depth (silently truncated).
    """

    def __init__(self, run: ComparisonRun, node: ComparisonNode):
        self.run = run
        self.node = node
        self.pushed = False

    def __enter__(self) -> bool:
        run, node = self.run, self.node
        if run.tracker.is_cyclic(node.expectation, node.declared_type):
            if run.options.cyclic_reference_handling == CyclicReferenceHandling.IGNORE:
                run.add_trace(node.path, "cyclic-reference", "ignored")
            else:
                run.scope.fail_with(
                    "Expected {context} to be {0}{reason}, but it contains a cyclic reference.",
                    AlreadyFormatted(type_name(node.expectation)),
                    node=node,
                    failure_type=FailureType.CYCLIC_REFERENCE,
                )
            return False

        max_depth = run.options.max_recursion_depth
        if max_depth is not None and node.depth > max_depth:
            logger.debug("Not descending into %s beyond depth %d", node.description, max_depth)
            run.add_trace(node.path, "max-recursion-depth", "truncated", max_depth)
            return False

        self.pushed = run.tracker.push(node.expectation, node.declared_type)
        return True

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.pushed:
            self.run.tracker.pop(self.node.expectation, self.node.declared_type)
        return False


class EquivalencyValidator:
    """
    Entry point for equivalency comparisons.

    Usage:
        validator = EquivalencyValidator()
        report = validator.compare(actual, expected)
        validator.assert_equivalent(actual, expected, lambda o: o.excluding("Id"))
    """

    def __init__(self, defaults: Optional[EquivalencyOptions] = None):
        if defaults is not None and not isinstance(defaults, EquivalencyOptions):
            raise ConfigurationError(
                "Defaults must be EquivalencyOptions",
                {"type": type(defaults).__name__},
            )
        self.defaults = defaults or EquivalencyOptions()

    def configure(
        self,
        configure: Optional[Callable[[EquivalencyOptions], EquivalencyOptions]] = None,
    ) -> EquivalencyOptions:
        """Derive the options of one call from the validator's defaults."""
        if configure is None:
            return self.defaults
        if isinstance(configure, EquivalencyOptions):
            return configure
        options = configure(self.defaults)
        if not isinstance(options, EquivalencyOptions):
            raise ConfigurationError(
                "The options callback must return EquivalencyOptions",
                {"returned": type(options).__name__},
            )
        return options

    def _run(
        self,
        scope: FailureScope,
        subject: Any,
        expectation: Any,
        options: EquivalencyOptions,
        path: str = "",
    ) -> ComparisonRun:
        run = ComparisonRun(options, scope)
        node = ComparisonNode(
            subject=subject,
            expectation=expectation,
            path=path,
            declared_type=type(expectation) if expectation is not None else None,
        )
        run.compare(node)
        return run

    def compare(self, subject: Any, expectation: Any, options=None) -> EquivalencyReport:
        """
        Compare `subject` against `expectation` and return a report.

        Never raises for mismatches; the report lists them in order.
        """
        options = self.configure(options)
        start_time = time.time()

        scope = FailureScope()
        with scope.activate():
            with scope.open() as root:
                run = self._run(scope, subject, expectation, options)

        report = self._build_report(run, root.result, start_time)
        logger.info(
            "Compared %s with %s: %d member(s), %d failure(s)",
            type_name(subject), type_name(expectation),
            report.summary.members_compared, report.summary.failures_found,
        )
        return report

    def assert_equivalent(
        self,
        subject: Any,
        expectation: Any,
        configure=None,
        because: str = "",
        *because_args,
    ) -> None:
        """
        Assert that `subject` is structurally equivalent to `expectation`.

        Inside an assertion_scope() or a custom comparer the failures are
        added to the enclosing scope; otherwise they are raised together as
        an EquivalencyAssertionError.
        """
        options = self.configure(configure)
        reason = format_reason(because, *because_args)

        outer = active_scope()
        if outer is not None:
            with outer.open(reason=reason) as handle:
                self._run(outer, subject, expectation, options, path=handle.path)
            return

        start_time = time.time()
        scope = FailureScope()
        with scope.activate():
            with scope.open(reason=reason) as root:
                run = self._run(scope, subject, expectation, options)

        if root.result:
            report = self._build_report(run, root.result, start_time)
            logger.info("Subject is not equivalent: %d failure(s)", len(root.result))
            raise EquivalencyAssertionError(root.result, report)

    def _build_report(self, run: ComparisonRun, failures: list[Failure], start_time: float) -> EquivalencyReport:
        duration_ms = int((time.time() - start_time) * 1000)
        return EquivalencyReport(
            is_match=not failures,
            execution=ExecutionInfo(
                duration_ms=duration_ms,
                timestamp=datetime.now(timezone.utc).isoformat(),
                engine_version=ENGINE_VERSION,
            ),
            summary=Summary(
                members_compared=run.members_compared,
                failures_found=len(failures),
            ),
            failures=list(failures),
            trace=run.trace,
        )


def compare(subject: Any, expectation: Any, options: Optional[EquivalencyOptions] = None) -> EquivalencyReport:
    """
    Convenience function to compare two object graphs.

    Args:
        subject: The actual value
        expectation: The expected value
        options: Optional EquivalencyOptions

    Returns:
        EquivalencyReport with the outcome of the comparison
    """
    return EquivalencyValidator().compare(subject, expectation, options)
