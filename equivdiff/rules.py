"""Override rules that take over the comparison of matching nodes."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Optional

from .comparators import numbers_within
from .exceptions import ConfigurationError, RuleError
from .formatting import AlreadyFormatted
from .models import ComparisonNode, FailureType
from .paths import as_path_predicate

if TYPE_CHECKING:
    from .scope import FailureScope

logger = logging.getLogger(__name__)

Comparator = Callable[[Any, Any], Optional[bool]]


class OverrideRule:
    """
    A `(predicate, comparator)` pair.

    The predicate is a path pattern, a type (matched against the declared
    type of the node) or a callable `(path, declared_type) -> bool`. The
    comparator receives `(subject, expectation)`; returning False records a
    failure, returning True or None means handled. It may also record its own
    failures into the active scope, e.g. by calling `assert_equivalent()`.
    """

    def __init__(self, predicate, comparator: Comparator, description: Optional[str] = None):
        if predicate is None:
            raise ConfigurationError("A comparer requires a path or type predicate")
        if comparator is None:
            raise ConfigurationError("A comparer requires a comparator")
        if not callable(comparator):
            raise RuleError(comparator, "comparator must be callable")

        self.predicate = as_path_predicate(predicate)
        self.comparator = comparator
        self.description = description or self._describe(predicate, comparator)

    @staticmethod
    def _describe(predicate, comparator) -> str:
        target = predicate.__name__ if isinstance(predicate, type) else predicate
        if callable(target):
            target = getattr(target, "__name__", "predicate")
        name = getattr(comparator, "__name__", type(comparator).__name__)
        return f"{name} when {target}"

    def applies_to(self, node: ComparisonNode) -> bool:
        return bool(self.predicate(node.path, node.declared_type))

    def __str__(self) -> str:
        return self.description


class ComparisonRuleSet:
    """
    Stack of override rules; the most recently registered rule is tried first.
    """

    def __init__(self, rules=()):
        self._stack: list[OverrideRule] = list(rules)

    def __len__(self) -> int:
        return len(self._stack)

    def find(self, node: ComparisonNode) -> Optional[OverrideRule]:
        for rule in reversed(self._stack):
            if rule.applies_to(node):
                return rule
        return None

    def apply(self, rule: OverrideRule, node: ComparisonNode, scope: "FailureScope") -> bool:
        """Run the rule's comparator; returns True when the node is equivalent."""
        logger.debug("Using %s for %s", rule, node.description)
        try:
            with scope.open(context=node.description, path=node.path) as handle:
                outcome = rule.comparator(node.subject, node.expectation)
            if handle.has_failures():
                return False
        except AssertionError as e:
            scope.fail_with(
                "Expected {context} to satisfy {0}{reason}, but it failed with: {1}",
                AlreadyFormatted(rule.description),
                AlreadyFormatted(str(e)),
                node=node,
                failure_type=FailureType.COMPARER_FAILED,
            )
            return False
        except Exception as e:
            scope.fail_with(
                "Comparer {0} raised {1} while comparing {context}.",
                AlreadyFormatted(rule.description),
                AlreadyFormatted(f"{type(e).__name__}: {e}"),
                node=node,
                failure_type=FailureType.COMPARER_FAILED,
            )
            return False

        if outcome is False:
            scope.fail_with(
                "Expected {context} to be {0}{reason} according to {1}, but found {2}.",
                node.expectation,
                AlreadyFormatted(rule.description),
                node.subject,
                node=node,
                failure_type=FailureType.COMPARER_FAILED,
            )
            return False
        return True


def close_to(precision: float) -> Comparator:
    """Comparator accepting numbers that differ by at most `precision`."""
    def comparator(subject, expectation) -> bool:
        return numbers_within(subject, expectation, precision)

    comparator.__name__ = f"close_to({precision})"
    return comparator
