"""Equivalency of collections, dictionaries and byte sequences."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Set
from typing import TYPE_CHECKING, Any

from .formatting import AlreadyFormatted, type_name
from .introspection import enumerate_members, is_byte_sequence, is_collection
from .models import ComparisonNode, Failure, FailureType, MatchCandidate

if TYPE_CHECKING:
    from .engine import ComparisonRun

logger = logging.getLogger(__name__)

FAILED_ITEMS_FAST_FAIL_THRESHOLD = 10


class CollectionEquivalence:
    """
    Compares sequences (strictly or loosely ordered), dictionaries by key and
    byte sequences as raw ordered data.
    """

    def __init__(self, run: "ComparisonRun"):
        self.run = run
        self.scope = run.scope
        self.options = run.options

    # Sequences

    def compare(self, node: ComparisonNode) -> None:
        subject = node.subject
        if isinstance(subject, Mapping):
            self.scope.fail_with(
                "Expected {context} to be a non-dictionary {0}{reason}, but found a dictionary {1}.",
                AlreadyFormatted(type_name(node.expectation)),
                subject,
                node=node,
                failure_type=FailureType.DICTIONARY_TYPE,
            )
            return
        if not (is_collection(subject) or is_byte_sequence(subject)):
            self.scope.fail_with(
                "Expected {context} to be {0}{reason}, but found {1} {2}.",
                AlreadyFormatted(type_name(node.expectation)),
                AlreadyFormatted(type_name(subject)),
                subject,
                node=node,
                failure_type=FailureType.COLLECTION_TYPE,
            )
            return

        subjects = list(subject)
        expectations = list(node.expectation)
        if not self._assert_same_count(node, subjects, expectations):
            return

        unordered = isinstance(node.expectation, Set)
        strict = is_byte_sequence(subject) or self.options.is_ordering_strict_for(node.path, node.declared_type)
        if not unordered and strict:
            self.run.add_trace(node.path, "ordering", "strict")
            self._compare_strictly(node, subjects, expectations)
        else:
            self.run.add_trace(node.path, "ordering", "loose")
            self._compare_loosely(node, subjects, expectations)

    def _assert_same_count(self, node: ComparisonNode, subjects: list, expectations: list) -> bool:
        if len(subjects) == len(expectations):
            return True
        self.scope.fail_with(
            "Expected {context} to be a collection with {0} item(s){reason}, but found {1}: {2}.",
            len(expectations),
            len(subjects),
            subjects,
            node=node,
            failure_type=FailureType.COLLECTION_SIZE,
        )
        return False

    def _compare_strictly(self, node: ComparisonNode, subjects: list, expectations: list) -> None:
        failed = 0
        for index, (subject, expectation) in enumerate(zip(subjects, expectations)):
            with self.scope.open() as handle:
                self.run.compare(node.child(index, subject, expectation))
            if handle.has_failures():
                failed += 1
                if failed >= FAILED_ITEMS_FAST_FAIL_THRESHOLD:
                    logger.debug(
                        "Aborting strict order comparison of %s after %d failed items",
                        node.description, failed,
                    )
                    break

    def _compare_loosely(self, node: ComparisonNode, subjects: list, expectations: list) -> None:
        outcomes: dict[tuple[int, int], tuple[Failure, ...]] = {}
        counts: dict[tuple[int, int], int] = {}

        def try_match(subject_index: int, expectation_index: int) -> tuple[Failure, ...]:
            key = (subject_index, expectation_index)
            if key not in outcomes:
                child = node.child(expectation_index, subjects[subject_index], expectations[expectation_index])
                compared = self.run.members_compared
                with self.scope.open() as handle:
                    self.run.compare(child)
                    outcomes[key] = tuple(handle.discard())
                # trial pairings only count once they are committed
                counts[key] = self.run.members_compared - compared
                self.run.members_compared = compared
            return outcomes[key]

        unmatched = list(range(len(subjects)))
        failed = []
        for expectation_index in range(len(expectations)):
            match = next((s for s in unmatched if not try_match(s, expectation_index)), None)
            if match is not None:
                unmatched.remove(match)
                self.run.members_compared += counts[(match, expectation_index)]
                continue

            failed.append(expectation_index)
            if len(failed) >= FAILED_ITEMS_FAST_FAIL_THRESHOLD:
                logger.debug(
                    "Aborting loose order comparison of %s after %d failed items",
                    node.description, len(failed),
                )
                break

        if not failed:
            return

        # pair every unmatched expectation with its closest leftover subject
        candidates = sorted(
            (
                MatchCandidate(s, e, len(try_match(s, e)), try_match(s, e))
                for e in failed
                for s in unmatched
            ),
            key=MatchCandidate.sort_key,
        )
        assignment: dict[int, MatchCandidate] = {}
        taken = set()
        for candidate in candidates:
            if candidate.expectation_index in assignment or candidate.subject_index in taken:
                continue
            assignment[candidate.expectation_index] = candidate
            taken.add(candidate.subject_index)

        for expectation_index in failed:
            candidate = assignment.get(expectation_index)
            if candidate is None:
                continue
            logger.debug(
                "Closest match for %s[%d] is subject item %d with %d mismatch(es)",
                node.description, expectation_index, candidate.subject_index, candidate.mismatch_score,
            )
            self.run.add_trace(
                node.path, "closest-match", "reported",
                {"expectation_index": expectation_index, "subject_index": candidate.subject_index,
                 "mismatches": candidate.mismatch_score},
            )
            self.run.members_compared += counts[(candidate.subject_index, expectation_index)]
            for failure in candidate.failures:
                self.scope.fail(failure)

    # Byte sequences

    def compare_bytes(self, node: ComparisonNode) -> None:
        """Byte sequences are always compared in order."""
        subject = node.subject
        if is_byte_sequence(subject):
            subjects = list(bytes(subject))
        elif is_collection(subject) and not isinstance(subject, Mapping):
            subjects = list(subject)
        else:
            self.scope.fail_with(
                "Expected {context} to be {0}{reason}, but found {1} {2}.",
                AlreadyFormatted(type_name(node.expectation)),
                AlreadyFormatted(type_name(subject)),
                subject,
                node=node,
                failure_type=FailureType.COLLECTION_TYPE,
            )
            return

        expectations = list(bytes(node.expectation))
        if not self._assert_same_count(node, subjects, expectations):
            return

        for index, (actual, expected) in enumerate(zip(subjects, expectations)):
            if actual != expected:
                self.scope.fail_with(
                    "Expected {context} to be {0}{reason}, but it differs at index {1}: found {2} instead of {3}.",
                    node.expectation,
                    index,
                    AlreadyFormatted(f"0x{actual:02X}" if isinstance(actual, int) else repr(actual)),
                    AlreadyFormatted(f"0x{expected:02X}"),
                    node=node,
                    failure_type=FailureType.VALUE_MISMATCH,
                )
                return

    # Dictionaries

    def compare_dictionaries(self, node: ComparisonNode) -> None:
        subject = node.subject
        expectation = node.expectation

        if isinstance(subject, Mapping):
            subject_items = subject
        elif self.run.is_composite(subject) and all(isinstance(k, str) for k in expectation):
            # a record compared against a dictionary describing its shape
            subject_items = {m.name: m for m in enumerate_members(subject)}
        else:
            self.scope.fail_with(
                "Expected {context} to be a dictionary{reason}, but found a non-dictionary {0}: {1}.",
                AlreadyFormatted(type_name(subject)),
                subject,
                node=node,
                failure_type=FailureType.DICTIONARY_TYPE,
            )
            return

        subject_keys = self._selected_keys(node, subject, subject_items)
        expectation_keys = self._selected_keys(node, expectation, expectation)

        missing = [k for k in expectation_keys if k not in subject_items]
        additional = [] if self.options.exclude_missing_members else [
            k for k in subject_keys if k not in expectation
        ]
        self._assert_same_keys(node, len(expectation), missing, additional)

        for key in expectation_keys:
            if key not in subject_items:
                continue
            subject_value = subject_items[key]
            if not isinstance(subject, Mapping):
                try:
                    subject_value = subject_value.get()
                except Exception as e:
                    self.run.fail_introspection(node.child(key, None, expectation[key]), e)
                    continue
            self.run.compare(node.child(key, subject_value, expectation[key]))

    def _selected_keys(self, node: ComparisonNode, value: Any, items) -> list:
        """Keys of `items` that survive the member selection rules."""
        if not self.options.selection_rules:
            return list(items)
        selected = {m.name for m in self.run.selector.select_members(node, value)}
        return [k for k in items if not isinstance(k, str) or k in selected]

    def _assert_same_keys(self, node: ComparisonNode, count: int, missing: list, additional: list) -> None:
        if missing and additional:
            template = ("Expected {context} to be a dictionary with {0} item(s){reason}, "
                        "but it misses key(s) {1} and has additional key(s) {2}.")
            failure_type = FailureType.DICTIONARY_KEYS
        elif missing:
            template = "Expected {context} to be a dictionary with {0} item(s){reason}, but it misses key(s) {1}."
            failure_type = FailureType.MISSING_KEY
        elif additional:
            template = "Expected {context} to be a dictionary with {0} item(s){reason}, but has additional key(s) {2}."
            failure_type = FailureType.DICTIONARY_KEYS
        else:
            return

        self.scope.fail_with(
            template, count, missing, additional,
            node=node,
            failure_type=failure_type,
        )
