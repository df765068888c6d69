"""Pairing of subject members with their expectation counterparts."""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Optional

from .exceptions import ConfigurationError
from .introspection import Member, enumerate_members, find_member
from .paths import PathPattern, parse_path_segments

if TYPE_CHECKING:
    from .models import ComparisonNode
    from .options import EquivalencyOptions

logger = logging.getLogger(__name__)


class MatchingRule(ABC):
    """
    Finds the expectation member that corresponds to a subject member.

    Returning None means "no opinion": the next rule is consulted.
    """

    description: str = ""

    @abstractmethod
    def match(
        self,
        subject_member: Member,
        expectation: Any,
        node: "ComparisonNode",
        options: "EquivalencyOptions",
    ) -> Optional[Member]:
        raise NotImplementedError

    def __str__(self) -> str:
        return self.description or self.__class__.__name__


class MatchByNameRule(MatchingRule):
    """Default rule: exact, case-sensitive member name."""

    description = "Match member by name"

    def match(self, subject_member, expectation, node, options):
        return find_member(expectation, subject_member.name)


class MatchByNameIgnoringCaseRule(MatchingRule):
    description = "Match member by name (case-insensitive)"

    def match(self, subject_member, expectation, node, options):
        wanted = subject_member.name.casefold()
        for member in enumerate_members(expectation):
            if member.name.casefold() == wanted:
                return member
        return None


_NUMERIC_INDEX = re.compile(r"\[\d+\]")


class MappedMemberMatchingRule(MatchingRule):
    """
    Maps a subject member onto a differently named expectation member.

    Both sides are given as paths sharing the same parent, e.g.
    `("Parent[].Property1", "Parent[].Property2")` or just member names.
    """

    def __init__(self, subject_path: str, expectation_path: str):
        for label, value in (("subject", subject_path), ("expectation", expectation_path)):
            if value is None:
                raise ConfigurationError(f"The {label} member path cannot be null")
            if not value.strip():
                raise ConfigurationError(f"The {label} member path cannot be empty")
            if _NUMERIC_INDEX.search(value):
                raise ConfigurationError(
                    "Numeric indexes are not allowed in a member mapping; use [] instead",
                    {label: value},
                )

        subject_parent, _, subject_name = subject_path.replace("[]", "").rpartition(".")
        expectation_parent, _, expectation_name = expectation_path.replace("[]", "").rpartition(".")
        if subject_parent != expectation_parent:
            raise ConfigurationError(
                "The subject and expectation member paths must have the same parent",
                {"subject": subject_path, "expectation": expectation_path},
            )

        self.parent = PathPattern.compile(subject_parent) if subject_parent else None
        self.subject_name = subject_name
        self.expectation_name = expectation_name
        self.description = f"Map {subject_path} to {expectation_path}"

    def match(self, subject_member, expectation, node, options):
        if subject_member.name != self.subject_name:
            return None
        if self.parent is None:
            # root members, possibly inside a root collection
            if any(isinstance(s, str) for s in parse_path_segments(node.path)):
                return None
        elif not self.parent.matches(node.path):
            return None
        return find_member(expectation, self.expectation_name)


class MemberMatcher:
    """Runs custom matching rules (in registration order) before the default by-name rule."""

    def __init__(self, options: "EquivalencyOptions"):
        self.options = options
        self.rules = list(options.matching_rules) + [MatchByNameRule()]

    def match_member(
        self,
        subject_member: Member,
        expectation: Any,
        node: "ComparisonNode",
    ) -> Optional[Member]:
        for rule in self.rules:
            match = rule.match(subject_member, expectation, node, self.options)
            if match is not None:
                if not isinstance(rule, MatchByNameRule):
                    logger.debug("%s matched %s via %s", node.description, subject_member.name, rule)
                return match
        return None
