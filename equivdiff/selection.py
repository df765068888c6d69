"""Selection of the members that take part in a comparison."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .introspection import Member, enumerate_members
from .paths import PathPattern, as_path_predicate, build_path, parse_path_segments

if TYPE_CHECKING:
    from .models import ComparisonNode
    from .options import EquivalencyOptions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MemberSelectionContext:
    """What a selection rule may look at besides the currently selected members."""
    all_members: tuple
    options: Any


class SelectionRule(ABC):
    """
    Decides which members of a composite node participate in the comparison.

    A rule receives the members selected by the rules before it and returns
    the new selection. Rules with `includes_members = True` replace the
    default "all public members" starting point with an empty one.
    """

    includes_members: bool = False
    description: str = ""

    @abstractmethod
    def select_members(
        self,
        node: "ComparisonNode",
        selected: list[Member],
        context: MemberSelectionContext,
    ) -> list[Member]:
        raise NotImplementedError

    def __str__(self) -> str:
        return self.description or self.__class__.__name__


class AllPublicMembersSelectionRule(SelectionRule):
    description = "Include all public members"

    def select_members(self, node, selected, context):
        return list(context.all_members)


def _ancestor_paths(path: str) -> list[str]:
    """All paths from the first segment down to `path` itself."""
    paths = []
    current = ""
    for segment in parse_path_segments(path):
        current = build_path(current, segment)
        paths.append(current)
    return paths


class IncludeMemberByPathSelectionRule(SelectionRule):
    """Only members on the way to, or underneath, the included path are compared."""

    includes_members = True

    def __init__(self, path):
        self.path = path
        self.pattern = PathPattern.compile(path) if isinstance(path, str) else None
        self.predicate = as_path_predicate(path)
        self.description = f"Include member {path}"

    def _is_included(self, path: str, declared_type) -> bool:
        if self.pattern is not None:
            return self.pattern.leads_to(path) or self.pattern.covers(path)
        return any(self.predicate(p, declared_type) for p in _ancestor_paths(path))

    def select_members(self, node, selected, context):
        result = list(selected)
        for member in context.all_members:
            if member in result:
                continue
            if self._is_included(build_path(node.path, member.name), member.declared_type):
                result.append(member)
        return result


class ExcludeMemberByPathSelectionRule(SelectionRule):
    """Members matching the path (and so everything beneath them) are skipped."""

    def __init__(self, path):
        self.path = path
        self.predicate = as_path_predicate(path)
        self.description = f"Exclude member {path}"

    def select_members(self, node, selected, context):
        return [
            member for member in selected
            if not self.predicate(build_path(node.path, member.name), member.declared_type)
        ]


class MemberSelector:
    """Runs the selection rules of the options against one composite node."""

    def __init__(self, options: "EquivalencyOptions"):
        self.options = options
        self.rules = list(options.selection_rules)
        self._starts_empty = any(rule.includes_members for rule in self.rules)

    def select_members(self, node: "ComparisonNode", value: Any = None) -> list[Member]:
        """Select among the members of `value`, which defaults to the node's subject."""
        source = node.subject if value is None else value
        all_members = tuple(enumerate_members(source))
        context = MemberSelectionContext(all_members=all_members, options=self.options)

        if self._starts_empty:
            selected: list[Member] = []
        else:
            selected = AllPublicMembersSelectionRule().select_members(node, [], context)

        for rule in self.rules:
            selected = list(rule.select_members(node, selected, context))

        logger.debug(
            "Selected %d of %d member(s) at %s",
            len(selected), len(all_members), node.description,
        )
        return selected
