"""Immutable configuration of an equivalency comparison."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from .exceptions import ConfigurationError, RuleError
from .matching import MappedMemberMatchingRule, MatchByNameIgnoringCaseRule, MatchingRule
from .models import CyclicReferenceHandling, EnumHandling, OrderingMode
from .paths import as_path_predicate
from .rules import ComparisonRuleSet, OverrideRule
from .selection import (
    ExcludeMemberByPathSelectionRule,
    IncludeMemberByPathSelectionRule,
    SelectionRule,
)

DEFAULT_MAX_RECURSION_DEPTH = 10


def _all_paths(path, declared_type) -> bool:
    return True


@dataclass(frozen=True)
class EquivalencyOptions:
    """
    Settings for one comparison run.

    Instances are never mutated: every builder method returns a new copy, so
    a suite-wide default can be created once and shared between runs.
    """
    ordering: OrderingMode = OrderingMode.LOOSE
    strict_ordering_paths: tuple = ()
    selection_rules: tuple = ()
    matching_rules: tuple = ()
    override_rules: tuple = ()
    exclude_missing_members: bool = False
    exclude_nested_objects: bool = False
    cyclic_reference_handling: CyclicReferenceHandling = CyclicReferenceHandling.FAIL
    max_recursion_depth: Optional[int] = DEFAULT_MAX_RECURSION_DEPTH
    enum_handling: EnumHandling = EnumHandling.BY_VALUE
    value_types: tuple = ()
    member_types: tuple = ()
    conversion_paths: tuple = field(default=(_all_paths,))
    trace: bool = False

    def _with(self, **changes) -> "EquivalencyOptions":
        return dataclasses.replace(self, **changes)

    # Member selection

    def including(self, path) -> "EquivalencyOptions":
        """Compare only the given member (plus what is needed to reach it)."""
        return self._with(selection_rules=self.selection_rules + (IncludeMemberByPathSelectionRule(path),))

    def excluding(self, path) -> "EquivalencyOptions":
        """Skip the given member and everything underneath it."""
        return self._with(selection_rules=self.selection_rules + (ExcludeMemberByPathSelectionRule(path),))

    def excluding_missing_members(self) -> "EquivalencyOptions":
        return self._with(exclude_missing_members=True)

    excluding_missing_properties = excluding_missing_members

    def excluding_nested_objects(self) -> "EquivalencyOptions":
        return self._with(exclude_nested_objects=True)

    def including_nested_objects(self) -> "EquivalencyOptions":
        return self._with(exclude_nested_objects=False)

    def with_selection_rule(self, rule: SelectionRule) -> "EquivalencyOptions":
        if rule is None:
            raise ConfigurationError("A selection rule is required")
        if not callable(getattr(rule, "select_members", None)):
            raise RuleError(rule, "a selection rule must implement select_members()")
        return self._with(selection_rules=self.selection_rules + (rule,))

    # Member matching

    def with_matching_rule(self, rule: MatchingRule) -> "EquivalencyOptions":
        if rule is None:
            raise ConfigurationError("A matching rule is required")
        if not callable(getattr(rule, "match", None)):
            raise RuleError(rule, "a matching rule must implement match()")
        return self._with(matching_rules=self.matching_rules + (rule,))

    def with_mapping(self, subject_path: str, expectation_path: str) -> "EquivalencyOptions":
        return self.with_matching_rule(MappedMemberMatchingRule(subject_path, expectation_path))

    def matching_members_ignoring_case(self) -> "EquivalencyOptions":
        return self.with_matching_rule(MatchByNameIgnoringCaseRule())

    # Override rules

    def with_comparer(self, predicate, comparator, description: Optional[str] = None) -> "EquivalencyOptions":
        """Let `comparator` take full responsibility for the nodes `predicate` selects."""
        rule = OverrideRule(predicate, comparator, description)
        return self._with(override_rules=self.override_rules + (rule,))

    def using(self, comparator, when, description: Optional[str] = None) -> "EquivalencyOptions":
        return self.with_comparer(when, comparator, description)

    def rule_set(self) -> ComparisonRuleSet:
        return ComparisonRuleSet(self.override_rules)

    # Ordering

    def with_strict_ordering(self, path=None) -> "EquivalencyOptions":
        """Strict ordering for every collection, or only those `path` selects."""
        if path is None:
            return self._with(ordering=OrderingMode.STRICT, strict_ordering_paths=())
        predicate = as_path_predicate(path)
        return self._with(strict_ordering_paths=self.strict_ordering_paths + (predicate,))

    def without_strict_ordering(self) -> "EquivalencyOptions":
        return self._with(ordering=OrderingMode.LOOSE, strict_ordering_paths=())

    def is_ordering_strict_for(self, path: str, declared_type: Optional[type] = None) -> bool:
        if self.ordering == OrderingMode.STRICT:
            return True
        return any(p(path, declared_type) for p in self.strict_ordering_paths)

    # Graph traversal

    def ignoring_cyclic_references(self) -> "EquivalencyOptions":
        return self._with(cyclic_reference_handling=CyclicReferenceHandling.IGNORE)

    def allowing_infinite_recursion(self) -> "EquivalencyOptions":
        return self._with(max_recursion_depth=None)

    def with_max_recursion_depth(self, depth: Optional[int]) -> "EquivalencyOptions":
        if depth is not None and (not isinstance(depth, int) or depth < 0):
            raise ConfigurationError(
                "The maximum recursion depth must be a non-negative integer",
                {"depth": depth},
            )
        return self._with(max_recursion_depth=depth)

    # Leaf handling

    def comparing_enums_by_name(self) -> "EquivalencyOptions":
        return self._with(enum_handling=EnumHandling.BY_NAME)

    def comparing_enums_by_value(self) -> "EquivalencyOptions":
        return self._with(enum_handling=EnumHandling.BY_VALUE)

    def comparing_by_value(self, cls: type) -> "EquivalencyOptions":
        """Compare instances of `cls` with `==` instead of member by member."""
        self._require_type(cls)
        if cls in self.member_types:
            raise ConfigurationError(f"{cls.__qualname__} is already compared by members")
        return self._with(value_types=self.value_types + (cls,))

    def comparing_by_members(self, cls: type) -> "EquivalencyOptions":
        """Compare instances of `cls` member by member even if they define `__eq__`."""
        self._require_type(cls)
        if cls in self.value_types:
            raise ConfigurationError(f"{cls.__qualname__} is already compared by value")
        return self._with(member_types=self.member_types + (cls,))

    @staticmethod
    def _require_type(cls):
        if not isinstance(cls, type):
            raise ConfigurationError("A type is required", {"type": type(cls).__name__})

    def with_auto_conversion(self, path=None) -> "EquivalencyOptions":
        if path is None:
            return self._with(conversion_paths=(_all_paths,))
        return self._with(conversion_paths=self.conversion_paths + (as_path_predicate(path),))

    def without_auto_conversion(self) -> "EquivalencyOptions":
        return self._with(conversion_paths=())

    def allows_conversion(self, path: str, declared_type: Optional[type] = None) -> bool:
        return any(p(path, declared_type) for p in self.conversion_paths)

    def with_tracing(self) -> "EquivalencyOptions":
        return self._with(trace=True)

    # Loading

    @classmethod
    def from_dict(cls, settings: dict) -> "EquivalencyOptions":
        """Build options from a plain mapping, e.g. a suite-wide defaults file."""
        if settings is None:
            return cls()
        if not isinstance(settings, dict):
            raise ConfigurationError(
                "Options must be a mapping",
                {"type": type(settings).__name__},
            )

        unknown = set(settings) - _SETTING_KEYS
        if unknown:
            raise ConfigurationError(
                f"Unknown option(s): {', '.join(sorted(unknown))}",
                {"unknown": sorted(unknown)},
            )

        options = cls()
        if settings.get("strict_ordering"):
            options = options.with_strict_ordering()
        for path in settings.get("strict_ordering_paths", []):
            options = options.with_strict_ordering(path)
        for path in settings.get("including", []):
            options = options.including(path)
        for path in settings.get("excluding", []):
            options = options.excluding(path)
        if settings.get("exclude_missing_members"):
            options = options.excluding_missing_members()
        if settings.get("exclude_nested_objects"):
            options = options.excluding_nested_objects()
        if settings.get("ignore_cyclic_references"):
            options = options.ignoring_cyclic_references()
        if "max_recursion_depth" in settings:
            options = options.with_max_recursion_depth(settings["max_recursion_depth"])
        if "enum_handling" in settings:
            try:
                options = options._with(enum_handling=EnumHandling(settings["enum_handling"]))
            except ValueError:
                raise ConfigurationError(
                    f"Unknown enum handling '{settings['enum_handling']}'",
                    {"allowed": [e.value for e in EnumHandling]},
                )
        if settings.get("auto_conversion") is False:
            options = options.without_auto_conversion()
        if settings.get("trace"):
            options = options.with_tracing()
        return options

    @classmethod
    def from_yaml(cls, path) -> "EquivalencyOptions":
        """Load options from a YAML (or JSON) file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Options file not found: {path}")

        with open(path, 'r') as f:
            content = f.read()

        try:
            settings = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse options file: {e}", {"path": str(path)})

        return cls.from_dict(settings or {})


_SETTING_KEYS = {
    "strict_ordering",
    "strict_ordering_paths",
    "including",
    "excluding",
    "exclude_missing_members",
    "exclude_nested_objects",
    "ignore_cyclic_references",
    "max_recursion_depth",
    "enum_handling",
    "auto_conversion",
    "trace",
}
