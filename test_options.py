"""Tests for options, path patterns and configuration files."""

from types import SimpleNamespace

import pytest
from equivdiff import (
    ConfigurationError,
    EnumHandling,
    EquivalencyOptions,
    MappedMemberMatchingRule,
    PathExpressionError,
    RuleError,
    compare,
)
from equivdiff.paths import PathPattern, build_path, describe_path


class TestPaths:
    """Test path building and patterns."""

    def test_build_path(self):
        """Test appending segments to a path."""
        assert build_path("", "Level") == "Level"
        assert build_path("Level", "Text") == "Level.Text"
        assert build_path("Level.Collection", 1) == "Level.Collection[1]"
        assert build_path("", 0) == "[0]"
        assert build_path("a", "b c") == "a['b c']"

    def test_describe_path(self):
        """Test the node description used in messages."""
        assert describe_path("") == "subject"
        assert describe_path("[1].Name") == "subject[1].Name"
        assert describe_path("Level.Text") == "member Level.Text"

    def test_pattern_matching(self):
        """Test exact, wildcard and recursive patterns."""
        assert PathPattern.compile("Level.Text").matches("Level.Text") is True
        assert PathPattern.compile("Level.Text").matches("Level") is False
        assert PathPattern.compile("Items[*].Name").matches("Items[3].Name") is True
        assert PathPattern.compile("Items[0].Name").matches("Items[1].Name") is False
        assert PathPattern.compile("Items.Name").matches("Items[1].Name") is True
        assert PathPattern.compile("..Text").matches("Level.Level.Text") is True
        assert PathPattern.compile("Level.*").matches("Level.Text") is True

    def test_pattern_covers_and_leads_to(self):
        """Test the relations used by member inclusion."""
        pattern = PathPattern.compile("Level.Text")
        assert pattern.covers("Level.Text.Length") is True
        assert pattern.covers("Level") is False
        assert pattern.leads_to("Level") is True
        assert pattern.leads_to("Other") is False

    def test_pattern_cache(self):
        """Test that compiled patterns are reused."""
        assert PathPattern.compile("a.b") is PathPattern.compile("a.b")

    def test_invalid_pattern(self):
        """Test that malformed expressions are rejected at configuration time."""
        with pytest.raises(PathExpressionError):
            PathPattern.compile("Level[")
        with pytest.raises(PathExpressionError):
            PathPattern.compile("   ")

    def test_missing_pattern(self):
        """Test that a null path is a configuration error."""
        with pytest.raises(ConfigurationError):
            EquivalencyOptions().excluding(None)
        with pytest.raises(ConfigurationError):
            EquivalencyOptions().including(None)


class TestOptionsBuilder:
    """Test the immutable options builder."""

    def test_builders_return_copies(self):
        """Test that configuring never mutates the original options."""
        defaults = EquivalencyOptions()
        configured = defaults.excluding("Id").with_strict_ordering().ignoring_cyclic_references()
        assert defaults.selection_rules == ()
        assert defaults.is_ordering_strict_for("") is False
        assert configured.is_ordering_strict_for("") is True
        assert len(configured.selection_rules) == 1

    def test_recursion_depth(self):
        """Test recursion depth settings."""
        assert EquivalencyOptions().max_recursion_depth == 10
        assert EquivalencyOptions().allowing_infinite_recursion().max_recursion_depth is None
        with pytest.raises(ConfigurationError):
            EquivalencyOptions().with_max_recursion_depth(-1)

    def test_invalid_comparer(self):
        """Test that malformed comparers are rejected."""
        with pytest.raises(ConfigurationError):
            EquivalencyOptions().with_comparer(None, lambda s, e: True)
        with pytest.raises(RuleError):
            EquivalencyOptions().with_comparer("Name", "not callable")

    def test_invalid_rules(self):
        """Test that selection and matching rules are validated."""
        with pytest.raises(ConfigurationError):
            EquivalencyOptions().with_selection_rule(None)
        with pytest.raises(RuleError):
            EquivalencyOptions().with_matching_rule(object())

    def test_invalid_mappings(self):
        """Test member mapping validation."""
        with pytest.raises(ConfigurationError):
            MappedMemberMatchingRule("", "Name")
        with pytest.raises(ConfigurationError):
            MappedMemberMatchingRule("Items[0].Name", "Items[0].Title")
        with pytest.raises(ConfigurationError):
            MappedMemberMatchingRule("A.Name", "B.Title")

    def test_value_and_member_types_conflict(self):
        """Test that a type cannot be compared both ways."""
        options = EquivalencyOptions().comparing_by_value(SimpleNamespace)
        with pytest.raises(ConfigurationError):
            options.comparing_by_members(SimpleNamespace)

    def test_tracing(self):
        """Test that tracing records rule applications."""
        options = EquivalencyOptions().with_tracing().with_strict_ordering()
        result = compare([1], [1], options)
        assert any(t.rule == "ordering" and t.action == "strict" for t in result.trace)
        assert compare([1], [1]).trace == []


class TestOptionsFiles:
    """Test loading options from dictionaries and YAML files."""

    def test_from_dict(self):
        """Test building options from plain settings."""
        options = EquivalencyOptions.from_dict({
            "strict_ordering": True,
            "excluding": ["Id"],
            "max_recursion_depth": 5,
            "enum_handling": "by_name",
            "auto_conversion": False,
        })
        assert options.is_ordering_strict_for("Items") is True
        assert options.max_recursion_depth == 5
        assert options.enum_handling == EnumHandling.BY_NAME
        assert options.allows_conversion("") is False

    def test_unknown_setting(self):
        """Test that unknown settings are rejected."""
        with pytest.raises(ConfigurationError):
            EquivalencyOptions.from_dict({"strict": True})

    def test_invalid_enum_handling(self):
        """Test that an unknown enum handling is rejected."""
        with pytest.raises(ConfigurationError):
            EquivalencyOptions.from_dict({"enum_handling": "by_colour"})

    def test_from_yaml(self, tmp_path):
        """Test loading suite-wide defaults from a YAML file."""
        path = tmp_path / "equivalency.yaml"
        path.write_text(
            "excluding:\n"
            "  - Id\n"
            "strict_ordering_paths:\n"
            "  - Lines\n"
            "exclude_missing_members: true\n"
        )
        options = EquivalencyOptions.from_yaml(path)
        subject = SimpleNamespace(Id=1, Lines=[1, 2], Extra=True)
        expectation = SimpleNamespace(Id=2, Lines=[1, 2])
        assert compare(subject, expectation, options).is_match is True
        assert compare(SimpleNamespace(Lines=[2, 1]), expectation, options).is_match is False

    def test_missing_yaml(self, tmp_path):
        """Test that a missing file is reported."""
        with pytest.raises(FileNotFoundError):
            EquivalencyOptions.from_yaml(tmp_path / "missing.yaml")

    def test_malformed_yaml(self, tmp_path):
        """Test that invalid YAML is a configuration error."""
        path = tmp_path / "broken.yaml"
        path.write_text("excluding: [Id\n")
        with pytest.raises(ConfigurationError):
            EquivalencyOptions.from_yaml(path)

    def test_empty_yaml(self, tmp_path):
        """Test that an empty file yields the defaults."""
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert EquivalencyOptions.from_yaml(path) == EquivalencyOptions()
