"""
equivdiff - Structural Equivalency of Object Graphs

Decides whether two object graphs are equivalent by walking them member by
member, collecting every mismatch with the path where it was found instead
of stopping at the first one.
"""

from .assertions import (
    assert_equivalent,
    assertion_scope,
    fail_with,
)
from .engine import (
    ComparisonRun,
    EquivalencyValidator,
    compare,
)
from .exceptions import (
    ConfigurationError,
    EquivalencyAssertionError,
    EquivDiffError,
    PathExpressionError,
    RuleError,
)
from .matching import (
    MappedMemberMatchingRule,
    MatchByNameIgnoringCaseRule,
    MatchByNameRule,
    MatchingRule,
)
from .models import (
    ComparisonNode,
    CyclicReferenceHandling,
    EnumHandling,
    EquivalencyReport,
    Failure,
    FailureType,
    OrderingMode,
)
from .options import EquivalencyOptions
from .rules import OverrideRule, close_to
from .scope import FailureScope, ScopeHandle
from .selection import (
    ExcludeMemberByPathSelectionRule,
    IncludeMemberByPathSelectionRule,
    SelectionRule,
)

__version__ = "1.0.0"
__all__ = [
    # Engine
    "EquivalencyValidator",
    "ComparisonRun",
    "compare",
    # Assertions
    "assert_equivalent",
    "assertion_scope",
    "fail_with",
    "FailureScope",
    "ScopeHandle",
    # Options
    "EquivalencyOptions",
    "OrderingMode",
    "CyclicReferenceHandling",
    "EnumHandling",
    # Rules
    "SelectionRule",
    "IncludeMemberByPathSelectionRule",
    "ExcludeMemberByPathSelectionRule",
    "MatchingRule",
    "MatchByNameRule",
    "MatchByNameIgnoringCaseRule",
    "MappedMemberMatchingRule",
    "OverrideRule",
    "close_to",
    # Reports
    "ComparisonNode",
    "EquivalencyReport",
    "Failure",
    "FailureType",
    # Errors
    "EquivDiffError",
    "ConfigurationError",
    "PathExpressionError",
    "RuleError",
    "EquivalencyAssertionError",
]
