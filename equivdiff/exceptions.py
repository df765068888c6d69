"""Custom exceptions for the equivdiff engine."""

from __future__ import annotations


class EquivDiffError(Exception):
    """Base exception for equivdiff errors."""
    pass


class ConfigurationError(EquivDiffError):
    """Raised when options or custom rules are misconfigured."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class PathExpressionError(ConfigurationError):
    """Raised when a member path pattern cannot be parsed."""
    def __init__(self, expression: str, reason: str = None):
        super().__init__(
            f"Invalid member path expression '{expression}': {reason}",
            {"expression": expression, "reason": reason},
        )
        self.expression = expression
        self.reason = reason


class RuleError(EquivDiffError):
    """Raised when a selection, matching or comparison rule is invalid."""
    def __init__(self, rule, message: str):
        super().__init__(f"Invalid rule '{rule}': {message}")
        self.rule = rule
        self.message = message


class EquivalencyAssertionError(AssertionError, EquivDiffError):
    """Raised once, with every collected failure, when an assertion fails."""
    def __init__(self, failures: list, report=None):
        self.failures = list(failures)
        self.report = report
        super().__init__(self._render(self.failures))

    @staticmethod
    def _render(failures: list) -> str:
        messages = [getattr(f, "message", str(f)) for f in failures]
        if len(messages) == 1:
            return messages[0]
        return "\n".join(messages)
