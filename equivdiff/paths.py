"""Member path utilities for the equivdiff engine."""

from __future__ import annotations

import re
from typing import Any, Callable, Optional

from jsonpath_ng import parse as jsonpath_parse
from jsonpath_ng.exceptions import JsonPathLexerError, JsonPathParserError

from .exceptions import ConfigurationError, PathExpressionError


_IDENTIFIER = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')
_TOKEN = re.compile(r"\.\.|\.|\[(\*|-?\d+|'[^']*'|\"[^\"]*\")\]|[^.\[\]]+")

# pattern-only tokens
ANY_INDEX = object()
ANY_DEPTH = object()


def build_path(parent_path: str, segment: Any) -> str:
    """Build a member path from the parent path and one more segment."""
    if isinstance(segment, int):
        return f"{parent_path}[{segment}]"
    if isinstance(segment, str) and _IDENTIFIER.match(segment):
        return f"{parent_path}.{segment}" if parent_path else segment
    return f"{parent_path}[{segment!r}]"


def describe_path(path: str) -> str:
    """Human readable name of the node at `path`, as used in failure messages."""
    if not path:
        return "subject"
    if path.startswith("["):
        return f"subject{path}"
    return f"member {path}"


def parse_path_segments(path: str) -> list:
    """
    Split a path into its segments.

    Member names become strings, indexes become ints. `[*]` and `..` are
    returned as the ANY_INDEX and ANY_DEPTH markers.
    """
    if path.startswith("$"):
        path = path[1:]

    segments = []
    for match in _TOKEN.finditer(path):
        token = match.group(0)
        if token == "..":
            segments.append(ANY_DEPTH)
        elif token == ".":
            continue
        elif match.group(1) is not None:
            inner = match.group(1)
            if inner == "*":
                segments.append(ANY_INDEX)
            elif inner[0] in "'\"":
                segments.append(inner[1:-1])
            else:
                segments.append(int(inner))
        else:
            segments.append(token)
    return segments


def _segment_matches(pattern_segment, path_segment) -> bool:
    if pattern_segment is ANY_INDEX:
        return isinstance(path_segment, int)
    if pattern_segment == "*":
        return isinstance(path_segment, str)
    if isinstance(pattern_segment, int) != isinstance(path_segment, int):
        return False
    return pattern_segment == path_segment


def _match(pattern: list, path: list) -> bool:
    if not pattern:
        return not path
    head = pattern[0]
    if head is ANY_DEPTH:
        return any(_match(pattern[1:], path[i:]) for i in range(len(path) + 1))
    if not path:
        return False
    return _segment_matches(head, path[0]) and _match(pattern[1:], path[1:])


def _match_prefix(pattern: list, path: list) -> bool:
    """True if `path` can be extended into something the pattern matches."""
    if not path:
        return True
    if not pattern:
        return False
    head = pattern[0]
    if head is ANY_DEPTH:
        return True
    return _segment_matches(head, path[0]) and _match_prefix(pattern[1:], path[1:])


class PathPattern:
    """
    A compiled member path pattern such as `Level.Text`, `Items[*].Name` or `..Text`.

    A pattern without any index segment matches paths regardless of their
    indexes, so `Items.Name` covers `Items[0].Name` and `Items[7].Name`.
    """

    # Cache for compiled patterns
    _cache: dict = {}

    def __init__(self, expression: str, segments: list):
        self.expression = expression
        self.segments = segments
        self.ignores_indexes = not any(
            isinstance(s, int) or s is ANY_INDEX for s in segments
        )

    @classmethod
    def compile(cls, expression: str) -> "PathPattern":
        """Compile, validate and cache a path pattern."""
        if expression is None:
            raise ConfigurationError("A member path expression is required")
        if not isinstance(expression, str):
            raise ConfigurationError(
                "A member path expression must be a string",
                {"type": type(expression).__name__},
            )
        if expression not in cls._cache:
            cls._validate(expression)
            cls._cache[expression] = cls(expression, parse_path_segments(expression))
        return cls._cache[expression]

    @staticmethod
    def _validate(expression: str):
        stripped = expression.strip()
        if not stripped or stripped == "$":
            raise PathExpressionError(expression, "expression is empty")
        if stripped.startswith("$"):
            candidate = stripped
        elif stripped.startswith(("[", ".")):
            candidate = "$" + stripped
        else:
            candidate = "$." + stripped
        try:
            jsonpath_parse(candidate)
        except (JsonPathParserError, JsonPathLexerError) as e:
            raise PathExpressionError(expression, str(e))

    def _path_segments(self, path: str) -> list:
        segments = parse_path_segments(path)
        if self.ignores_indexes:
            segments = [s for s in segments if not isinstance(s, int)]
        return segments

    def matches(self, path: str) -> bool:
        """Exact match of the node at `path`."""
        return _match(self.segments, self._path_segments(path))

    def covers(self, path: str) -> bool:
        """True if `path` is the matched node or lies underneath it."""
        segments = self._path_segments(path)
        return any(_match(self.segments, segments[:k]) for k in range(1, len(segments) + 1))

    def leads_to(self, path: str) -> bool:
        """True if `path` is an ancestor of (or equal to) a node the pattern matches."""
        return _match_prefix(self.segments, self._path_segments(path))

    def __repr__(self) -> str:
        return f"PathPattern({self.expression!r})"


PathPredicate = Callable[[str, Optional[type]], bool]


def as_path_predicate(selector) -> PathPredicate:
    """Normalize a path pattern, a type or a callable into a `(path, declared_type)` predicate."""
    if selector is None:
        raise ConfigurationError("A path or type predicate is required")
    if isinstance(selector, str):
        pattern = PathPattern.compile(selector)
        return lambda path, declared_type=None: pattern.matches(path)

    if isinstance(selector, type):
        return lambda path, declared_type: (
            declared_type is not None and issubclass(declared_type, selector)
        )

    if callable(selector):
        return selector

    raise ConfigurationError(
        "A predicate must be a path expression, a type or a callable",
        {"type": type(selector).__name__},
    )
