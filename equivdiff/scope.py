"""Nested, mergeable and discardable collection of comparison failures."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Optional

from .exceptions import EquivDiffError, EquivalencyAssertionError
from .formatting import render_message
from .models import ComparisonNode, Failure, FailureType

logger = logging.getLogger(__name__)

_active_scope: ContextVar[Optional["FailureScope"]] = ContextVar(
    "equivdiff_active_scope", default=None
)


class ScopeHandle:
    """
    One open collector on a FailureScope stack.

    Usable as a context manager: leaving the block closes the handle, merging
    its failures into the parent handle (or yielding them, for the root).
    """

    def __init__(
        self,
        scope: "FailureScope",
        parent: Optional["ScopeHandle"],
        context: Optional[str] = None,
        reason: str = "",
        raise_on_failures: bool = False,
        path: Optional[str] = None,
    ):
        self.scope = scope
        self.parent = parent
        self.path = path if path is not None else (parent.path if parent else "")
        self.context = context if context is not None else (parent.context if parent else None)
        self.reason = reason or (parent.reason if parent else "")
        self.raise_on_failures = raise_on_failures
        self.closed = False
        self.result: list[Failure] = []
        self._failures: list[Failure] = []
        self._seen: set[str] = set()

    @property
    def failures(self) -> list[Failure]:
        return list(self._failures)

    def has_failures(self) -> bool:
        return bool(self._failures)

    def add(self, failure: Failure) -> bool:
        """Record a failure unless the same message is already present."""
        if failure.message in self._seen:
            return False
        self._seen.add(failure.message)
        self._failures.append(failure)
        return True

    def discard(self) -> list[Failure]:
        """Drop everything collected so far and return it."""
        dropped = self._failures
        self._failures = []
        self._seen = set()
        return dropped

    def __enter__(self) -> "ScopeHandle":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if not self.closed:
            self.scope.close(self, raising=exc_type is None)
        return False


class FailureScope:
    """
    Ownership stack of failure collectors for one unit of comparison work.

    Only the innermost open handle accepts failures. Closing a handle merges
    its failures into its parent; closing the root yields the final ordered,
    deduplicated failure list (or raises it, when opened with
    `raise_on_failures=True`).
    """

    def __init__(self):
        self._handles: list[ScopeHandle] = []

    @property
    def depth(self) -> int:
        return len(self._handles)

    @property
    def current(self) -> Optional[ScopeHandle]:
        return self._handles[-1] if self._handles else None

    def open(
        self,
        context: Optional[str] = None,
        reason: str = "",
        raise_on_failures: bool = False,
        path: Optional[str] = None,
    ) -> ScopeHandle:
        handle = ScopeHandle(self, self.current, context, reason, raise_on_failures, path)
        self._handles.append(handle)
        return handle

    def _require_current(self) -> ScopeHandle:
        if not self._handles:
            raise EquivDiffError("No failure scope is open")
        return self._handles[-1]

    def fail(self, failure: Failure) -> None:
        self._require_current().add(failure)

    def fail_with(
        self,
        template: str,
        *args,
        node: Optional[ComparisonNode] = None,
        failure_type: FailureType = FailureType.CUSTOM,
    ) -> Failure:
        """Render a failure template against the current handle and record it."""
        handle = self._require_current()
        context = node.description if node is not None else handle.context
        message = render_message(template, args, handle.reason, context)
        failure = Failure(
            path=node.path if node is not None else handle.path,
            type=failure_type,
            message=message,
        )
        handle.add(failure)
        return failure

    def has_failures(self) -> bool:
        handle = self.current
        return handle is not None and handle.has_failures()

    def discard(self) -> list[Failure]:
        return self._require_current().discard()

    def close(self, handle: ScopeHandle, raising: bool = True) -> list[Failure]:
        if handle.closed:
            raise EquivDiffError("Failure scope was already closed")
        if self.current is not handle:
            raise EquivDiffError("Only the innermost failure scope can be closed")

        self._handles.pop()
        handle.closed = True
        failures = handle.failures

        if handle.parent is not None:
            for failure in failures:
                handle.parent.add(failure)
            return failures

        handle.result = failures
        if failures:
            logger.debug("Root failure scope closed with %d failure(s)", len(failures))
        if failures and handle.raise_on_failures and raising:
            raise EquivalencyAssertionError(failures)
        return failures

    @contextmanager
    def activate(self):
        """Make this scope the one ambient assertions report into."""
        token = _active_scope.set(self)
        try:
            yield self
        finally:
            _active_scope.reset(token)


def active_scope() -> Optional[FailureScope]:
    """The scope of the comparison or assertion_scope() currently running, if any."""
    scope = _active_scope.get()
    if scope is None or scope.current is None:
        return None
    return scope
