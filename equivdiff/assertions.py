"""Assertion-style entry points built on the equivalency engine."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Optional

from .engine import EquivalencyValidator
from .exceptions import EquivalencyAssertionError
from .formatting import format_reason, render_message
from .models import Failure, FailureType
from .options import EquivalencyOptions
from .scope import FailureScope, active_scope


def assert_equivalent(
    subject: Any,
    expectation: Any,
    configure=None,
    because: str = "",
    *because_args,
    defaults: Optional[EquivalencyOptions] = None,
) -> None:
    """
    Assert that `subject` is structurally equivalent to `expectation`.

    `configure` is either EquivalencyOptions or a callable deriving them from
    the defaults, e.g. `lambda o: o.excluding("Id").with_strict_ordering()`.
    """
    validator = EquivalencyValidator(defaults)
    validator.assert_equivalent(subject, expectation, configure, because, *because_args)


@contextmanager
def assertion_scope(context: Optional[str] = None, because: str = "", *because_args):
    """
    Collect the failures of every assertion made inside the block and raise
    them together when the block ends.

    Nested scopes hand their failures to the enclosing one instead.
    """
    reason = format_reason(because, *because_args)
    outer = active_scope()
    if outer is not None:
        with outer.open(context=context, reason=reason) as handle:
            yield handle
        return

    scope = FailureScope()
    with scope.activate():
        with scope.open(context=context, reason=reason, raise_on_failures=True) as handle:
            yield handle


def fail_with(template: str, *args) -> Failure:
    """
    Report a custom failure.

    Inside a scope the failure is recorded and returned; outside of one it is
    raised right away.
    """
    scope = active_scope()
    if scope is not None:
        return scope.fail_with(template, *args)

    failure = Failure(
        path="",
        type=FailureType.CUSTOM,
        message=render_message(template, args),
    )
    raise EquivalencyAssertionError([failure])
