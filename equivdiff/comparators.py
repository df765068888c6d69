"""Comparison functions for leaf (value) nodes."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from pathlib import PurePath
from typing import Any
from uuid import UUID

from .models import EnumHandling

logger = logging.getLogger(__name__)

_NOT_CONVERTED = object()


@dataclass(frozen=True)
class LeafResult:
    """Outcome of a leaf comparison, with the message template to use on failure."""
    is_match: bool
    template: str = ""
    args: tuple = ()
    converted: bool = False


def is_numeric(value: Any) -> bool:
    """Check if a value is a number (bools are not numbers)."""
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def values_equal(subject: Any, expectation: Any) -> bool:
    """Equality of two leaves, keeping bool apart from int and NaN equal to NaN."""
    if subject is expectation:
        return True
    if isinstance(subject, bool) or isinstance(expectation, bool):
        return isinstance(subject, bool) and isinstance(expectation, bool) and subject == expectation
    if isinstance(subject, float) and isinstance(expectation, float):
        if math.isnan(subject) and math.isnan(expectation):
            return True
    return bool(subject == expectation)


def numbers_within(subject: Any, expectation: Any, precision: float) -> bool:
    """True if both values are numbers no further than `precision` apart."""
    try:
        return abs(float(subject) - float(expectation)) <= precision
    except (ValueError, TypeError):
        return False


def parse_datetime(value: str) -> datetime:
    """Parse an ISO 8601 timestamp; a trailing `Z` means UTC."""
    try:
        return datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
    except ValueError:
        raise ValueError(f"Cannot parse datetime '{value}' as ISO8601")


def convert(value: Any, target: type) -> Any:
    """
    Convert `value` to `target`, or return _NOT_CONVERTED.

    Only string <-> scalar and number <-> number conversions are attempted.
    """
    if value is None or isinstance(value, target):
        return _NOT_CONVERTED

    try:
        if issubclass(target, bool):
            if isinstance(value, str) and value.strip().lower() in ('true', 'false'):
                return value.strip().lower() == 'true'
            return _NOT_CONVERTED
        if issubclass(target, Enum):
            if isinstance(value, str) and value in target.__members__:
                return target[value]
            return target(value)
        if issubclass(target, int):
            if isinstance(value, str):
                return target(value.strip())
            if is_numeric(value) and float(value).is_integer():
                return target(value)
            return _NOT_CONVERTED
        if issubclass(target, (float, Decimal)):
            if isinstance(value, str) or is_numeric(value):
                return target(str(value).strip() if isinstance(value, str) else value)
            return _NOT_CONVERTED
        if issubclass(target, datetime):
            if isinstance(value, str):
                return parse_datetime(value)
            return _NOT_CONVERTED
        if issubclass(target, date):
            if isinstance(value, str):
                return parse_datetime(value).date()
            return _NOT_CONVERTED
        if issubclass(target, UUID):
            if isinstance(value, str):
                return UUID(value)
            return _NOT_CONVERTED
        if issubclass(target, PurePath):
            if isinstance(value, str):
                return target(value)
            return _NOT_CONVERTED
        if issubclass(target, str):
            if is_numeric(value) or isinstance(value, (UUID, PurePath)):
                return str(value)
            if isinstance(value, Enum):
                return value.name
            return _NOT_CONVERTED
    except (ValueError, TypeError, InvalidOperation, KeyError):
        return _NOT_CONVERTED

    return _NOT_CONVERTED


def _compare_enums(subject: Any, expectation: Any, handling: EnumHandling) -> LeafResult:
    if handling == EnumHandling.BY_NAME:
        subject_name = subject.name if isinstance(subject, Enum) else subject
        expectation_name = expectation.name if isinstance(expectation, Enum) else expectation
        if subject_name == expectation_name:
            return LeafResult(True)
        return LeafResult(
            False,
            "Expected {context} to equal {0} by name{reason}, but found {1}.",
            (expectation, subject),
        )

    subject_value = subject.value if isinstance(subject, Enum) else subject
    expectation_value = expectation.value if isinstance(expectation, Enum) else expectation
    if values_equal(subject_value, expectation_value):
        return LeafResult(True)
    return LeafResult(
        False,
        "Expected {context} to equal {0} by value{reason}, but found {1}.",
        (expectation, subject),
    )


def compare_leaf(
    subject: Any,
    expectation: Any,
    enum_handling: EnumHandling = EnumHandling.BY_VALUE,
    allow_conversion: bool = True,
) -> LeafResult:
    """Compare two values that have no members of their own."""
    if isinstance(subject, Enum) or isinstance(expectation, Enum):
        return _compare_enums(subject, expectation, enum_handling)

    if values_equal(subject, expectation):
        return LeafResult(True)

    if allow_conversion:
        converted = convert(subject, type(expectation))
        if converted is not _NOT_CONVERTED and values_equal(converted, expectation):
            logger.debug("Converted %r to %s to match the expectation", subject, type(expectation).__name__)
            return LeafResult(True, converted=True)
        converted = convert(expectation, type(subject))
        if converted is not _NOT_CONVERTED and values_equal(subject, converted):
            logger.debug("Converted expectation %r to %s", expectation, type(subject).__name__)
            return LeafResult(True, converted=True)

    return LeafResult(
        False,
        "Expected {context} to be {0}{reason}, but found {1}.",
        (expectation, subject),
    )
