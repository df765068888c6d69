"""Example usage of the equivdiff equivalency engine."""

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from equivdiff import (
    EquivalencyAssertionError,
    EquivalencyOptions,
    EquivalencyValidator,
    assert_equivalent,
    assertion_scope,
    close_to,
)


class Status(Enum):
    PENDING = "pending"
    PAID = "paid"


@dataclass
class LineItem:
    sku: str
    quantity: int
    unit_price: float


@dataclass
class Invoice:
    id: str
    total: float
    status: Status
    created_at: datetime
    line_items: list = field(default_factory=list)
    updated_at: datetime = None


# Invoice produced by the code under test
actual = Invoice(
    id="INV-001",
    total=100.004,
    status=Status.PAID,
    created_at=datetime(2025, 2, 2, 10, 30),
    updated_at=datetime(2025, 2, 2, 11, 0),  # Will be excluded
    line_items=[
        LineItem("GADGET-002", 2, 25.50),
        LineItem("WIDGET-001", 5, 10.00),
    ],
)

# Expected shape, described with plain dictionaries
expected = {
    "id": "INV-001",
    "total": 100.0,  # Within precision
    "status": "paid",  # Compared by value
    "created_at": "2025-02-02T10:30:00",  # Converted to a datetime
    "updated_at": None,
    "line_items": [  # Order is irrelevant by default
        {"sku": "WIDGET-001", "quantity": 5, "unit_price": 10.00},
        {"sku": "GADGET-002", "quantity": 2, "unit_price": 25.50},
    ],
}

defaults = (
    EquivalencyOptions()
    .excluding("updated_at")
    .with_comparer(float, close_to(0.01))
)


def main():
    print("=" * 60)
    print("equivdiff Equivalency Engine - Example")
    print("=" * 60)

    validator = EquivalencyValidator(defaults)
    result = validator.compare(actual, expected)

    print(f"\nMatch: {result.is_match}")
    print(f"\nExecution:")
    print(f"  Duration: {result.execution.duration_ms}ms")
    print(f"  Engine Version: {result.execution.engine_version}")

    print(f"\nSummary:")
    print(f"  Members Compared: {result.summary.members_compared}")
    print(f"  Failures: {result.summary.failures_found}")

    print("\n" + "-" * 60)
    print("Full JSON Report:")
    print(json.dumps(result.to_dict(), indent=2))


def example_with_mismatch():
    """Example that demonstrates mismatches."""
    print("\n" + "=" * 60)
    print("Example with Mismatch")
    print("=" * 60)

    mismatched = dict(expected, status="pending", line_items=[
        {"sku": "WIDGET-001", "quantity": 4, "unit_price": 10.00},  # Quantity changed
        {"sku": "GADGET-002", "quantity": 2, "unit_price": 25.50},
    ])

    try:
        assert_equivalent(actual, mismatched, defaults, "the invoice was {0}", "paid")
    except EquivalencyAssertionError as e:
        print(f"\nFailures found: {len(e.failures)}")
        for failure in e.failures:
            print(f"  - [{failure.type.value}] {failure.path}")
            print(f"    {failure.message}")


def example_with_scope():
    """Example collecting several assertions into one failure."""
    print("\n" + "=" * 60)
    print("Example with Assertion Scope")
    print("=" * 60)

    try:
        with assertion_scope():
            assert_equivalent(actual.id, "INV-002")
            assert_equivalent(actual.line_items, [], lambda o: o.with_strict_ordering())
    except EquivalencyAssertionError as e:
        print(f"\n{e}")


def example_with_tracing():
    """Example with rule tracing enabled."""
    print("\n" + "=" * 60)
    print("Example with Rule Tracing")
    print("=" * 60)

    validator = EquivalencyValidator(defaults.with_tracing())
    result = validator.compare(actual, expected)

    if result.trace:
        print(f"\nRule Traces:")
        for trace in result.trace:
            print(f"  - {trace.path}: {trace.rule} -> {trace.action}")
            if trace.details:
                print(f"    Details: {trace.details}")


if __name__ == "__main__":
    main()
    example_with_mismatch()
    example_with_scope()
    example_with_tracing()
