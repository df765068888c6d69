"""
Member introspection of arbitrary Python values.

The engine only relies on `enumerate_members()` and the shape predicates in
this module, never on a particular reflection mechanism. Members are the
public readable names of the value being compared: instance attributes,
slots, properties, dataclass/attrs fields, namedtuple fields, or the string
keys of a mapping used as a record.
"""

from __future__ import annotations

import dataclasses
import inspect
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from functools import cached_property
from fractions import Fraction
from pathlib import PurePath
from types import SimpleNamespace
from typing import Any, Callable, Optional
from uuid import UUID

_LEAF_TYPES = (
    str, int, float, complex, bool, Decimal, Fraction,
    datetime, date, time, timedelta, UUID, Enum, PurePath, type, range,
)

BYTE_SEQUENCE_TYPES = (bytes, bytearray, memoryview)


@dataclass(frozen=True)
class Member:
    """A named, readable member of a value."""
    name: str
    getter: Callable[[], Any]
    declared_type: Optional[type] = None

    def get(self) -> Any:
        return self.getter()


def is_byte_sequence(value: Any) -> bool:
    return isinstance(value, BYTE_SEQUENCE_TYPES)


def is_record_type(cls: type) -> bool:
    """Dataclasses, attrs classes, namedtuples and namespaces are compared member by member."""
    return (
        issubclass(cls, SimpleNamespace)
        or dataclasses.is_dataclass(cls)
        or hasattr(cls, "__attrs_attrs__")
        or (issubclass(cls, tuple) and hasattr(cls, "_fields"))
    )


def is_collection(value: Any) -> bool:
    if value is None or isinstance(value, (str, Mapping) + BYTE_SEQUENCE_TYPES):
        return False
    if is_record_type(type(value)):
        return False
    return isinstance(value, Iterable)


def has_value_semantics(value: Any) -> bool:
    """
    True for values compared with `==` rather than member by member.

    Builtin scalars qualify, as does any class overriding `__eq__` that is not
    a record type.
    """
    if isinstance(value, _LEAF_TYPES):
        return True
    cls = type(value)
    if is_record_type(cls):
        return False
    return cls.__eq__ is not object.__eq__


def _getter(value: Any, name: str) -> Callable[[], Any]:
    return lambda: getattr(value, name)


def _key_getter(value: Mapping, key: str) -> Callable[[], Any]:
    return lambda: value[key]


def _annotation(cls: type, name: str) -> Optional[type]:
    for klass in cls.__mro__:
        annotation = getattr(klass, "__annotations__", {}).get(name)
        if isinstance(annotation, type):
            return annotation
    return None


def enumerate_members(value: Any) -> list[Member]:
    """Return the public readable members of `value`, in declaration order."""
    if isinstance(value, Mapping):
        return [
            Member(key, _key_getter(value, key))
            for key in value.keys()
            if isinstance(key, str)
        ]

    cls = type(value)

    if issubclass(cls, tuple) and hasattr(cls, "_fields"):
        return [Member(name, _getter(value, name)) for name in cls._fields]

    names: list[str] = []

    if dataclasses.is_dataclass(value):
        names.extend(f.name for f in dataclasses.fields(value))
    elif hasattr(cls, "__attrs_attrs__"):
        names.extend(a.name for a in cls.__attrs_attrs__)

    try:
        names.extend(vars(value).keys())
    except TypeError:
        pass

    for klass in cls.__mro__:
        slots = klass.__dict__.get("__slots__", ())
        if isinstance(slots, str):
            slots = (slots,)
        names.extend(slots)

    for klass in cls.__mro__:
        if klass is object:
            continue
        for name, attr in klass.__dict__.items():
            if isinstance(attr, property) and attr.fget is not None:
                names.append(name)
            elif isinstance(attr, cached_property):
                names.append(name)

    members = []
    seen = set()
    for name in names:
        if name in seen or name.startswith("_"):
            continue
        seen.add(name)
        if not _is_readable(value, name):
            continue
        members.append(Member(name, _getter(value, name), _annotation(cls, name)))
    return members


def _is_readable(value: Any, name: str) -> bool:
    # slots that were never assigned are not readable members
    descriptor = inspect.getattr_static(value, name, None)
    if descriptor is not None and type(descriptor).__name__ == "member_descriptor":
        try:
            getattr(value, name)
        except AttributeError:
            return False
    return True


def find_member(value: Any, name: str) -> Optional[Member]:
    """Look up one member of `value` by exact name."""
    for member in enumerate_members(value):
        if member.name == name:
            return member
    return None
