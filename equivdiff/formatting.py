"""Value formatting and failure message rendering."""

from __future__ import annotations

import re
from collections.abc import Mapping, Set
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

_MAX_LENGTH = 300
_MAX_DEPTH = 2
_PLACEHOLDER = re.compile(r"\{(\d+)\}|\{reason\}|\{context(?::[^}]*)?\}")


class AlreadyFormatted(str):
    """A message argument inserted verbatim, without quoting."""


def format_value(value: Any, depth: int = 0) -> str:
    """Render a value for use inside a failure message."""
    if isinstance(value, AlreadyFormatted):
        return str(value)
    text = _format(value, depth, set())
    if len(text) > _MAX_LENGTH:
        return text[:_MAX_LENGTH - 3] + "..."
    return text


def _format(value: Any, depth: int, seen: set) -> str:
    if value is None:
        return "<null>"
    if isinstance(value, (bool, Enum)):
        return repr(value)
    if isinstance(value, str):
        return f'"{value}"'
    if isinstance(value, (int, float, Decimal, complex)):
        return str(value)
    if isinstance(value, datetime):
        return f"<{value.isoformat(sep=' ')}>"
    if isinstance(value, (date, time, timedelta)):
        return f"<{value}>"
    if isinstance(value, (bytes, bytearray, memoryview)):
        items = bytes(value)
        if not items:
            return "{empty}"
        return "{" + ", ".join(f"0x{b:02X}" for b in items) + "}"

    if id(value) in seen:
        return "{cyclic reference}"
    if depth >= _MAX_DEPTH:
        return type_name(value)

    seen = seen | {id(value)}

    if isinstance(value, Mapping):
        if not value:
            return "{empty}"
        body = ", ".join(
            f"[{_format(k, depth + 1, seen)}] = {_format(v, depth + 1, seen)}"
            for k, v in value.items()
        )
        return "{" + body + "}"

    if isinstance(value, (list, tuple, Set)) and not hasattr(value, "_fields"):
        if not value:
            return "{empty}"
        return "{" + ", ".join(_format(v, depth + 1, seen) for v in value) + "}"

    members = _public_attributes(value)
    if members:
        body = ", ".join(f"{k}={_format(v, depth + 1, seen)}" for k, v in members)
        return f"{type_name(value)}({body})"

    return repr(value)


def _public_attributes(value: Any) -> list:
    if hasattr(value, "_fields"):
        return list(zip(value._fields, value))
    try:
        attrs = vars(value)
    except TypeError:
        return []
    return [(k, v) for k, v in attrs.items() if not k.startswith("_")]


def type_name(value: Any) -> str:
    """Get a friendly type name for a value."""
    if value is None:
        return "<null>"
    if isinstance(value, type):
        return value.__qualname__
    return type(value).__qualname__


def format_reason(because: str = "", *because_args) -> str:
    """Turn a `because` text into the " because ..." suffix used in messages."""
    if not because:
        return ""
    try:
        text = because.format(*because_args) if because_args else because
    except (IndexError, KeyError, ValueError) as e:
        return f" **WARNING** because message '{because}' could not be formatted: {e}"
    text = text.strip()
    if not text.startswith("because"):
        text = "because " + text
    return " " + text


def render_message(
    template: str,
    args: tuple = (),
    reason: str = "",
    context: Optional[str] = None,
) -> str:
    """
    Render a failure template.

    `{0}`, `{1}`, ... are replaced with the formatted arguments, `{reason}`
    with the reason suffix and `{context}` (or `{context:fallback}`) with the
    description of the node being compared.
    """
    def substitute(match: re.Match) -> str:
        token = match.group(0)
        if match.group(1) is not None:
            index = int(match.group(1))
            if index >= len(args):
                return token
            return format_value(args[index])
        if token == "{reason}":
            return reason
        if context:
            return context
        _, _, fallback = token[1:-1].partition(":")
        return fallback or "object"

    message = _PLACEHOLDER.sub(substitute, template)
    return message[:1].upper() + message[1:]
