"""Dotted-path lookup into raw Jira issue records."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Final


class _Missing:
    """Marker for a path that does not exist on a record."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Final[Any] = _Missing()


def resolve_attribute(record: Any, path: str) -> Any:  # noqa: ANN401 - records are untyped JSON
    """Resolve a dotted path like ``fields.assignee.emailAddress`` against a record.

    Mapping keys are looked up first, numeric segments index into lists, and
    anything else falls back to attribute access. A present key holding
    ``None`` resolves to ``None``; an absent step anywhere resolves to
    ``MISSING``. Never raises.
    """
    current = record
    for segment in path.split("."):
        if isinstance(current, Mapping):
            if segment not in current:
                return MISSING
            current = current[segment]
        elif isinstance(current, Sequence) and not isinstance(current, str | bytes):
            try:
                current = current[int(segment)]
            except (ValueError, IndexError):
                return MISSING
        elif current is None:
            return MISSING
        else:
            current = getattr(current, segment, MISSING)
            if current is MISSING:
                return MISSING
    return current
