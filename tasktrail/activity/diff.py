"""Field-level change detection between two snapshots of a task.

Every function here is pure: inputs are never mutated and the result is an
empty mapping when nothing changed, so callers can merge the partial results
of the scalar, temporal and set diffs into a single change set.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any, TypeAlias

from tasktrail.core.errors import ValidationFailedError

ChangeValue: TypeAlias = str | int | float | bool | list[str] | None


@dataclass(frozen=True, slots=True)
class FieldChange:
    old: ChangeValue
    new: ChangeValue

    def to_json(self) -> dict[str, ChangeValue]:
        return {"old": self.old, "new": self.new}


ChangeSet: TypeAlias = dict[str, FieldChange]


def to_change_value(value: Any) -> ChangeValue:
    """Reduce a field value to the closed set of types a change set may hold."""
    if value is None or isinstance(value, bool | int | float):
        return value
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, datetime | date):
        return canonical_instant(value)
    if isinstance(value, str):
        return value
    if isinstance(value, Iterable):
        return sorted(str(item) for item in value)
    return str(value)


def canonical_instant(value: datetime | date | str | None, *, field: str = "dueDate") -> str | None:
    """Normalize a timestamp-like value to a UTC ISO-8601 string with millisecond precision.

    Naive datetimes are taken as UTC; bare dates mean midnight UTC.
    """
    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            parsed: datetime | date = datetime.fromisoformat(text)
        except ValueError as exc:
            raise ValidationFailedError(
                f"{field} must be an ISO-8601 date or datetime, got {value!r}",
                field=field,
            ) from exc
        value = parsed
    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day, tzinfo=UTC)
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    instant = value.astimezone(UTC)
    return instant.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def scalar_changes(
    original: Mapping[str, Any],
    updates: Mapping[str, Any],
    fields: Iterable[str],
) -> ChangeSet:
    changes: ChangeSet = {}
    for field in fields:
        if field not in updates:
            continue
        old = to_change_value(original.get(field))
        new = to_change_value(updates[field])
        if old != new:
            changes[field] = FieldChange(old=old, new=new)
    return changes


def temporal_change(
    original: datetime | date | str | None,
    updated: datetime | date | str | None,
    field: str = "dueDate",
) -> ChangeSet:
    old = canonical_instant(original, field=field)
    new = canonical_instant(updated, field=field)
    if old == new:
        return {}
    return {field: FieldChange(old=old, new=new)}


def set_change(
    old_ids: Collection[str],
    new_ids: Collection[str],
    field: str,
) -> ChangeSet:
    sorted_old = sorted(old_ids)
    sorted_new = sorted(new_ids)
    if sorted_old == sorted_new:
        return {}
    return {field: FieldChange(old=sorted_old, new=sorted_new)}


def merge_changes(*parts: ChangeSet) -> ChangeSet:
    merged: ChangeSet = {}
    for part in parts:
        merged.update(part)
    return merged


def changes_to_json(changes: ChangeSet) -> dict[str, dict[str, ChangeValue]]:
    return {field: change.to_json() for field, change in changes.items()}
