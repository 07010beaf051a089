from tasktrail.activity.diff import (
    ChangeSet,
    ChangeValue,
    FieldChange,
    canonical_instant,
    changes_to_json,
    merge_changes,
    scalar_changes,
    set_change,
    temporal_change,
)

__all__ = [
    "ChangeSet",
    "ChangeValue",
    "FieldChange",
    "canonical_instant",
    "changes_to_json",
    "merge_changes",
    "scalar_changes",
    "set_change",
    "temporal_change",
]
