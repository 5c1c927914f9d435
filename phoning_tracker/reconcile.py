"""
State transitions for the tracker Store.

Every mutation is an action reduced by `reduce(store, action)`, a pure
function returning a new Store. Saving the snapshot and mirroring rows
to the remote table happen after the transition, in the Tracker.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple, Union

from phoning_tracker.models import (
    EDITABLE_FIELDS,
    Row,
    Store,
    coerce_field,
    initial_store,
    unique_statuses,
)

Incoming = Union[Row, Mapping[str, Any]]

MATCH_BY_ID = "id"
MATCH_BY_NAME_ADDRESS = "name_address"
MATCH_MODES = (MATCH_BY_ID, MATCH_BY_NAME_ADDRESS)


class InvalidPatch(ValueError):
    pass


class RowNotFound(KeyError):
    pass


def clean_patch(patch: Mapping[str, Any]) -> Dict[str, Any]:
    """Validate and coerce a field patch. `id` is never patchable."""
    if "id" in patch:
        raise InvalidPatch("id is immutable")
    unknown = sorted(k for k in patch if k not in EDITABLE_FIELDS)
    if unknown:
        raise InvalidPatch(f"Unknown fields: {', '.join(unknown)}")
    return {k: coerce_field(k, v) for k, v in patch.items()}


def apply_patch(row: Row, patch: Mapping[str, Any]) -> Row:
    return replace(row, **clean_patch(patch))


def _carried_fields(item: Incoming) -> Tuple[str, Dict[str, Any]]:
    if isinstance(item, Row):
        data = item.to_dict()
        return data.pop("id"), data
    if not item.get("id"):
        raise InvalidPatch("Incoming row has no id")
    data = {k: v for k, v in item.items() if k != "id"}
    return str(item["id"]), clean_patch(data)


def merge_rows(existing: Iterable[Row], incoming: Iterable[Incoming]) -> List[Row]:
    """Merge incoming rows into existing ones by id.

    Fields an incoming item carries overwrite the existing row's fields;
    fields it does not carry survive. Existing rows keep their position
    and unknown ids are appended in arrival order.
    """
    by_id: Dict[str, Row] = {}
    for row in existing:
        by_id[row.id] = row

    for item in incoming:
        row_id, values = _carried_fields(item)
        current = by_id.get(row_id)
        if current is None:
            by_id[row_id] = Row(id=row_id, **values)
        else:
            by_id[row_id] = replace(current, **values)

    return list(by_id.values())


def identity_key(row: Row) -> Tuple[str, str]:
    return (" ".join(row.name.lower().split()), " ".join(row.address.lower().split()))


def rebind_by_name_address(existing: Sequence[Row], incoming: Iterable[Row]) -> List[Row]:
    """Give incoming rows the id of an existing row with the same name and address.

    Used when a batch is re-imported in a different order, where the
    positional import ids would no longer line up.
    """
    known = {}
    for row in existing:
        known.setdefault(identity_key(row), row.id)
    return [replace(row, id=known.get(identity_key(row), row.id)) for row in incoming]


@dataclass(frozen=True)
class UpdateRow:
    row_id: str
    patch: Mapping[str, Any]


@dataclass(frozen=True)
class ImportRows:
    rows: Tuple[Row, ...]
    match: str = MATCH_BY_ID


@dataclass(frozen=True)
class LoadRemote:
    rows: Tuple[Row, ...]


@dataclass(frozen=True)
class AddStatus:
    label: str


@dataclass(frozen=True)
class Reset:
    pass


Action = Union[UpdateRow, ImportRows, LoadRemote, AddStatus, Reset]


def reduce(store: Store, action: Action) -> Store:
    if isinstance(action, UpdateRow):
        if store.get(action.row_id) is None:
            raise RowNotFound(action.row_id)
        patch = clean_patch(action.patch)
        rows = tuple(replace(r, **patch) if r.id == action.row_id else r for r in store.rows)
        return replace(store, rows=rows)

    if isinstance(action, ImportRows):
        if action.match not in MATCH_MODES:
            raise InvalidPatch(f"Unknown match mode: {action.match}")
        incoming = list(action.rows)
        if action.match == MATCH_BY_NAME_ADDRESS:
            incoming = rebind_by_name_address(store.rows, incoming)
        return replace(store, rows=tuple(merge_rows(store.rows, incoming)))

    if isinstance(action, LoadRemote):
        return replace(store, rows=tuple(merge_rows(store.rows, action.rows)))

    if isinstance(action, AddStatus):
        return replace(store, statuses=unique_statuses(store.statuses + (action.label,)))

    if isinstance(action, Reset):
        return initial_store()

    raise TypeError(f"Unsupported action: {action!r}")


def changed_rows(before: Store, after: Store) -> List[Row]:
    """Rows in `after` that are new or differ from their counterpart in `before`."""
    previous = {r.id: r for r in before.rows}
    return [r for r in after.rows if previous.get(r.id) != r]
