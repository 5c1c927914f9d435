from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Sequence

from phoning_tracker.models import Row

ALL = "all"


@dataclass(frozen=True)
class Filters:
    stars: str = ALL
    arr: str = ALL
    status: str = ALL
    query: str = ""

    @classmethod
    def from_params(cls, params: Any) -> "Filters":
        return cls(
            stars=params.get("stars") or ALL,
            arr=params.get("arr") or ALL,
            status=params.get("status") or ALL,
            query=params.get("q") or "",
        )


def matches(row: Row, filters: Filters) -> bool:
    if filters.stars != ALL and row.stars != filters.stars:
        return False
    if filters.arr != ALL and row.arr != filters.arr:
        return False
    if filters.status != ALL and row.status != filters.status:
        return False
    text = f"{row.name} {row.address} {row.phone}".lower()
    return filters.query.lower() in text


def filter_rows(rows: Iterable[Row], filters: Filters) -> List[Row]:
    return [r for r in rows if matches(r, filters)]


def status_counts(rows: Iterable[Row], statuses: Sequence[str]) -> Dict[str, int]:
    """Row count per known status label; unknown statuses are not counted."""
    counts = {s: 0 for s in statuses}
    for row in rows:
        if row.status and row.status in counts:
            counts[row.status] += 1
    return counts


def _distinct(values: Iterable[str]) -> List[str]:
    seen = {}
    for v in values:
        if v:
            seen.setdefault(v, None)
    return list(seen)


def star_options(rows: Iterable[Row]) -> List[str]:
    return [ALL] + _distinct(r.stars for r in rows)


def arr_options(rows: Iterable[Row]) -> List[str]:
    return [ALL] + sorted(_distinct(r.arr for r in rows))


def status_options(statuses: Sequence[str]) -> List[str]:
    return [ALL] + list(statuses)


def toggle_status_filter(filters: Filters, label: str) -> Filters:
    """KPI chip click: select the status, or go back to "all" if it was already selected."""
    status = ALL if filters.status == label else label
    return Filters(stars=filters.stars, arr=filters.arr, status=status, query=filters.query)


def build_view(rows: Sequence[Row], statuses: Sequence[str], filters: Filters) -> Dict[str, Any]:
    visible = filter_rows(rows, filters)
    return {
        "rows": [r.to_dict() for r in visible],
        "total": len(rows),
        "visible": len(visible),
        "by_status": status_counts(rows, statuses),
        "options": {
            "stars": star_options(rows),
            "arr": arr_options(rows),
            "status": status_options(statuses),
        },
        "filters": {
            "stars": filters.stars,
            "arr": filters.arr,
            "status": filters.status,
            "q": filters.query,
        },
    }
