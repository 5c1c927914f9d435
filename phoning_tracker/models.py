from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from phoning_tracker.dates import normalize_date

VALID_STARS = ("***", "**", "*")
TRUTHY_TOKENS = {"1", "true", "oui", "x"}

DEFAULT_STATUSES = (
    "À contacter",
    "Pas de réponse",
    "Rappel demandé",
    "Rendez-vous pris",
    "Pas intéressé",
)


def coerce_stars(value: Any) -> str:
    token = "".join(str(value or "").split())
    return token if token in VALID_STARS else ""


def coerce_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return bool(value)
    return str(value).strip().lower() in TRUTHY_TOKENS


def coerce_text(value: Any) -> str:
    return "" if value is None else str(value)


def coerce_date(value: Any) -> str:
    return normalize_date(coerce_text(value).strip())


@dataclass(frozen=True)
class Row:
    """One restaurant's tracking record."""
    id: str
    name: str = ""
    address: str = ""
    phone: str = ""
    new: str = ""
    stars: str = ""
    arr: str = ""
    status: str = ""
    last_updated: str = ""
    comment: str = ""
    cv_sent: bool = False
    cover_letter_sent: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], index: int = 0) -> "Row":
        """Build a row from a loosely shaped mapping, defaulting every missing field."""
        row_id = data.get("id")
        values = {name: coerce_field(name, data[name]) for name in EDITABLE_FIELDS if name in data}
        return cls(id=str(row_id) if row_id else f"row-{index}", **values)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


EDITABLE_FIELDS = tuple(f.name for f in fields(Row) if f.name != "id")

FIELD_COERCERS = {
    "stars": coerce_stars,
    "last_updated": coerce_date,
    "cv_sent": coerce_flag,
    "cover_letter_sent": coerce_flag,
}


def coerce_field(name: str, value: Any) -> Any:
    return FIELD_COERCERS.get(name, coerce_text)(value)


@dataclass(frozen=True)
class Store:
    rows: Tuple[Row, ...] = ()
    statuses: Tuple[str, ...] = DEFAULT_STATUSES

    def get(self, row_id: str) -> Optional[Row]:
        for row in self.rows:
            if row.id == row_id:
                return row
        return None


def unique_statuses(labels: Iterable[Any]) -> Tuple[str, ...]:
    seen = []
    for label in labels:
        label = coerce_text(label).strip()
        if label and label not in seen:
            seen.append(label)
    return tuple(seen)


SEED_ROWS = (
    Row(
        id="kei",
        name="Kei",
        address="5 rue Coq Héron, 75001 Paris",
        phone="+33 1 42 33 14 74",
        stars="***",
        arr="75001",
    ),
    Row(
        id="plenitude",
        name="Plénitude (Cheval Blanc Paris)",
        address="8 quai du Louvre, 75001 Paris",
        phone="+33 1 44 50 10 10",
        stars="***",
        arr="75001",
    ),
    Row(
        id="ambroisie",
        name="L'Ambroisie",
        address="9 place des Vosges, 75004 Paris",
        phone="+33 1 42 78 51 45",
        stars="***",
        arr="75004",
    ),
)


def initial_store() -> Store:
    return Store(rows=SEED_ROWS, statuses=DEFAULT_STATUSES)
