from typing import Iterable

from phoning_tracker.models import Row

EXPORT_FILENAME = "phoning_restaurants.csv"

EXPORT_HEADERS = [
    "Restaurant",
    "Adresse",
    "Téléphone",
    "Nouveau",
    "Etoiles",
    "Arr",
    "Statut",
    "Dernière MAJ",
    "Commentaire",
    "CV envoyé",
    "LM envoyé",
]


def quote_cell(value) -> str:
    text = "" if value is None else str(value)
    return '"' + text.replace('"', '""') + '"'


def row_cells(row: Row):
    return [
        row.name,
        row.address,
        row.phone,
        row.new,
        row.stars,
        row.arr,
        row.status,
        row.last_updated,
        row.comment.replace("\r\n", " ").replace("\r", " ").replace("\n", " "),
        "1" if row.cv_sent else "0",
        "1" if row.cover_letter_sent else "0",
    ]


def export_csv(rows: Iterable[Row]) -> str:
    """Render every row as CSV text, ignoring any active filter."""
    lines = [",".join(EXPORT_HEADERS)]
    for row in rows:
        lines.append(",".join(quote_cell(c) for c in row_cells(row)))
    return "\n".join(lines)
