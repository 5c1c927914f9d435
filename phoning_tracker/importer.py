"""
Paste import for CSV/TSV text.

- First line is the header. A tab in it selects tab splitting; otherwise
  lines are read as quoted CSV.
- Each logical field maps to the first header cell matching its predicate.
- Malformed input never raises: bad cells come back empty and rows
  without a name are dropped.
"""

from __future__ import annotations

import csv
import re
import unicodedata
from dataclasses import dataclass
from typing import Callable, Dict, List, Tuple

from phoning_tracker.models import Row, coerce_date, coerce_flag, coerce_stars

HEADER_MATCHERS: Dict[str, Callable[[str], bool]] = {
    "name": lambda h: h.startswith("restaurant"),
    "address": lambda h: h.startswith("adresse"),
    "phone": lambda h: h.startswith("télé") or h.startswith("tele"),
    "new": lambda h: h.startswith("nouveau") or "new" in h,
    "stars": lambda h: h.startswith("eto") or "éto" in h,
    "arr": lambda h: h.startswith("arr"),
    "status": lambda h: h.startswith("statut"),
    "last_updated": lambda h: "derni" in h or "maj" in h or "update" in h,
    "comment": lambda h: h.startswith("comment"),
    "cv_sent": lambda h: "cv" in h,
    "cover_letter_sent": lambda h: "lm" in h or "lettre" in h,
}


@dataclass
class ImportResult:
    rows: List[Row]
    rejected: int = 0


def split_csv_line(line: str) -> List[str]:
    reader = csv.reader([line], delimiter=",", quotechar='"', doublequote=True, skipinitialspace=True)
    try:
        cells = next(reader, [])
    except csv.Error:
        # NUL bytes and similar: fall back to a plain split
        cells = line.split(",")
    return [c.strip() for c in cells]


def split_tsv_line(line: str) -> List[str]:
    return line.split("\t")


def slugify(name: str) -> str:
    decomposed = unicodedata.normalize("NFD", (name or "row").lower())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return re.sub(r"[^a-z0-9]+", "-", stripped).strip("-")


def make_row_id(name: str, index: int) -> str:
    return f"{slugify(name)}-{index}"


def map_header(header: List[str]) -> Dict[str, int]:
    """Column index for each logical field, -1 when no header cell matches."""
    cleaned = [h.strip().lower() for h in header]
    mapping = {}
    for field_name, matches in HEADER_MATCHERS.items():
        mapping[field_name] = next((i for i, h in enumerate(cleaned) if matches(h)), -1)
    return mapping


def detect_splitter(first_line: str) -> Callable[[str], List[str]]:
    return split_tsv_line if "\t" in first_line else split_csv_line


def split_lines(text: str) -> List[str]:
    text = unicodedata.normalize("NFC", text or "").strip()
    # Only \n and \r\n end a line; other separators stay inside cells.
    return [line for line in re.split(r"\r?\n", text) if line]


def parse_import(text: str) -> ImportResult:
    lines = split_lines(text)
    if not lines:
        return ImportResult(rows=[])

    cells = detect_splitter(lines[0])
    columns = map_header(cells(lines[0]))

    rows = []
    rejected = 0
    for index, line in enumerate(lines[1:]):
        values = cells(line)

        def get(field_name: str) -> str:
            col = columns[field_name]
            if col < 0 or col >= len(values):
                return ""
            return values[col].strip()

        name = get("name")
        if not name:
            rejected += 1
            continue

        rows.append(Row(
            id=make_row_id(name, index),
            name=name,
            address=get("address"),
            phone=get("phone"),
            new=get("new"),
            stars=coerce_stars(get("stars")),
            arr=get("arr"),
            status=get("status"),
            last_updated=coerce_date(get("last_updated")),
            comment=get("comment"),
            cv_sent=coerce_flag(get("cv_sent")),
            cover_letter_sent=coerce_flag(get("cover_letter_sent")),
        ))

    return ImportResult(rows=rows, rejected=rejected)


def header_report(text: str) -> List[Tuple[str, str]]:
    """(field, matched header cell) pairs, used by the CLI dry-run audit."""
    lines = split_lines(text)
    if not lines:
        return []
    header = detect_splitter(lines[0])(lines[0])
    columns = map_header(header)
    return [(f, header[i].strip() if i >= 0 else "") for f, i in columns.items()]
