import re

DMY_RE = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{2}|\d{4})$")
YMD_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def normalize_date(value: str) -> str:
    """Return `value` as YYYY-MM-DD, or "" when it is not a recognised date.

    Accepts D/M/Y and D-M-Y with a 2 or 4 digit year (2-digit years are
    20xx) and passes canonical dates through. The calendar is not checked,
    so 31/02/2024 becomes 2024-02-31.
    """
    if not value:
        return ""

    m = DMY_RE.match(value)
    if m:
        day, month, year = m.groups()
        if len(year) == 2:
            year = str(int(year) + 2000)
        return f"{year}-{month.zfill(2)}-{day.zfill(2)}"

    if YMD_RE.match(value):
        return value
    return ""
