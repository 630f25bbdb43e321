from __future__ import annotations

import re
from typing import Iterable, List

from .models import ReportRow

CSV_HEADER = ("org_name", "serial_number", "warranty_expiry_date", "days_until_expiry", "is_expired")
_LINE_BREAKS = re.compile(r"\r\n|\r|\n")


def quote_field(value: str) -> str:
    # one report row per line: line breaks inside a value become spaces
    flat = _LINE_BREAKS.sub(" ", value)
    return '"' + flat.replace('"', '""') + '"'


def format_csv(rows: Iterable[ReportRow]) -> str:
    """
    Render report rows as CSV text.

    - Header line is unquoted, data fields are always double-quoted.
    - Lines are joined with "\\n" and there is no trailing newline,
      so the text has exactly len(rows) + 1 lines.
    """
    lines: List[str] = [",".join(CSV_HEADER)]
    for row in rows:
        lines.append(",".join(quote_field(value) for value in row.as_fields()))
    return "\n".join(lines)
