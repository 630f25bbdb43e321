from __future__ import annotations

from peplink_warranty.models import ReportRow
from peplink_warranty.report import format_csv

HEADER = "org_name,serial_number,warranty_expiry_date,days_until_expiry,is_expired"


def _row(org: str = "Org A", sn: str = "AB1234", days: int = 45) -> ReportRow:
    return ReportRow(
        org_name=org,
        serial_number=sn,
        warranty_expiry_date="2025-02-15",
        days_until_expiry=days,
        is_expired="NO",
    )


def test_empty_report_is_header_only():
    assert format_csv([]) == HEADER


def test_rows_are_quoted_in_encounter_order():
    text = format_csv([_row(), _row(org="Org B", sn="ZZ9", days=-3)])
    lines = text.split("\n")
    assert lines == [
        HEADER,
        '"Org A","AB1234","2025-02-15","45","NO"',
        '"Org B","ZZ9","2025-02-15","-3","NO"',
    ]


def test_line_count_is_rows_plus_one():
    rows = [_row(sn=f"SN{i}") for i in range(7)]
    assert len(format_csv(rows).splitlines()) == len(rows) + 1
    assert not format_csv(rows).endswith("\n")


def test_embedded_quotes_are_doubled():
    text = format_csv([_row(org='The "Main" Office')])
    assert text.split("\n")[1].startswith('"The ""Main"" Office",')


def test_line_breaks_inside_fields_keep_one_row_per_line():
    text = format_csv([_row(org="Org\nX"), _row(org="Branch\r\nY")])
    lines = text.split("\n")
    assert len(lines) == 3
    assert lines[1].startswith('"Org X",')
    assert lines[2].startswith('"Branch Y",')
