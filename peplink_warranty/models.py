from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class Organization:
    id: Union[int, str]
    name: str


@dataclass(frozen=True)
class Device:
    serial_number: Optional[str]
    expiry_date: Optional[str]  # literal value from the API, parsed later
    expired: bool = False


@dataclass(frozen=True)
class ReportRow:
    org_name: str
    serial_number: str
    warranty_expiry_date: str
    days_until_expiry: int
    is_expired: str  # "YES" | "NO"

    def as_fields(self) -> tuple[str, str, str, str, str]:
        return (
            self.org_name,
            self.serial_number,
            self.warranty_expiry_date,
            str(self.days_until_expiry),
            self.is_expired,
        )


@dataclass
class RunSummary:
    csv_text: str
    organizations: int = 0
    failed_organizations: int = 0
    devices_seen: int = 0
    devices_skipped: int = 0
    rows: int = 0
    delivered: bool = False
