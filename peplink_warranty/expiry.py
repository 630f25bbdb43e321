from __future__ import annotations

import logging
import math
import re
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Tuple

from .config import WARRANTY_HORIZON_DAYS
from .models import Device, ReportRow

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")
_SECONDS_PER_DAY = 24 * 60 * 60


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def normalize_serial(value: str) -> str:
    return _NON_ALNUM.sub("", value)


def parse_expiry_date(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 date or date-time; naive values are taken as UTC.

    Date-only values ("2025-02-15") mean midnight UTC. Naive date-times are
    also read as UTC, so on a host whose local zone is not UTC they land a
    few hours away from where a local-time reading would put them.
    Returns None instead of raising so one bad record cannot abort the run.
    """
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    normalized = text[:-1] + "+00:00" if text.endswith("Z") else text
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def days_until(expiry: datetime, now: datetime) -> int:
    return math.ceil((expiry - now).total_seconds() / _SECONDS_PER_DAY)


def partition_expiring(
    devices: Iterable[Device],
    organization_name: str,
    now: datetime,
    horizon_days: int = WARRANTY_HORIZON_DAYS,
) -> Tuple[List[ReportRow], int]:
    """Return (rows expiring within the horizon, number of malformed devices skipped)."""
    cutoff = now + timedelta(days=horizon_days)
    rows: List[ReportRow] = []
    skipped = 0
    for device in devices:
        if not device.serial_number or not device.expiry_date:
            skipped += 1
            continue
        expiry = parse_expiry_date(device.expiry_date)
        if expiry is None:
            logger.debug("Unparseable expiry date %r for serial %s", device.expiry_date, device.serial_number)
            skipped += 1
            continue
        if expiry > cutoff:
            continue
        rows.append(
            ReportRow(
                org_name=organization_name,
                serial_number=normalize_serial(device.serial_number),
                warranty_expiry_date=device.expiry_date,
                days_until_expiry=days_until(expiry, now),
                is_expired="YES" if device.expired else "NO",
            )
        )
    if skipped:
        logger.info("Skipped %s device(s) in org %s with missing serial or expiry date.", skipped, organization_name)
    return rows, skipped


def select_expiring(
    devices: Iterable[Device],
    organization_name: str,
    now: datetime,
    horizon_days: int = WARRANTY_HORIZON_DAYS,
) -> List[ReportRow]:
    rows, _ = partition_expiring(devices, organization_name, now, horizon_days)
    return rows
