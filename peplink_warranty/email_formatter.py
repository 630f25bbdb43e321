from __future__ import annotations

from html import escape
from typing import Tuple

from .config import WARRANTY_HORIZON_DAYS

EMAIL_SUBJECT = "Peplink Warranty Expiry Report"


def build_email_subject() -> str:
    return EMAIL_SUBJECT


def build_email_body(row_count: int) -> Tuple[str, str]:
    intro = f"Please see attached CSV with devices expiring in <= {WARRANTY_HORIZON_DAYS} days."
    reminder = "these are only representative of devices we have InControl access to!"
    if row_count == 0:
        status = f"No devices found with warranty expiring within {WARRANTY_HORIZON_DAYS} days."
    else:
        status = f"{row_count} device(s) listed."

    text_body = "\n".join([intro, status, "", f"Remember that {reminder}"])
    html_body = (
        "<html><body>"
        f"<p>{escape(intro)}<br>{status}</p>"
        f"<p><b>Remember</b> that {reminder}</p>"
        "</body></html>"
    )
    return text_body, html_body
