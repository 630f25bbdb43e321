from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

# --------------------------------
# Settings

# InControl API host (token endpoint and REST API share it)
DEFAULT_API_BASE_URL = "https://api.ic.peplink.com"

# Warranty look-ahead window in days
WARRANTY_HORIZON_DAYS = 90

# HTTP timeout for each API call (seconds)
DEFAULT_HTTP_TIMEOUT = 20.0

# Report attachment
REPORT_FILENAME = "peplink_ic2_warranty_report.csv"
REPORT_MIMETYPE = "text/csv"

REQUIRED_ENV_KEYS = (
    "PEPLINK_CLIENT_ID",
    "PEPLINK_CLIENT_SECRET",
    "SMTP_HOST",
    "SMTP_PORT",
    "SMTP_USER",
    "SMTP_PASS",
    "SMTP_TO",
)
# --------------------------------


class ConfigurationError(ValueError):
    """Raised when required settings are missing or unusable."""

    def __init__(self, message: str, missing: Optional[List[str]] = None):
        super().__init__(message)
        self.missing = missing or []


@dataclass(frozen=True)
class Settings:
    client_id: str
    client_secret: str = field(repr=False)
    smtp_host: str
    smtp_port: int
    smtp_user: str
    smtp_pass: str = field(repr=False)
    smtp_to: str
    smtp_from: str
    api_base_url: str = DEFAULT_API_BASE_URL
    send_empty_report: bool = True
    http_timeout: float = DEFAULT_HTTP_TIMEOUT

    @staticmethod
    def from_env(environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = environ if environ is not None else os.environ

        def optional(name: str) -> str | None:
            value = env.get(name)
            if value is None or not value.strip():
                return None
            return value.strip()

        def optional_with_default(name: str, default: str) -> str:
            return optional(name) or default

        missing = [name for name in REQUIRED_ENV_KEYS if optional(name) is None]
        if missing:
            raise ConfigurationError(
                f"Environment variable(s) required: {', '.join(missing)}", missing=missing
            )

        raw_port = env["SMTP_PORT"].strip()
        try:
            smtp_port = int(raw_port)
        except ValueError as exc:
            raise ConfigurationError(f"SMTP_PORT must be an integer, got {raw_port!r}.") from exc

        raw_timeout = optional_with_default("HTTP_TIMEOUT_SECONDS", str(DEFAULT_HTTP_TIMEOUT))
        try:
            http_timeout = float(raw_timeout)
        except ValueError as exc:
            raise ConfigurationError(f"HTTP_TIMEOUT_SECONDS must be a number, got {raw_timeout!r}.") from exc

        send_empty = optional_with_default("SEND_EMPTY_REPORT", "true").lower() in ("true", "1", "yes")

        smtp_user = env["SMTP_USER"].strip()
        return Settings(
            client_id=env["PEPLINK_CLIENT_ID"].strip(),
            client_secret=env["PEPLINK_CLIENT_SECRET"].strip(),
            smtp_host=env["SMTP_HOST"].strip(),
            smtp_port=smtp_port,
            smtp_user=smtp_user,
            smtp_pass=env["SMTP_PASS"],
            smtp_to=env["SMTP_TO"].strip(),
            smtp_from=optional_with_default("SMTP_FROM", smtp_user),
            api_base_url=optional_with_default("PEPLINK_API_BASE_URL", DEFAULT_API_BASE_URL).rstrip("/"),
            send_empty_report=send_empty,
            http_timeout=http_timeout,
        )
