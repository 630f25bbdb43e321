from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

import httpx

from . import config
from .auth import acquire_token
from .email_formatter import build_email_body, build_email_subject
from .expiry import partition_expiring, utc_now
from .incontrol_client import DeviceFetchError, InControlClient
from .mailer import Attachment, MailError, MailSender, build_mailer
from .models import ReportRow, RunSummary
from .report import format_csv

logger = logging.getLogger(__name__)


def run(
    settings: config.Settings,
    *,
    now: Optional[datetime] = None,
    transport: Optional[httpx.BaseTransport] = None,
    mailer: Optional[MailSender] = None,
    dry_run: bool = False,
) -> RunSummary:
    """Run the report once: token, organizations, devices, filter, CSV, email.

    AuthError and OrganizationFetchError propagate to the caller; everything
    past the organization list is best-effort.
    """
    now = now or utc_now()

    token = acquire_token(
        settings.client_id,
        settings.client_secret,
        base_url=settings.api_base_url,
        timeout=settings.http_timeout,
        transport=transport,
    )

    rows: List[ReportRow] = []
    summary = RunSummary(csv_text="")
    with InControlClient(
        token, base_url=settings.api_base_url, timeout=settings.http_timeout, transport=transport
    ) as client:
        orgs = client.fetch_organizations()
        summary.organizations = len(orgs)
        if not orgs:
            logger.info("No organizations found or insufficient permissions.")

        for idx, org in enumerate(orgs, start=1):
            logger.info("Fetching devices for org %s/%s id=%s name=%s", idx, len(orgs), org.id, org.name)
            try:
                devices = client.fetch_devices(org.id)
            except DeviceFetchError as exc:
                logger.error("Error fetching devices for org %s: %s", org.id, exc)
                summary.failed_organizations += 1
                continue
            if not devices:
                logger.info("No devices found in org %s.", org.name)
                continue

            org_rows, skipped = partition_expiring(devices, org.name, now)
            summary.devices_seen += len(devices)
            summary.devices_skipped += skipped
            rows.extend(org_rows)

    summary.rows = len(rows)
    summary.csv_text = format_csv(rows)
    _log_run_counts(summary)

    if not rows:
        logger.info("No devices found with warranty expiring within %s days.", config.WARRANTY_HORIZON_DAYS)
    logger.info("CSV report:\n%s", summary.csv_text)

    if dry_run:
        logger.info("Dry run; skipping email delivery.")
        return summary
    if not rows and not settings.send_empty_report:
        logger.info("SEND_EMPTY_REPORT is disabled; skipping email for empty report.")
        return summary

    summary.delivered = _deliver(settings, summary, mailer)
    return summary


def _deliver(settings: config.Settings, summary: RunSummary, mailer: Optional[MailSender]) -> bool:
    subject = build_email_subject()
    text_body, html_body = build_email_body(summary.rows)
    attachment = Attachment(
        filename=config.REPORT_FILENAME, content=summary.csv_text, mimetype=config.REPORT_MIMETYPE
    )
    try:
        sender = mailer or build_mailer(
            host=settings.smtp_host,
            port=settings.smtp_port,
            user=settings.smtp_user,
            password=settings.smtp_pass,
            to_email=settings.smtp_to,
            from_email=settings.smtp_from,
        )
        logger.info("Using mail provider=%s", sender.provider)
        sender.send(subject, text_body, html_body, attachments=[attachment])
    except MailError as exc:
        # The report itself was computed; only delivery failed.
        logger.exception("Error sending email: %s", exc)
        return False
    logger.info("Report emailed to %s.", settings.smtp_to)
    return True


def _log_run_counts(summary: RunSummary) -> None:
    logger.info(
        "Run completed. Orgs=%s FailedOrgs=%s Devices=%s Skipped=%s Rows=%s",
        summary.organizations,
        summary.failed_organizations,
        summary.devices_seen,
        summary.devices_skipped,
        summary.rows,
    )
