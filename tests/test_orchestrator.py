from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Dict, List

import httpx
import pytest

from peplink_warranty.auth import AuthRequestFailedError
from peplink_warranty.config import Settings
from peplink_warranty.incontrol_client import OrganizationFetchError
from peplink_warranty.mailer import MailError
from peplink_warranty.orchestrator import run

NOW = datetime(2025, 1, 1, tzinfo=timezone.utc)
HEADER = "org_name,serial_number,warranty_expiry_date,days_until_expiry,is_expired"


def _settings(**overrides) -> Settings:
    values = dict(
        client_id="cid",
        client_secret="secret",
        smtp_host="smtp.example.com",
        smtp_port=465,
        smtp_user="reports@example.com",
        smtp_pass="pw",
        smtp_to="ops@example.com",
        smtp_from="reports@example.com",
        api_base_url="https://api.test",
    )
    values.update(overrides)
    return Settings(**values)


class FakeMailer:
    provider = "fake"

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[dict] = []

    def send(self, subject, text_body, html_body=None, attachments=()):
        if self.fail:
            raise MailError("relay refused connection")
        self.sent.append({"subject": subject, "text": text_body, "attachments": list(attachments)})


class FakeApi:
    def __init__(self, routes: Dict[str, Callable[[httpx.Request], httpx.Response]]):
        self.routes = {"/api/oauth2/token": lambda r: httpx.Response(200, json={"access_token": "tok"})}
        self.routes.update(routes)
        self.paths: List[str] = []

    def transport(self) -> httpx.MockTransport:
        def handler(request: httpx.Request) -> httpx.Response:
            self.paths.append(request.url.path)
            return self.routes[request.url.path](request)

        return httpx.MockTransport(handler)


def _json(payload) -> Callable[[httpx.Request], httpx.Response]:
    return lambda request: httpx.Response(200, json=payload)


def test_no_organizations_still_sends_header_only_report():
    api = FakeApi({"/rest/o": _json({"data": []})})
    mailer = FakeMailer()

    summary = run(_settings(), now=NOW, transport=api.transport(), mailer=mailer)

    assert summary.csv_text == HEADER
    assert summary.organizations == 0
    assert summary.delivered is True
    assert len(mailer.sent) == 1
    attachment = mailer.sent[0]["attachments"][0]
    assert attachment.filename == "peplink_ic2_warranty_report.csv"
    assert attachment.content == HEADER


def test_expiring_device_is_reported_with_normalized_serial():
    api = FakeApi(
        {
            "/rest/o": _json({"data": [{"id": 1, "name": "Org A"}]}),
            "/rest/o/1/d": _json({"data": [{"sn": "AB-12 34", "expiry_date": "2025-02-15", "expired": False}]}),
        }
    )
    mailer = FakeMailer()

    summary = run(_settings(), now=NOW, transport=api.transport(), mailer=mailer)

    assert summary.csv_text == HEADER + '\n"Org A","AB1234","2025-02-15","45","NO"'
    assert mailer.sent[0]["subject"] == "Peplink Warranty Expiry Report"
    assert mailer.sent[0]["attachments"][0].content == summary.csv_text


def test_device_outside_horizon_yields_header_only():
    api = FakeApi(
        {
            "/rest/o": _json({"data": [{"id": 1, "name": "Org A"}]}),
            "/rest/o/1/d": _json({"data": [{"sn": "X1", "expiry_date": "2025-05-01", "expired": False}]}),
        }
    )
    summary = run(_settings(), now=NOW, transport=api.transport(), mailer=FakeMailer())
    assert summary.csv_text == HEADER
    assert summary.rows == 0


def test_failed_org_fetch_does_not_block_other_orgs():
    api = FakeApi(
        {
            "/rest/o": _json({"data": [{"id": "a", "name": "Org A"}, {"id": "b", "name": "Org B"}]}),
            "/rest/o/a/d": lambda r: httpx.Response(500, text="boom"),
            "/rest/o/b/d": _json({"data": [{"sn": "B-1", "expiry_date": "2025-01-11", "expired": False}]}),
        }
    )
    summary = run(_settings(), now=NOW, transport=api.transport(), mailer=FakeMailer())

    assert summary.csv_text.split("\n") == [HEADER, '"Org B","B1","2025-01-11","10","NO"']
    assert summary.failed_organizations == 1


def test_token_failure_aborts_before_any_inventory_call():
    api = FakeApi({"/api/oauth2/token": lambda r: httpx.Response(401, text="bad client")})
    mailer = FakeMailer()

    with pytest.raises(AuthRequestFailedError):
        run(_settings(), now=NOW, transport=api.transport(), mailer=mailer)

    assert api.paths == ["/api/oauth2/token"]
    assert mailer.sent == []


def test_organization_fetch_failure_is_fatal():
    api = FakeApi({"/rest/o": lambda r: httpx.Response(502, text="bad gateway")})
    with pytest.raises(OrganizationFetchError):
        run(_settings(), now=NOW, transport=api.transport(), mailer=FakeMailer())


def test_mail_failure_is_logged_and_not_raised(caplog):
    api = FakeApi(
        {
            "/rest/o": _json({"data": [{"id": 1, "name": "Org A"}]}),
            "/rest/o/1/d": _json({"data": [{"sn": "S1", "expiry_date": "2025-01-02", "expired": False}]}),
        }
    )
    summary = run(_settings(), now=NOW, transport=api.transport(), mailer=FakeMailer(fail=True))

    assert summary.rows == 1
    assert summary.delivered is False
    assert "relay refused connection" in caplog.text


def test_empty_report_is_not_sent_when_disabled():
    api = FakeApi({"/rest/o": _json({"data": []})})
    mailer = FakeMailer()
    summary = run(_settings(send_empty_report=False), now=NOW, transport=api.transport(), mailer=mailer)
    assert mailer.sent == []
    assert summary.delivered is False


def test_dry_run_skips_delivery():
    api = FakeApi(
        {
            "/rest/o": _json({"data": [{"id": 1, "name": "Org A"}]}),
            "/rest/o/1/d": _json({"data": [{"sn": "S1", "expiry_date": "2025-01-02", "expired": True}]}),
        }
    )
    mailer = FakeMailer()
    summary = run(_settings(), now=NOW, transport=api.transport(), mailer=mailer, dry_run=True)
    assert summary.rows == 1
    assert mailer.sent == []


def test_skipped_devices_are_counted():
    api = FakeApi(
        {
            "/rest/o": _json({"data": [{"id": 1, "name": "Org A"}]}),
            "/rest/o/1/d": _json(
                {
                    "data": [
                        {"sn": "", "expiry_date": "2025-01-02"},
                        {"sn": "S2", "expiry_date": "garbage"},
                        {"sn": "S3", "expiry_date": "2025-01-02"},
                    ]
                }
            ),
        }
    )
    summary = run(_settings(), now=NOW, transport=api.transport(), mailer=FakeMailer())
    assert summary.devices_seen == 3
    assert summary.devices_skipped == 2
    assert summary.rows == 1


def test_unreachable_org_devices_do_not_block_other_orgs():
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection reset", request=request)

    api = FakeApi(
        {
            "/rest/o": _json({"data": [{"id": "a", "name": "Org A"}, {"id": "b", "name": "Org B"}]}),
            "/rest/o/a/d": refuse,
            "/rest/o/b/d": _json({"data": [{"sn": "B-1", "expiry_date": "2025-01-11", "expired": False}]}),
        }
    )
    mailer = FakeMailer()
    summary = run(_settings(), now=NOW, transport=api.transport(), mailer=mailer)

    assert summary.csv_text.split("\n") == [HEADER, '"Org B","B1","2025-01-11","10","NO"']
    assert summary.failed_organizations == 1
    assert summary.delivered is True
