from __future__ import annotations

import logging
from typing import Any, List, Optional, Union

import httpx

from .config import DEFAULT_API_BASE_URL, DEFAULT_HTTP_TIMEOUT
from .models import Device, Organization

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """Raised when an InControl inventory read fails."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class OrganizationFetchError(FetchError):
    """Raised when the organization list cannot be read."""


class DeviceFetchError(FetchError):
    """Raised when one organization's device list cannot be read."""

    def __init__(self, org_id: Union[int, str], message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message, status_code=status_code, body=body)
        self.org_id = org_id


class InControlClient:
    def __init__(
        self,
        token: str,
        base_url: str = DEFAULT_API_BASE_URL,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self._client = httpx.Client(
            base_url=base_url,
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "InControlClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def fetch_organizations(self) -> List[Organization]:
        try:
            payload = self._get_json("/rest/o")
        except FetchError as exc:
            raise OrganizationFetchError(
                f"Failed to fetch orgs: {exc}", status_code=exc.status_code, body=exc.body
            ) from exc

        orgs = [self._to_organization(raw) for raw in _data_list(payload) if isinstance(raw, dict)]
        logger.info("Retrieved %s organization(s).", len(orgs))
        return orgs

    def fetch_devices(self, org_id: Union[int, str]) -> List[Device]:
        try:
            payload = self._get_json(f"/rest/o/{org_id}/d", params={"includeWarranty": "true"})
        except FetchError as exc:
            raise DeviceFetchError(
                org_id,
                f"Failed to fetch devices for org {org_id}: {exc}",
                status_code=exc.status_code,
                body=exc.body,
            ) from exc

        return [self._to_device(raw) for raw in _data_list(payload) if isinstance(raw, dict)]

    def _get_json(self, path: str, **kwargs) -> Any:
        try:
            response = self._client.get(path, **kwargs)
        except httpx.RequestError as exc:
            logger.warning("InControl request error GET %s: %s", path, exc)
            raise FetchError(f"request failed: {exc}") from exc

        raw_body = response.text
        if not response.is_success:
            raise FetchError(f"{response.status_code} - {raw_body}", status_code=response.status_code, body=raw_body)
        logger.debug("Raw response for GET %s: %s", path, raw_body)

        try:
            return response.json()
        except ValueError as exc:
            raise FetchError(f"invalid JSON: {exc}", status_code=response.status_code, body=raw_body) from exc

    @staticmethod
    def _to_organization(raw: dict) -> Organization:
        return Organization(id=raw.get("id"), name=str(raw.get("name") or ""))

    @staticmethod
    def _to_device(raw: dict) -> Device:
        serial = raw.get("sn")
        expiry = raw.get("expiry_date")
        return Device(
            serial_number=str(serial) if serial else None,
            expiry_date=str(expiry) if expiry else None,
            expired=bool(raw.get("expired")),
        )


def _data_list(payload: Any) -> List[Any]:
    data = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(data, list):
        return []
    return data
