from __future__ import annotations

import logging
from typing import Optional

import httpx

from .config import DEFAULT_API_BASE_URL, DEFAULT_HTTP_TIMEOUT

logger = logging.getLogger(__name__)

TOKEN_PATH = "/api/oauth2/token"


class AuthError(Exception):
    """Raised when the client-credentials token exchange fails."""


class AuthRequestFailedError(AuthError):
    """Raised when the token endpoint is unreachable or answers with a non-2xx status."""

    def __init__(self, status_code: Optional[int], body: str):
        if status_code is None:
            message = f"Failed to get token: {body}"
        else:
            message = f"Failed to get token: {status_code} - {body}"
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class AuthMalformedResponseError(AuthError):
    """Raised when the token response body is not JSON."""


class AuthMissingTokenError(AuthError):
    """Raised when the token response has no access_token."""


def acquire_token(
    client_id: str,
    client_secret: str,
    *,
    base_url: str = DEFAULT_API_BASE_URL,
    timeout: float = DEFAULT_HTTP_TIMEOUT,
    transport: Optional[httpx.BaseTransport] = None,
) -> str:
    """Exchange the API client id/secret for a bearer token.

    One attempt only; every failure surfaces as an ``AuthError`` subclass.
    """
    form = {
        "client_id": client_id,
        "client_secret": client_secret,
        "grant_type": "client_credentials",
    }
    with httpx.Client(base_url=base_url, timeout=timeout, transport=transport) as client:
        try:
            response = client.post(TOKEN_PATH, data=form)
        except httpx.RequestError as exc:
            raise AuthRequestFailedError(None, str(exc)) from exc

    raw_body = response.text
    if not response.is_success:
        raise AuthRequestFailedError(response.status_code, raw_body)

    try:
        payload = response.json()
    except ValueError as exc:
        raise AuthMalformedResponseError(f"Failed to parse token JSON: {exc}") from exc

    token = payload.get("access_token") if isinstance(payload, dict) else None
    if not token:
        raise AuthMissingTokenError("No access_token in token response")

    logger.info("Token retrieved successfully.")
    return str(token)
