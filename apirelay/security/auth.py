"""Credential variants and header injection for upstream API calls.

Three credential shapes are supported: a static bearer token, a static
X-API-Key value, and an OAuth2 client-credentials grant whose access token
is cached on the credential object owned by a single APIClient.
"""

from dataclasses import dataclass
from typing import ClassVar

import httpx


class AuthConfigurationError(Exception):
    """Credential configuration is incomplete or unusable."""


class AuthRefreshFailure(Exception):
    """The token endpoint could not issue a new access token."""


@dataclass(frozen=True)
class BearerCredentials:
    token: str
    type: ClassVar[str] = "bearer"


@dataclass(frozen=True)
class ApiKeyCredentials:
    key: str
    type: ClassVar[str] = "apikey"


@dataclass
class OAuth2Credentials:
    client_id: str
    client_secret: str
    token_url: str
    cached_access_token: str | None = None
    type: ClassVar[str] = "oauth2"


Credentials = BearerCredentials | ApiKeyCredentials | OAuth2Credentials


def apply_auth_headers(headers: dict, credentials: Credentials) -> dict:
    """Return a copy of headers with credentials attached.

    OAuth2 adds a header only when a token is cached; the API client is
    responsible for refreshing before first use.
    """
    result = dict(headers)
    if isinstance(credentials, BearerCredentials):
        if credentials.token:
            result["Authorization"] = f"Bearer {credentials.token}"
    elif isinstance(credentials, ApiKeyCredentials):
        if credentials.key:
            result["X-API-Key"] = credentials.key
    elif isinstance(credentials, OAuth2Credentials):
        if credentials.cached_access_token:
            result["Authorization"] = f"Bearer {credentials.cached_access_token}"
    return result


async def refresh(credentials: OAuth2Credentials, client: httpx.AsyncClient) -> OAuth2Credentials:
    """Run a client-credentials grant and cache the new access token.

    Raises:
        AuthConfigurationError: client_id, client_secret or token_url missing.
        AuthRefreshFailure: token endpoint unreachable, erroring, or returned no token.
    """
    if not (credentials.token_url and credentials.client_id and credentials.client_secret):
        raise AuthConfigurationError("OAuth2 configuration incomplete")

    try:
        response = await client.post(
            credentials.token_url,
            json={
                "grant_type": "client_credentials",
                "client_id": credentials.client_id,
                "client_secret": credentials.client_secret,
            },
        )
    except httpx.HTTPError as e:
        raise AuthRefreshFailure(f"OAuth2 token refresh failed: {e}") from e

    if response.status_code >= 400:
        raise AuthRefreshFailure(
            f"OAuth2 token refresh failed: {response.status_code} {response.reason_phrase}"
        )

    try:
        token = response.json().get("access_token")
    except ValueError:
        token = None
    if not token:
        raise AuthRefreshFailure("OAuth2 token refresh failed: no access_token in response")

    credentials.cached_access_token = token
    return credentials


def describe(credentials: Credentials) -> dict:
    """Redacted summary of the credential configuration."""
    if isinstance(credentials, BearerCredentials):
        configured = bool(credentials.token)
    elif isinstance(credentials, ApiKeyCredentials):
        configured = bool(credentials.key)
    else:
        configured = bool(
            credentials.client_id and credentials.client_secret and credentials.token_url
        )
    summary = {"type": credentials.type, "configured": configured}
    if isinstance(credentials, OAuth2Credentials):
        summary["token_cached"] = credentials.cached_access_token is not None
    return summary
