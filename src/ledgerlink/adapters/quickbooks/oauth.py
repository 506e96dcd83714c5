"""OAuth2 token refresh for QuickBooks Online."""

import logging
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import httpx

from ...domain.errors import ExternalTransportError
from ...domain.models import IntegrationCredential

logger = logging.getLogger(__name__)

EXPIRY_SKEW = timedelta(seconds=60)


def is_expired(credential: IntegrationCredential, now: datetime | None = None) -> bool:
    """True when the access token is missing, expired or about to expire."""
    if not credential.access_token or credential.expires_at is None:
        return True
    now = now or datetime.now(timezone.utc)
    expires_at = credential.expires_at
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return now + EXPIRY_SKEW >= expires_at


def refresh_credential(
    http: httpx.Client,
    token_url: str,
    client_id: str,
    client_secret: str,
    credential: IntegrationCredential,
) -> IntegrationCredential:
    """Exchange the refresh token for a new token pair."""
    logger.info(f"Refreshing QuickBooks token for tenant {credential.tenant_id}")

    try:
        response = http.post(
            token_url,
            data={
                "grant_type": "refresh_token",
                "refresh_token": credential.refresh_token,
            },
            auth=(client_id, client_secret),
            headers={"Accept": "application/json"},
        )
    except httpx.HTTPError as e:
        raise ExternalTransportError(f"Token refresh failed: {e}") from e

    if response.status_code != 200:
        raise ExternalTransportError(
            f"Token refresh failed ({response.status_code}): {response.text[:200]}",
            status_code=response.status_code,
        )

    token = response.json()
    expires_in = int(token.get("expires_in", 3600))
    return replace(
        credential,
        access_token=token["access_token"],
        refresh_token=token.get("refresh_token", credential.refresh_token),
        expires_at=datetime.now(timezone.utc) + timedelta(seconds=expires_in),
    )
