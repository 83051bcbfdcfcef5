# socialdash/infrastructure/oauth_client.py
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import httpx
import structlog

from socialdash.infrastructure.platforms import PlatformConfig
from socialdash.models.platform_connection import utcnow

logger = structlog.get_logger(__name__)


class ProviderError(Exception):
    """Raised when a provider call fails or returns an unusable payload."""


@dataclass
class TokenGrant:
    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    scope: Optional[str] = None

    def expires_at(self, now: Optional[datetime] = None) -> Optional[datetime]:
        if not self.expires_in:
            return None
        return (now or utcnow()) + timedelta(seconds=int(self.expires_in))


def _parse_grant(data: Dict[str, Any]) -> TokenGrant:
    access_token = data.get("access_token")
    if not access_token:
        raise ProviderError(data.get("error_description") or data.get("error") or "No access_token in response")
    return TokenGrant(
        access_token=access_token,
        refresh_token=data.get("refresh_token") or None,
        expires_in=_parse_expires_in(data.get("expires_in")),
        scope=data.get("scope") or None,
    )


def _parse_expires_in(value: Any) -> Optional[int]:
    """Seconds until expiry. Anything unparseable is treated as no expiry."""
    if not value:
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        logger.warning("oauth_expires_in_unparseable", value=repr(value)[:50])
        return None


class OAuthHTTPClient:
    """
    Outbound calls to the OAuth providers. Timeouts come from the wrapped httpx client.
    """

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    async def _post_token(self, url: str, form: Dict[str, str]) -> TokenGrant:
        try:
            resp = await self.client.post(url, data=form, headers={"Accept": "application/json"})
        except httpx.TimeoutException:
            raise ProviderError("provider timed out")
        except httpx.HTTPError as e:
            raise ProviderError(f"provider unreachable ({e.__class__.__name__})")

        try:
            data = resp.json()
        except ValueError:
            raise ProviderError(f"invalid response from provider (HTTP {resp.status_code})")
        if not isinstance(data, dict):
            raise ProviderError(f"invalid response from provider (HTTP {resp.status_code})")

        if resp.is_error and not data.get("access_token"):
            raise ProviderError(data.get("error_description") or data.get("error") or f"HTTP {resp.status_code}")
        return _parse_grant(data)

    async def exchange_code(self, config: PlatformConfig, code: str, client_id: str, client_secret: str) -> TokenGrant:
        form = {
            "client_id": client_id,
            "client_secret": client_secret,
            "code": code,
            "redirect_uri": config.redirect_uri,
            "grant_type": "authorization_code",
        }
        return await self._post_token(config.token_url, form)

    async def refresh(self, config: PlatformConfig, refresh_token: str, client_id: str, client_secret: str) -> TokenGrant:
        form = {
            "client_id": client_id,
            "client_secret": client_secret,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        }
        return await self._post_token(config.token_url, form)

    async def get_json(self, url: str, access_token: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        resp = await self.client.get(url, params=params, headers={"Authorization": f"Bearer {access_token}"})
        resp.raise_for_status()
        data = resp.json()
        if not isinstance(data, dict):
            raise ProviderError("unexpected payload shape")
        return data

    async def fetch_handle(self, config: PlatformConfig, access_token: str) -> str:
        """Best effort: any failure yields the platform's placeholder handle."""
        try:
            profile = await self.get_json(config.profile_url, access_token)
            handle = config.extract_handle(profile)
        except (httpx.HTTPError, ValueError, ProviderError, AttributeError, TypeError, IndexError) as e:
            logger.info("profile_fetch_failed", platform=config.platform.value, error=e.__class__.__name__)
            return config.fallback_handle
        return handle or config.fallback_handle
