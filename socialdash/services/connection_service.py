# socialdash/services/connection_service.py
from datetime import datetime, timezone
from typing import List, Optional

import structlog

from socialdash.auth.schemas import SessionUser
from socialdash.auth.utils import decrypt_token, encrypt_token
from socialdash.infrastructure.connections_repo import ConnectionsRepository
from socialdash.infrastructure.oauth_client import OAuthHTTPClient, ProviderError
from socialdash.infrastructure.platforms import PLATFORM_CONFIGS, Platform
from socialdash.models.platform_connection import ConnectionStatus, PlatformConnection
from socialdash.schemas.connection_schema import ConnectionRead
from socialdash.services.oauth_service import (
    OAuthConfigurationError,
    OAuthUpstreamError,
    resolve_platform,
)

logger = structlog.get_logger(__name__)


class ConnectionNotFoundError(Exception):
    pass


class RefreshNotSupportedError(Exception):
    pass


def is_usable(cp: Optional[PlatformConnection]) -> bool:
    """A connection can be acted on only when it is connected and holds a token."""
    if cp is None:
        return False
    return (cp.status or "").lower() == ConnectionStatus.CONNECTED.value and bool(cp.access_token)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands timestamps back without tzinfo
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _to_read(platform: Platform, cp: Optional[PlatformConnection]) -> ConnectionRead:
    display = PLATFORM_CONFIGS[platform].display
    if cp is None:
        return ConnectionRead(
            platform_id=platform.value,
            status=ConnectionStatus.DISCONNECTED.value,
            name=display.name,
            color=display.color,
            description=display.description,
            icon_name=display.icon_name,
        )
    return ConnectionRead(
        platform_id=platform.value,
        status=cp.status,
        handle=cp.handle,
        has_token=bool(cp.access_token),
        token_expires_at=_as_utc(cp.token_expires_at),
        scope=cp.scope,
        last_synced=_as_utc(cp.last_synced),
        name=cp.name,
        color=cp.color,
        description=cp.description,
        icon_name=cp.icon_name,
    )


class ConnectionService:
    def __init__(self, repo: ConnectionsRepository, http: Optional[OAuthHTTPClient] = None):
        self.repo = repo
        self.http = http

    async def list_connections(self, user: SessionUser) -> List[ConnectionRead]:
        rows = {cp.platform_id: cp for cp in await self.repo.list_by_user(user.id)}
        return [_to_read(platform, rows.get(platform.value)) for platform in Platform]

    async def get_active_token(self, user: Optional[SessionUser], platform: str) -> Optional[str]:
        if user is None:
            return None
        cp = await self.repo.get_by_user_and_platform(user.id, platform)
        if not is_usable(cp):
            return None
        return decrypt_token(cp.access_token)

    async def disconnect(self, user: SessionUser, platform: str) -> ConnectionRead:
        cfg = resolve_platform(platform)
        cp = await self.repo.get_by_user_and_platform(user.id, cfg.platform.value)
        if cp is None:
            raise ConnectionNotFoundError(f"{cfg.platform.value} is not connected")
        cp = await self.repo.mark_disconnected(cp)
        logger.info("connection_disconnected", platform=cfg.platform.value, user_id=user.id)
        return _to_read(cfg.platform, cp)

    async def refresh(self, user: SessionUser, platform: str) -> ConnectionRead:
        cfg = resolve_platform(platform)
        cp = await self.repo.get_by_user_and_platform(user.id, cfg.platform.value)
        if not is_usable(cp):
            raise ConnectionNotFoundError(f"{cfg.platform.value} is not connected")

        refresh_token = decrypt_token(cp.refresh_token)
        if not refresh_token:
            raise RefreshNotSupportedError(f"No refresh token stored for {cfg.platform.value}; reconnect instead")

        missing = cfg.missing_credentials()
        if missing:
            raise OAuthConfigurationError(f"Missing {', '.join(missing)}")

        try:
            grant = await self.http.refresh(cfg, refresh_token, cfg.client_id, cfg.client_secret)
        except ProviderError as e:
            logger.warning("token_refresh_failed", platform=cfg.platform.value, user_id=user.id, reason=str(e))
            raise OAuthUpstreamError(f"Token refresh failed: {e}")

        cp = await self.repo.update_tokens(
            cp,
            access_token=encrypt_token(grant.access_token),
            refresh_token=encrypt_token(grant.refresh_token),
            expires_at=grant.expires_at(),
            scope=grant.scope,
        )
        logger.info("token_refreshed", platform=cfg.platform.value, user_id=user.id)
        return _to_read(cfg.platform, cp)
