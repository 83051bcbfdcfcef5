# socialdash/services/oauth_service.py
"""
Authorization-code flow for connecting a social platform.

``begin_authorization`` builds the provider consent URL and the CSRF state;
``complete_authorization`` runs the callback steps in order and persists the
connection. Every failure raises an ``OAuthFlowError`` whose message is safe to
show to the user.
"""
from dataclasses import dataclass
from typing import Optional

import httpx
import structlog
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

from socialdash import config
from socialdash.auth.schemas import SessionUser
from socialdash.auth.utils import encrypt_token, generate_oauth_state, state_cookie_name, states_match
from socialdash.infrastructure.connections_repo import ConnectionsRepository
from socialdash.infrastructure.oauth_client import OAuthHTTPClient, ProviderError
from socialdash.infrastructure.platforms import PlatformConfig, get_platform_config
from socialdash.infrastructure.redis_cache import StateLedger
from socialdash.models.platform_connection import ConnectionStatus, PlatformConnection, utcnow

logger = structlog.get_logger(__name__)


class OAuthFlowError(Exception):
    status_code = 400


class UnknownPlatformError(OAuthFlowError):
    def __init__(self, platform: str):
        super().__init__(f"Unknown platform: {platform}")


class OAuthConfigurationError(OAuthFlowError):
    status_code = 500


class OAuthProtocolError(OAuthFlowError):
    pass


class OAuthUpstreamError(OAuthFlowError):
    status_code = 502


class OAuthNotAuthenticatedError(OAuthFlowError):
    status_code = 401


class ConnectionPersistenceError(OAuthFlowError):
    status_code = 500


class StateStoreUnavailableError(OAuthFlowError):
    status_code = 503


@dataclass(frozen=True)
class AuthorizationRequest:
    platform: str
    url: str
    state: str
    cookie_name: str


@dataclass(frozen=True)
class CallbackRequest:
    platform: str
    code: Optional[str] = None
    state: Optional[str] = None
    error: Optional[str] = None
    error_description: Optional[str] = None
    stored_state: Optional[str] = None


def resolve_platform(platform: str) -> PlatformConfig:
    cfg = get_platform_config(platform)
    if cfg is None:
        raise UnknownPlatformError(platform)
    return cfg


def begin_authorization(platform: str) -> AuthorizationRequest:
    cfg = resolve_platform(platform)
    client_id = cfg.client_id
    if not client_id:
        raise OAuthConfigurationError(f"{cfg.client_id_env} is not set in environment variables")

    state = generate_oauth_state()
    params = {
        "client_id": client_id,
        "redirect_uri": cfg.redirect_uri,
        "scope": cfg.scopes,
        "state": state,
        "response_type": "code",
        **cfg.extra_params,
    }
    url = httpx.URL(cfg.auth_url).copy_merge_params(params)
    logger.info("oauth_start", platform=cfg.platform.value)
    return AuthorizationRequest(
        platform=cfg.platform.value,
        url=str(url),
        state=state,
        cookie_name=state_cookie_name(cfg.platform.value),
    )


class OAuthService:
    def __init__(
        self,
        repo: ConnectionsRepository,
        http: OAuthHTTPClient,
        ledger: Optional[StateLedger] = None,
    ):
        self.repo = repo
        self.http = http
        self.ledger = ledger

    async def _check_state(self, cfg: PlatformConfig, req: CallbackRequest) -> None:
        if not req.stored_state:
            raise OAuthProtocolError("OAuth session expired or already used. Please try connecting again")
        if not states_match(req.state, req.stored_state):
            logger.warning("oauth_state_mismatch", platform=cfg.platform.value)
            raise OAuthProtocolError("Invalid state parameter, possible CSRF attack")
        if self.ledger is not None:
            try:
                fresh = await self.ledger.consume(cfg.platform.value, req.state, config.oauth_state_ttl_seconds())
            except RedisError as e:
                logger.error("oauth_state_ledger_unavailable", platform=cfg.platform.value, error_type=e.__class__.__name__)
                raise StateStoreUnavailableError("Could not verify OAuth state. Please try connecting again")
            if not fresh:
                raise OAuthProtocolError("OAuth state already used. Please try connecting again")

    async def complete_authorization(self, req: CallbackRequest, user: Optional[SessionUser]) -> PlatformConnection:
        cfg = resolve_platform(req.platform)
        platform = cfg.platform.value

        if req.error:
            reason = req.error
            if req.error_description:
                reason = f"{reason} ({req.error_description})"
            raise OAuthProtocolError(f"Authorization denied: {reason}")
        if not req.code or not req.state:
            raise OAuthProtocolError("Missing code or state parameter")

        await self._check_state(cfg, req)

        missing = cfg.missing_credentials()
        if missing:
            raise OAuthConfigurationError(f"Missing {', '.join(missing)}")

        try:
            grant = await self.http.exchange_code(cfg, req.code, cfg.client_id, cfg.client_secret)
        except ProviderError as e:
            logger.warning("oauth_token_exchange_failed", platform=platform, reason=str(e))
            raise OAuthUpstreamError(f"Token exchange failed: {e}")

        handle = await self.http.fetch_handle(cfg, grant.access_token)

        if user is None:
            raise OAuthNotAuthenticatedError("Not authenticated. Please log in first")

        now = utcnow()
        values = {
            "user_id": user.id,
            "platform_id": platform,
            "status": ConnectionStatus.CONNECTED.value,
            "handle": handle,
            "access_token": encrypt_token(grant.access_token),
            "refresh_token": encrypt_token(grant.refresh_token),
            "token_expires_at": grant.expires_at(now),
            "scope": grant.scope,
            "last_synced": now,
            "name": cfg.display.name,
            "color": cfg.display.color,
            "description": cfg.display.description,
            "icon_name": cfg.display.icon_name,
        }
        try:
            connection = await self.repo.upsert(values)
        except SQLAlchemyError as e:
            # str(e) carries the bound parameters, so only the driver message is kept
            detail = getattr(e, "orig", None) or e
            logger.error(
                "oauth_connection_save_failed",
                platform=platform,
                user_id=user.id,
                error_type=e.__class__.__name__,
                db_error=str(detail),
            )
            raise ConnectionPersistenceError(f"Failed to save connection: {detail}")

        logger.info("oauth_connected", platform=platform, user_id=user.id, handle=handle)
        return connection
