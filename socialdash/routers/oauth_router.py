# socialdash/routers/oauth_router.py
from typing import Optional

import httpx
import structlog
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from sqlmodel.ext.asyncio.session import AsyncSession

from socialdash import config
from socialdash.auth.schemas import SessionUser
from socialdash.auth.utils import state_cookie_name
from socialdash.dependencies.auth import get_optional_user
from socialdash.dependencies.db import get_session_dep
from socialdash.dependencies.oauth import get_oauth_client, get_state_ledger
from socialdash.infrastructure.connections_repo import ConnectionsRepository
from socialdash.infrastructure.oauth_client import OAuthHTTPClient
from socialdash.infrastructure.platforms import get_platform_config
from socialdash.infrastructure.redis_cache import StateLedger
from socialdash.services.oauth_service import (
    CallbackRequest,
    OAuthFlowError,
    OAuthService,
    begin_authorization,
)

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/api/oauth", tags=["oauth"])

UNEXPECTED_CALLBACK_ERROR = "Something went wrong while connecting. Please try again"


def _connections_redirect(**params: str) -> RedirectResponse:
    url = httpx.URL(config.connections_page_url()).copy_merge_params(params)
    return RedirectResponse(str(url), status_code=status.HTTP_302_FOUND)


@router.get("/{platform}/start")
async def oauth_start(platform: str):
    try:
        auth = begin_authorization(platform)
    except OAuthFlowError as e:
        logger.warning("oauth_start_rejected", platform=platform, reason=str(e))
        return JSONResponse({"error": str(e)}, status_code=e.status_code)

    response = RedirectResponse(auth.url, status_code=status.HTTP_302_FOUND)
    response.set_cookie(
        key=auth.cookie_name,
        value=auth.state,
        max_age=config.oauth_state_ttl_seconds(),
        httponly=True,
        secure=config.cookie_secure(),
        samesite=config.cookie_samesite(),
        path="/",
    )
    return response


@router.get("/{platform}/callback")
async def oauth_callback(
    platform: str,
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    error_description: Optional[str] = None,
    user: Optional[SessionUser] = Depends(get_optional_user),
    session: AsyncSession = Depends(get_session_dep),
    http: OAuthHTTPClient = Depends(get_oauth_client),
    ledger: Optional[StateLedger] = Depends(get_state_ledger),
):
    known = get_platform_config(platform) is not None
    cookie_name = state_cookie_name(platform)
    req = CallbackRequest(
        platform=platform,
        code=code,
        state=state,
        error=error,
        error_description=error_description,
        stored_state=request.cookies.get(cookie_name) if known else None,
    )

    svc = OAuthService(ConnectionsRepository(session), http, ledger)
    try:
        await svc.complete_authorization(req, user)
        response = _connections_redirect(connected=platform)
    except OAuthFlowError as e:
        logger.info("oauth_callback_failed", platform=platform, reason=str(e), error_type=e.__class__.__name__)
        response = _connections_redirect(error=str(e))
    except Exception as e:
        logger.exception("oauth_callback_unexpected_error", platform=platform, error_type=e.__class__.__name__)
        response = _connections_redirect(error=UNEXPECTED_CALLBACK_ERROR)

    # the state is single use whatever the outcome
    if known:
        response.delete_cookie(
            cookie_name,
            path="/",
            secure=config.cookie_secure(),
            httponly=True,
            samesite=config.cookie_samesite(),
        )
    return response
