# socialdash/routers/connections_router.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel.ext.asyncio.session import AsyncSession

from socialdash.auth.schemas import SessionUser
from socialdash.dependencies.auth import get_current_user
from socialdash.dependencies.db import get_session_dep
from socialdash.dependencies.oauth import get_oauth_client
from socialdash.infrastructure.connections_repo import ConnectionsRepository
from socialdash.infrastructure.oauth_client import OAuthHTTPClient
from socialdash.schemas.connection_schema import ConnectionRead, SocialStats
from socialdash.services.connection_service import (
    ConnectionNotFoundError,
    ConnectionService,
    RefreshNotSupportedError,
)
from socialdash.services.oauth_service import OAuthFlowError
from socialdash.services.stats_service import StatsService

router = APIRouter(prefix="/api/connections", tags=["connections"])


@router.get("", response_model=List[ConnectionRead])
async def list_connections(
    current_user: SessionUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session_dep),
):
    svc = ConnectionService(ConnectionsRepository(session))
    return await svc.list_connections(current_user)


@router.get("/stats", response_model=List[SocialStats])
async def connection_stats(
    current_user: SessionUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session_dep),
    http: OAuthHTTPClient = Depends(get_oauth_client),
):
    connections = ConnectionService(ConnectionsRepository(session))
    return await StatsService(connections, http).get_all(current_user)


@router.post("/{platform}/disconnect", response_model=ConnectionRead)
async def disconnect(
    platform: str,
    current_user: SessionUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session_dep),
):
    svc = ConnectionService(ConnectionsRepository(session))
    try:
        return await svc.disconnect(current_user, platform)
    except ConnectionNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except OAuthFlowError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc))


@router.post("/{platform}/refresh", response_model=ConnectionRead)
async def refresh(
    platform: str,
    current_user: SessionUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session_dep),
    http: OAuthHTTPClient = Depends(get_oauth_client),
):
    svc = ConnectionService(ConnectionsRepository(session), http)
    try:
        return await svc.refresh(current_user, platform)
    except ConnectionNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except RefreshNotSupportedError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    except OAuthFlowError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc))
