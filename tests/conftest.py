import time
from datetime import datetime, timedelta, timezone
from http.cookies import SimpleCookie
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlmodel import SQLModel, select
from sqlmodel.ext.asyncio.session import AsyncSession

from socialdash.auth import utils as auth_utils
from socialdash.auth.utils import encrypt_token
from socialdash.dependencies.db import get_session_dep
from socialdash.dependencies.oauth import get_oauth_client, get_state_ledger
from socialdash.infrastructure.oauth_client import OAuthHTTPClient
from socialdash.infrastructure.platforms import PLATFORM_CONFIGS, Platform
from socialdash.main import app
from socialdash.models.platform_connection import PlatformConnection, utcnow

PLATFORMS = ["instagram", "facebook", "linkedin", "youtube"]
TEST_USER_ID = "7d9f1c2e-0000-4000-8000-000000000001"

Stub = Union[Tuple[int, Any], Callable[[httpx.Request], httpx.Response]]


class ProviderStub:
    """Fake provider endpoints keyed on (method, url without query). Records every request."""

    def __init__(self):
        self.routes: Dict[Tuple[str, str], Stub] = {}
        self.calls: List[httpx.Request] = []

    def on(self, method: str, url: str, stub: Stub) -> None:
        self.routes[(method.upper(), url)] = stub

    def calls_to(self, url: str) -> List[httpx.Request]:
        return [r for r in self.calls if _bare_url(r.url) == url]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        stub = self.routes.get((request.method, _bare_url(request.url)))
        if stub is None:
            return httpx.Response(404, json={"error": "not stubbed"})
        if callable(stub):
            return stub(request)
        status_code, body = stub
        return httpx.Response(status_code, json=body)


def _bare_url(url: httpx.URL) -> str:
    return f"{url.scheme}://{url.host}{url.path}"


class FakeLedger:
    def __init__(self):
        self.seen = set()

    async def consume(self, platform: str, state: str, ttl: int) -> bool:
        key = (platform, state)
        if key in self.seen:
            return False
        self.seen.add(key)
        return True


def make_session_token(user_id: str = TEST_USER_ID, email: str = "owner@example.com") -> str:
    claims = {"sub": user_id, "email": email, "aud": auth_utils.SESSION_JWT_AUDIENCE, "exp": int(time.time()) + 3600}
    return jwt.encode(claims, auth_utils.SESSION_JWT_SECRET, algorithm=auth_utils.SESSION_JWT_ALGORITHM)


def cookie_header(cookies: Dict[str, str]) -> Dict[str, str]:
    if not cookies:
        return {}
    return {"Cookie": "; ".join(f"{k}={v}" for k, v in cookies.items())}


def auth_headers(user_id: str = TEST_USER_ID) -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_session_token(user_id)}"}


def set_cookies(response: httpx.Response) -> Dict[str, str]:
    """Raw Set-Cookie header per cookie name."""
    out = {}
    for raw in response.headers.get_list("set-cookie"):
        parsed = SimpleCookie()
        parsed.load(raw)
        for name in parsed:
            out[name] = raw
    return out


def cookie_value(response: httpx.Response, name: str) -> Optional[str]:
    raw = set_cookies(response).get(name)
    if raw is None:
        return None
    parsed = SimpleCookie()
    parsed.load(raw)
    return parsed[name].value


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite returns naive timestamps, treat them as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def redirect_query(response: httpx.Response) -> Tuple[str, Dict[str, str]]:
    parts = urlsplit(response.headers["location"])
    base = f"{parts.scheme}://{parts.netloc}{parts.path}"
    return base, {k: v[0] for k, v in parse_qs(parts.query).items()}


@pytest.fixture(autouse=True)
def oauth_env(monkeypatch):
    for platform in PLATFORMS:
        monkeypatch.setenv(f"{platform.upper()}_CLIENT_ID", f"{platform}-client-id")
        monkeypatch.setenv(f"{platform.upper()}_CLIENT_SECRET", f"{platform}-client-secret")
    for name in ("APP_URL", "NEXT_PUBLIC_APP_URL", "ENVIRONMENT", "COOKIE_SECURE", "LINKEDIN_ORGANIZATION_ID"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def provider():
    return ProviderStub()


@pytest_asyncio.fixture
async def session_maker(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'connections.db'}")
    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield maker
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def http_client(provider):
    return OAuthHTTPClient(httpx.AsyncClient(transport=httpx.MockTransport(provider)))


@pytest_asyncio.fixture
async def api_client(session_maker, provider):
    async def override_session():
        async with session_maker() as session:
            yield session

    async def override_oauth_client():
        async with httpx.AsyncClient(transport=httpx.MockTransport(provider)) as client:
            yield OAuthHTTPClient(client)

    app.dependency_overrides[get_session_dep] = override_session
    app.dependency_overrides[get_oauth_client] = override_oauth_client
    app.dependency_overrides[get_state_ledger] = lambda: None
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


async def fetch_connections(session_maker, user_id: str = TEST_USER_ID) -> List[PlatformConnection]:
    async with session_maker() as session:
        res = await session.execute(select(PlatformConnection).where(PlatformConnection.user_id == user_id))
        return list(res.scalars().all())


async def seed(repo, platform="youtube", status="connected", access="tok", refresh="ref", user_id=TEST_USER_ID):
    """Write a connection row directly through the repository."""
    display = PLATFORM_CONFIGS[Platform(platform)].display
    return await repo.upsert({
        "user_id": user_id,
        "platform_id": platform,
        "status": status,
        "handle": f"{platform} handle",
        "access_token": encrypt_token(access) if access else None,
        "refresh_token": encrypt_token(refresh) if refresh else None,
        "token_expires_at": utcnow() + timedelta(minutes=5),
        "scope": "read",
        "last_synced": utcnow() - timedelta(days=1),
        "name": display.name,
        "color": display.color,
        "description": display.description,
        "icon_name": display.icon_name,
    })
