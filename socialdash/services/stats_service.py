# socialdash/services/stats_service.py
import asyncio
import os
from typing import Any, Dict, List, Optional

import httpx
import structlog

from socialdash.auth.schemas import SessionUser
from socialdash.infrastructure.oauth_client import OAuthHTTPClient, ProviderError
from socialdash.infrastructure.platforms import Platform
from socialdash.schemas.connection_schema import SocialStats
from socialdash.services.connection_service import ConnectionService

logger = structlog.get_logger(__name__)

GRAPH_URL = "https://graph.facebook.com/v18.0"
INSTAGRAM_GRAPH_URL = "https://graph.instagram.com"
LINKEDIN_API_URL = "https://api.linkedin.com/v2"
YOUTUBE_CHANNELS_URL = "https://www.googleapis.com/youtube/v3/channels"

NOT_AVAILABLE = "N/A"

_FETCH_ERRORS = (httpx.HTTPError, ProviderError, ValueError, KeyError, TypeError, IndexError, AttributeError)


def _latest_metric(insights: Dict[str, Any], name: str):
    for entry in insights.get("data") or []:
        if entry.get("name") == name:
            values = entry.get("values") or []
            if values and values[-1].get("value") is not None:
                return values[-1]["value"]
    return NOT_AVAILABLE


def _thousands(value: Optional[str]):
    if value is None:
        return NOT_AVAILABLE
    return f"{int(value):,}"


class StatsService:
    """Per-platform headline numbers for the dashboard. Never raises for a single platform."""

    def __init__(self, connections: ConnectionService, http: OAuthHTTPClient):
        self.connections = connections
        self.http = http

    async def _run(self, platform: Platform, token: Optional[str], fetch) -> SocialStats:
        if not token:
            return SocialStats(platform=platform.value, connected=False)
        try:
            return await fetch(token)
        except _FETCH_ERRORS as e:
            logger.warning("platform_stats_failed", platform=platform.value, error=str(e))
            return SocialStats(platform=platform.value, connected=True, error=str(e) or e.__class__.__name__)

    async def _instagram(self, token: str) -> SocialStats:
        me = await self.http.get_json(
            f"{INSTAGRAM_GRAPH_URL}/me", token, params={"fields": "id,username,media_count,followers_count"}
        )
        insights = await self.http.get_json(
            f"{INSTAGRAM_GRAPH_URL}/{me['id']}/insights",
            token,
            params={"metric": "reach,impressions,profile_views", "period": "day"},
        )
        return SocialStats(
            platform=Platform.INSTAGRAM.value,
            connected=True,
            followers=me.get("followers_count", NOT_AVAILABLE),
            reach=_latest_metric(insights, "reach"),
            impressions=_latest_metric(insights, "impressions"),
            posts=me.get("media_count", NOT_AVAILABLE),
        )

    async def _facebook(self, token: str) -> SocialStats:
        pages = await self.http.get_json(f"{GRAPH_URL}/me/accounts", token)
        page = (pages.get("data") or [None])[0]
        if not page:
            return SocialStats(platform=Platform.FACEBOOK.value, connected=True, error="No Facebook Pages found")

        insights = await self.http.get_json(
            f"{GRAPH_URL}/{page['id']}/insights",
            page["access_token"],
            params={"metric": "page_fans,page_impressions,page_post_engagements", "period": "day"},
        )
        fans = _latest_metric(insights, "page_fans")
        engagements = _latest_metric(insights, "page_post_engagements")
        engagement_rate = NOT_AVAILABLE
        if isinstance(fans, (int, float)) and isinstance(engagements, (int, float)) and fans:
            engagement_rate = f"{engagements / fans * 100:.1f}%"
        return SocialStats(
            platform=Platform.FACEBOOK.value,
            connected=True,
            followers=fans,
            impressions=_latest_metric(insights, "page_impressions"),
            engagement_rate=engagement_rate,
        )

    async def _linkedin(self, token: str) -> SocialStats:
        # validates the token even when no organization is configured
        await self.http.get_json(f"{LINKEDIN_API_URL}/me", token)

        followers = NOT_AVAILABLE
        org_id = os.getenv("LINKEDIN_ORGANIZATION_ID")
        if org_id:
            org = await self.http.get_json(
                f"{LINKEDIN_API_URL}/organizationalEntityFollowerStatistics",
                token,
                params={"q": "organizationalEntity", "organizationalEntity": f"urn:li:organization:{org_id}"},
            )
            elements = org.get("elements") or []
            if elements:
                by_type = elements[0].get("followerCountsByAssociationType") or []
                if by_type:
                    followers = by_type[0].get("followerCounts", {}).get("organicFollowerCount", NOT_AVAILABLE)
        return SocialStats(
            platform=Platform.LINKEDIN.value,
            connected=True,
            followers=followers,
            reach=NOT_AVAILABLE,
            impressions=NOT_AVAILABLE,
        )

    async def _youtube(self, token: str) -> SocialStats:
        data = await self.http.get_json(YOUTUBE_CHANNELS_URL, token, params={"part": "statistics,snippet", "mine": "true"})
        items = data.get("items") or []
        stats = items[0].get("statistics", {}) if items else {}
        return SocialStats(
            platform=Platform.YOUTUBE.value,
            connected=True,
            followers=_thousands(stats.get("subscriberCount")),
            reach=_thousands(stats.get("viewCount")),
            posts=stats.get("videoCount", NOT_AVAILABLE),
        )

    async def get_all(self, user: Optional[SessionUser]) -> List[SocialStats]:
        fetchers = {
            Platform.INSTAGRAM: self._instagram,
            Platform.FACEBOOK: self._facebook,
            Platform.LINKEDIN: self._linkedin,
            Platform.YOUTUBE: self._youtube,
        }
        # one session cannot serve concurrent queries, so tokens are read up front
        tokens = {}
        for platform in fetchers:
            tokens[platform] = await self.connections.get_active_token(user, platform.value)
        results = await asyncio.gather(
            *(self._run(platform, tokens[platform], fetch) for platform, fetch in fetchers.items()),
            return_exceptions=True,
        )
        out = []
        for platform, result in zip(fetchers, results):
            if isinstance(result, BaseException):
                logger.error("platform_stats_crashed", platform=platform.value, error=str(result))
                out.append(SocialStats(platform=platform.value, connected=False))
            else:
                out.append(result)
        return out
