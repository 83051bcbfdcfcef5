# socialdash/infrastructure/platforms.py
"""
Static OAuth configuration for every platform a user can connect.

Each entry carries the provider endpoints, the names of the environment
variables holding its credentials, and a function that turns the provider's
profile payload into a display handle.
"""
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from socialdash.config import app_base_url


class Platform(str, Enum):
    INSTAGRAM = "instagram"
    FACEBOOK = "facebook"
    LINKEDIN = "linkedin"
    YOUTUBE = "youtube"


def _graph_name(profile: Dict[str, Any]) -> Optional[str]:
    name = profile.get("name")
    if not name:
        return None
    return f"@{name}"


def _linkedin_full_name(profile: Dict[str, Any]) -> Optional[str]:
    first = profile.get("localizedFirstName") or ""
    last = profile.get("localizedLastName") or ""
    full = f"{first} {last}".strip()
    return full or None


def _youtube_channel_title(profile: Dict[str, Any]) -> Optional[str]:
    items = profile.get("items") or []
    if not items:
        return None
    snippet = items[0].get("snippet") or {}
    return snippet.get("title") or None


@dataclass(frozen=True)
class DisplayDefaults:
    name: str
    color: str
    description: str
    icon_name: str


@dataclass(frozen=True)
class PlatformConfig:
    platform: Platform
    auth_url: str
    token_url: str
    scopes: str
    client_id_env: str
    client_secret_env: str
    profile_url: str
    extract_handle: Callable[[Dict[str, Any]], Optional[str]]
    display: DisplayDefaults
    extra_params: Dict[str, str] = field(default_factory=dict)

    @property
    def client_id(self) -> Optional[str]:
        return os.getenv(self.client_id_env) or None

    @property
    def client_secret(self) -> Optional[str]:
        return os.getenv(self.client_secret_env) or None

    def missing_credentials(self) -> List[str]:
        missing = []
        if not self.client_id:
            missing.append(self.client_id_env)
        if not self.client_secret:
            missing.append(self.client_secret_env)
        return missing

    @property
    def fallback_handle(self) -> str:
        return f"@{self.platform.value}_user"

    @property
    def redirect_uri(self) -> str:
        return redirect_uri_for(self.platform)


# Instagram professional accounts authorize through the Facebook dialog.
PLATFORM_CONFIGS: Dict[Platform, PlatformConfig] = {
    Platform.INSTAGRAM: PlatformConfig(
        platform=Platform.INSTAGRAM,
        auth_url="https://www.facebook.com/v18.0/dialog/oauth",
        token_url="https://graph.facebook.com/v18.0/oauth/access_token",
        scopes="instagram_basic,instagram_manage_insights,pages_show_list,pages_read_engagement",
        client_id_env="INSTAGRAM_CLIENT_ID",
        client_secret_env="INSTAGRAM_CLIENT_SECRET",
        profile_url="https://graph.facebook.com/v18.0/me?fields=id,name,accounts{instagram_business_account}",
        extract_handle=_graph_name,
        display=DisplayDefaults(
            name="Instagram Business",
            color="bg-gradient-to-tr from-yellow-400 via-red-500 to-purple-600",
            description="Direct publishing & reel analytics integration.",
            icon_name="Instagram",
        ),
    ),
    Platform.FACEBOOK: PlatformConfig(
        platform=Platform.FACEBOOK,
        auth_url="https://www.facebook.com/v18.0/dialog/oauth",
        token_url="https://graph.facebook.com/v18.0/oauth/access_token",
        scopes="pages_show_list,pages_read_engagement,instagram_basic,instagram_manage_insights",
        client_id_env="FACEBOOK_CLIENT_ID",
        client_secret_env="FACEBOOK_CLIENT_SECRET",
        profile_url="https://graph.facebook.com/me?fields=id,name",
        extract_handle=_graph_name,
        display=DisplayDefaults(
            name="Facebook Ads",
            color="bg-[#1877F2]",
            description="Enterprise ad manager & lead sync.",
            icon_name="Facebook",
        ),
    ),
    Platform.LINKEDIN: PlatformConfig(
        platform=Platform.LINKEDIN,
        auth_url="https://www.linkedin.com/oauth/v2/authorization",
        token_url="https://www.linkedin.com/oauth/v2/accessToken",
        scopes="r_liteprofile r_emailaddress r_organization_social",
        client_id_env="LINKEDIN_CLIENT_ID",
        client_secret_env="LINKEDIN_CLIENT_SECRET",
        profile_url="https://api.linkedin.com/v2/me?projection=(id,localizedFirstName,localizedLastName)",
        extract_handle=_linkedin_full_name,
        display=DisplayDefaults(
            name="LinkedIn Company",
            color="bg-[#0A66C2]",
            description="Professional networking & B2B reach.",
            icon_name="Linkedin",
        ),
    ),
    Platform.YOUTUBE: PlatformConfig(
        platform=Platform.YOUTUBE,
        auth_url="https://accounts.google.com/o/oauth2/v2/auth",
        token_url="https://oauth2.googleapis.com/token",
        scopes="https://www.googleapis.com/auth/youtube.readonly https://www.googleapis.com/auth/yt-analytics.readonly",
        client_id_env="YOUTUBE_CLIENT_ID",
        client_secret_env="YOUTUBE_CLIENT_SECRET",
        profile_url="https://www.googleapis.com/youtube/v3/channels?part=snippet&mine=true",
        extract_handle=_youtube_channel_title,
        display=DisplayDefaults(
            name="YouTube Enterprise",
            color="bg-[#FF0000]",
            description="Video delivery & channel growth engine.",
            icon_name="Youtube",
        ),
        extra_params={"access_type": "offline", "prompt": "consent"},
    ),
}


def get_platform_config(name: str) -> Optional[PlatformConfig]:
    try:
        return PLATFORM_CONFIGS[Platform(name)]
    except ValueError:
        return None


def redirect_uri_for(platform: Platform) -> str:
    return f"{app_base_url()}/api/oauth/{platform.value}/callback"
