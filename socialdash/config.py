# socialdash/config.py
import os

DEFAULT_APP_URL = "http://localhost:3000"


def app_base_url() -> str:
    url = os.getenv("APP_URL") or os.getenv("NEXT_PUBLIC_APP_URL") or DEFAULT_APP_URL
    return url.rstrip("/")


def is_production() -> bool:
    return os.getenv("ENVIRONMENT", "development").lower() == "production"


def cookie_secure() -> bool:
    return is_production() or os.getenv("COOKIE_SECURE", "false").lower() == "true"


def cookie_samesite() -> str:
    return os.getenv("COOKIE_SAMESITE", "lax")


def oauth_state_ttl_seconds() -> int:
    return int(os.getenv("OAUTH_STATE_TTL_SECONDS", "600"))


def oauth_http_timeout_seconds() -> float:
    return float(os.getenv("OAUTH_HTTP_TIMEOUT_SECONDS", "5"))


def connections_page_url() -> str:
    return f"{app_base_url()}/dashboard/connections"
