# socialdash/auth/utils.py
import os
import secrets
from typing import Any, Dict, Optional

import structlog
from jose import jwt, JWTError
from cryptography.fernet import Fernet, InvalidToken

from socialdash.auth.schemas import SessionUser

logger = structlog.get_logger(__name__)

# Config (env)
SESSION_JWT_SECRET = os.getenv("SESSION_JWT_SECRET", "change_me_now")
SESSION_JWT_ALGORITHM = os.getenv("SESSION_JWT_ALGORITHM", "HS256")
SESSION_JWT_AUDIENCE = os.getenv("SESSION_JWT_AUDIENCE", "authenticated")
SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "sb-access-token")
OAUTH_TOKEN_KEY = os.getenv("OAUTH_TOKEN_KEY")  # must be a base64 key for Fernet, set in prod

if not OAUTH_TOKEN_KEY:
    # dev fallback (not for production)
    OAUTH_TOKEN_KEY = Fernet.generate_key().decode()

fernet = Fernet(OAUTH_TOKEN_KEY.encode())

STATE_COOKIE_PREFIX = "oauth_state_"


# --- Session tokens issued by the auth provider ---
def decode_session_token(token: str) -> Dict[str, Any]:
    try:
        return jwt.decode(
            token,
            SESSION_JWT_SECRET,
            algorithms=[SESSION_JWT_ALGORITHM],
            audience=SESSION_JWT_AUDIENCE,
        )
    except JWTError as e:
        logger.warning("session_token_decode_failed", error=str(e))
        raise


def session_user_from_token(token: Optional[str]) -> Optional[SessionUser]:
    """Resolve the signed-in user, or None when the token is absent, invalid or expired."""
    if not token:
        return None
    try:
        payload = decode_session_token(token)
    except JWTError:
        return None
    user_id = payload.get("sub")
    if not user_id:
        return None
    return SessionUser(id=str(user_id), email=payload.get("email"))


# --- OAuth token encryption ---
def encrypt_token(plaintext: Optional[str]) -> Optional[str]:
    if plaintext is None:
        return None
    return fernet.encrypt(plaintext.encode()).decode()


def decrypt_token(ciphertext: Optional[str]) -> Optional[str]:
    if not ciphertext:
        return None
    try:
        return fernet.decrypt(ciphertext.encode()).decode()
    except InvalidToken:
        logger.warning("oauth_token_decrypt_failed")
        return None


# --- OAuth state helpers ---
def generate_oauth_state() -> str:
    return secrets.token_urlsafe(32)


def state_cookie_name(platform: str) -> str:
    return f"{STATE_COOKIE_PREFIX}{platform}"


def states_match(received: Optional[str], stored: Optional[str]) -> bool:
    if not received or not stored:
        return False
    return secrets.compare_digest(received.encode(), stored.encode())
