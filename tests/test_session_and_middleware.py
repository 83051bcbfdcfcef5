import time

import pytest
from jose import jwt

from socialdash.auth import utils as auth_utils
from socialdash.auth.utils import (
    decrypt_token,
    encrypt_token,
    session_user_from_token,
    state_cookie_name,
    states_match,
)
from conftest import make_session_token


def test_session_user_from_valid_token():
    user = session_user_from_token(make_session_token("user-42", "a@example.com"))

    assert user.id == "user-42"
    assert user.email == "a@example.com"


def test_session_user_rejects_bad_tokens():
    expired = jwt.encode(
        {"sub": "u", "aud": auth_utils.SESSION_JWT_AUDIENCE, "exp": int(time.time()) - 10},
        auth_utils.SESSION_JWT_SECRET,
        algorithm="HS256",
    )
    wrong_key = jwt.encode({"sub": "u", "aud": auth_utils.SESSION_JWT_AUDIENCE}, "other-secret", algorithm="HS256")
    no_subject = jwt.encode({"aud": auth_utils.SESSION_JWT_AUDIENCE}, auth_utils.SESSION_JWT_SECRET, algorithm="HS256")

    assert session_user_from_token(None) is None
    assert session_user_from_token("not-a-jwt") is None
    assert session_user_from_token(expired) is None
    assert session_user_from_token(wrong_key) is None
    assert session_user_from_token(no_subject) is None


def test_state_helpers():
    assert state_cookie_name("youtube") == "oauth_state_youtube"
    assert states_match("abc", "abc")
    assert not states_match("abc", "abd")
    assert not states_match("abc", None)
    assert not states_match(None, None)


def test_token_encryption_round_trip_and_tamper():
    cipher = encrypt_token("secret-token")

    assert decrypt_token(cipher) == "secret-token"
    assert encrypt_token(None) is None
    assert decrypt_token(None) is None
    assert decrypt_token(cipher[:-4] + "AAAA") is None


@pytest.mark.asyncio
async def test_request_id_is_echoed(api_client):
    generated = await api_client.get("/health")
    supplied = await api_client.get("/health", headers={"X-Request-ID": "req-123"})

    assert generated.status_code == 200
    assert generated.headers["x-request-id"]
    assert supplied.headers["x-request-id"] == "req-123"
