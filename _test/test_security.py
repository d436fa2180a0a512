"""Access token issuance and decoding."""
from datetime import timedelta

from jose import jwt

from core.config import settings
from core.security import create_access_token, decode_access_token


def test_access_token_round_trip():
    token = create_access_token(data={"sub": "alice"})

    payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    assert payload["type"] == "access"
    assert decode_access_token(token) == "alice"


def test_expired_token_is_rejected():
    token = create_access_token(data={"sub": "alice"}, expires_delta=timedelta(minutes=-5))

    assert decode_access_token(token) is None


def test_token_with_wrong_type_is_rejected():
    token = jwt.encode({"sub": "alice", "type": "refresh"}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

    assert decode_access_token(token) is None


def test_garbage_is_rejected():
    assert decode_access_token("not-a-token") is None
