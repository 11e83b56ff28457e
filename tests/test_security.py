"""Password hashing and access-token tests."""
from datetime import timedelta

import jwt
import pytest

from farmers_market.config import settings
from farmers_market.errors import UnauthorizedError
from farmers_market.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)

MEMBER = {
    "id": "abc123",
    "name": "Ana",
    "location": "tulum",
    "phone": "555-0101",
    "email": "ana@example.com",
}


def test_hash_password_is_salted():
    first = hash_password("pw-1234")
    second = hash_password("pw-1234")
    assert first != second
    assert first.startswith("scrypt$")
    assert verify_password("pw-1234", first)
    assert verify_password("pw-1234", second)


def test_verify_password_rejects_wrong_password():
    assert not verify_password("wrong", hash_password("right"))


def test_verify_password_rejects_malformed_hash():
    assert not verify_password("anything", "not-a-hash")


def test_token_round_trip_carries_claims():
    token = create_access_token(MEMBER)
    principal = decode_access_token(token)
    assert principal.id == "abc123"
    assert principal.name == "Ana"
    assert principal.email == "ana@example.com"

    claims = jwt.decode(token, options={"verify_signature": False})
    assert claims["location"] == "tulum"
    assert claims["phone"] == "555-0101"
    assert claims["exp"] - claims["iat"] == settings.ACCESS_TOKEN_TTL_MINUTES * 60


def test_token_header_is_rs256():
    token = create_access_token(MEMBER)
    assert jwt.get_unverified_header(token)["alg"] == "RS256"


def test_expired_token_is_rejected():
    token = create_access_token(MEMBER, expires_delta=timedelta(seconds=-10))
    with pytest.raises(UnauthorizedError):
        decode_access_token(token)


def test_tampered_token_is_rejected():
    token = create_access_token(MEMBER)
    header, payload, signature = token.split(".")
    tampered = f"{header}.{payload}.{signature[::-1]}"
    with pytest.raises(UnauthorizedError):
        decode_access_token(tampered)


def test_token_signed_with_other_key_is_rejected():
    forged = jwt.encode({"sub": "abc123", "iat": 0, "exp": 9999999999}, "shared-secret", algorithm="HS256")
    with pytest.raises(UnauthorizedError):
        decode_access_token(forged)
