"""Tests for password hashing and access tokens."""
from datetime import timedelta

import pytest

from budgetflow.errors import Unauthorized
from budgetflow.utils.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)


def test_password_hash_verifies():
    hashed = hash_password("secret123")

    assert hashed != "secret123"
    assert verify_password("secret123", hashed)
    assert not verify_password("wrong-pass", hashed)
    assert not verify_password("secret123", "not-a-bcrypt-hash")


def test_token_carries_user_id():
    token = create_access_token("user_1", "alice@budgetmail.com")
    assert decode_access_token(token) == "user_1"


def test_expired_token_is_rejected():
    token = create_access_token("user_1", "alice@budgetmail.com", expires_delta=timedelta(seconds=-5))

    with pytest.raises(Unauthorized):
        decode_access_token(token)


def test_garbage_token_is_rejected():
    with pytest.raises(Unauthorized):
        decode_access_token("not.a.token")
