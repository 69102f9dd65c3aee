"""
Tests for password hashing, token verification and revocation.
"""
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from gymhub.core.config import settings
from gymhub.core.errors import UnauthorizedError
from gymhub.core.security import (
    TokenRevocationStore,
    hash_password,
    revoke_principal_token,
    sign_token,
    verify_password,
    verify_token,
)
from gymhub.models.user import Role


class FakeClock:
    def __init__(self, start=1000.0):
        self.value = start

    def __call__(self):
        return self.value


def test_password_round_trip():
    hashed = hash_password("hunter22!")
    assert hashed != "hunter22!"
    assert verify_password("hunter22!", hashed) is True
    assert verify_password("hunter23!", hashed) is False


def test_verify_password_tolerates_missing_or_garbage_hash():
    assert verify_password("anything", None) is False
    assert verify_password("anything", "not-a-bcrypt-hash") is False


def test_token_carries_principal():
    principal = verify_token(sign_token("user-1", "Asha", Role.OWNER))
    assert principal.id == "user-1"
    assert principal.name == "Asha"
    assert principal.role == Role.OWNER
    assert principal.expires_at > datetime.now(timezone.utc)


def test_expired_token():
    token = sign_token("user-1", "Asha", Role.USER, now=datetime.now(timezone.utc) - timedelta(days=1))
    with pytest.raises(UnauthorizedError, match="Token expired"):
        verify_token(token)


def test_tampered_token():
    token = jwt.encode({"sub": "user-1", "jti": "x", "exp": datetime.now(timezone.utc) + timedelta(hours=1)}, "other-secret", algorithm="HS256")
    with pytest.raises(UnauthorizedError, match="Invalid token"):
        verify_token(token)


def test_token_without_jti_is_rejected():
    token = jwt.encode(
        {"sub": "user-1", "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )
    with pytest.raises(UnauthorizedError, match="Invalid token"):
        verify_token(token)


def test_revoked_token_is_rejected():
    store = TokenRevocationStore()
    token = sign_token("user-1", "Asha", Role.USER)
    principal = verify_token(token, store=store)

    revoke_principal_token(principal, store=store)

    with pytest.raises(UnauthorizedError, match="Invalid token"):
        verify_token(token, store=store)
    # Other tokens for the same user stay valid
    assert verify_token(sign_token("user-1", "Asha", Role.USER), store=store).id == "user-1"


def test_revocation_entries_expire():
    clock = FakeClock()
    store = TokenRevocationStore(time_fn=clock)
    store.revoke("a", expires_at=clock.value + 60)
    assert store.is_revoked("a") is True

    clock.value += 61
    assert store.is_revoked("a") is False
    assert len(store) == 0


def test_already_expired_tokens_are_not_stored():
    clock = FakeClock()
    store = TokenRevocationStore(time_fn=clock)
    store.revoke("old", expires_at=clock.value - 1)
    assert len(store) == 0


def test_revocation_store_is_bounded():
    """When full, the entry closest to expiry is evicted first."""
    clock = FakeClock()
    store = TokenRevocationStore(max_entries=2, time_fn=clock)
    store.revoke("soon", expires_at=clock.value + 10)
    store.revoke("later", expires_at=clock.value + 100)
    store.revoke("latest", expires_at=clock.value + 200)

    assert len(store) == 2
    assert store.is_revoked("soon") is False
    assert store.is_revoked("later") is True
    assert store.is_revoked("latest") is True
