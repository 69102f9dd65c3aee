"""
Password hashing, JWT issuance and token revocation.

Handles:
- bcrypt password hashing and verification
- HS256 access tokens carrying sub/name/role/jti
- A bounded revocation store keyed by jti whose entries expire with the token
"""
import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional
from uuid import uuid4

import bcrypt
import jwt

from gymhub.core.config import settings
from gymhub.core.errors import UnauthorizedError
from gymhub.models.user import Principal, Role


def hash_password(password: str) -> str:
    """Hash password with bcrypt."""
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    """Verify password against stored hash."""
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed hash in storage
        return False


class TokenRevocationStore:
    """
    Revoked token ids with per-entry expiry.

    Entries live until the revoked token would have expired anyway. When the
    store is full, expired entries are purged first and then the entries
    closest to expiry are evicted.
    """

    def __init__(self, max_entries: int = 10000, time_fn: Optional[Callable[[], float]] = None):
        self.max_entries = max_entries
        self.time_fn = time_fn or time.time
        self._entries: Dict[str, float] = {}
        self._lock = threading.Lock()

    def _purge_expired(self, now: float) -> None:
        expired = [jti for jti, expires_at in self._entries.items() if expires_at <= now]
        for jti in expired:
            del self._entries[jti]

    def revoke(self, jti: str, expires_at: float) -> None:
        with self._lock:
            now = self.time_fn()
            if expires_at <= now:
                return
            self._purge_expired(now)
            while len(self._entries) >= self.max_entries:
                soonest = min(self._entries, key=self._entries.__getitem__)
                del self._entries[soonest]
            self._entries[jti] = expires_at

    def is_revoked(self, jti: str) -> bool:
        with self._lock:
            expires_at = self._entries.get(jti)
            if expires_at is None:
                return False
            if expires_at <= self.time_fn():
                del self._entries[jti]
                return False
            return True

    def __len__(self) -> int:
        with self._lock:
            self._purge_expired(self.time_fn())
            return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


revocation_store = TokenRevocationStore(max_entries=settings.TOKEN_REVOCATION_MAX_ENTRIES)


def _jwt_secret() -> str:
    secret = settings.JWT_SECRET
    if not secret:
        raise RuntimeError("JWT_SECRET is not configured")
    return secret


def sign_token(subject_id: str, name: str, role: Role, now: Optional[datetime] = None) -> str:
    """Issue a signed access token for a user or trainer."""
    issued_at = now or datetime.now(timezone.utc)
    claims = {
        "sub": subject_id,
        "name": name,
        "role": role.value,
        "jti": uuid4().hex,
        "iat": issued_at,
        "exp": issued_at + timedelta(minutes=settings.JWT_EXPIRES_MINUTES),
    }
    return jwt.encode(claims, _jwt_secret(), algorithm=settings.JWT_ALGORITHM)


def verify_token(token: str, store: Optional[TokenRevocationStore] = None) -> Principal:
    """
    Verify a token and return the principal it identifies.

    Raises:
        UnauthorizedError: expired, malformed, tampered or revoked token
    """
    revocations = store if store is not None else revocation_store
    try:
        claims = jwt.decode(
            token,
            _jwt_secret(),
            algorithms=[settings.JWT_ALGORITHM],
            options={"require": ["sub", "exp", "jti"]},
        )
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Unauthorized: Token expired")
    except jwt.InvalidTokenError:
        raise UnauthorizedError("Unauthorized: Invalid token")

    if revocations.is_revoked(claims["jti"]):
        raise UnauthorizedError("Unauthorized: Invalid token")

    try:
        role = Role(claims.get("role", Role.USER.value))
    except ValueError:
        raise UnauthorizedError("Unauthorized: Invalid token")

    return Principal(
        id=claims["sub"],
        name=claims.get("name") or "",
        role=role,
        jti=claims["jti"],
        expires_at=datetime.fromtimestamp(claims["exp"], timezone.utc),
    )


def revoke_principal_token(principal: Principal, store: Optional[TokenRevocationStore] = None) -> None:
    """Revoke the token a principal authenticated with (logout)."""
    revocations = store if store is not None else revocation_store
    revocations.revoke(principal.jti, principal.expires_at.timestamp())
