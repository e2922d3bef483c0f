"""
Password hashing and bearer tokens.

Passwords are argon2 hashes via passlib; access tokens are HS256 JWTs whose
`sub` claim carries the user id. Payment tokens are never stored raw, only
their SHA-256 fingerprint (see `hash_token`).
"""

import hashlib
import os
import secrets
from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

SECRET_KEY = os.environ.get("STORE_SECRET_KEY", "dev-secret-unsafe")
ALGORITHM = "HS256"

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


class JWTAuthAdapter:
    def __init__(self, secret_key: str = SECRET_KEY, algorithm: str = ALGORITHM) -> None:
        self._secret_key = secret_key
        self._algorithm = algorithm

    def hash_password(self, password: str) -> str:
        hashed: str = pwd_context.hash(password)
        return hashed

    def verify_password(self, plain: str, hashed: str) -> bool:
        matched: bool = pwd_context.verify(plain, hashed)
        return matched

    def hash_token(self, token: str) -> str:
        return hashlib.sha256(token.encode()).hexdigest()

    def create_token(
        self, user_id: Any, ttl_minutes: int, now_utc: datetime | None = None
    ) -> str:
        issued_at = now_utc if now_utc is not None else datetime.now(UTC)
        claims = {
            "sub": str(user_id),
            "iat": issued_at,
            "exp": issued_at + timedelta(minutes=ttl_minutes),
        }
        encoded: str = jwt.encode(claims, self._secret_key, algorithm=self._algorithm)
        return encoded

    def decode_token(self, token: str) -> dict[str, Any] | None:
        """Return the claims of a valid, unexpired token, else None."""
        try:
            claims: dict[str, Any] = jwt.decode(
                token, self._secret_key, algorithms=[self._algorithm]
            )
        except JWTError:
            return None
        return claims

    def validate_token(self, token: str) -> str | None:
        claims = self.decode_token(token)
        subject = claims.get("sub") if claims else None
        return subject if isinstance(subject, str) else None

    def new_csrf_token(self) -> str:
        return secrets.token_urlsafe(32)
