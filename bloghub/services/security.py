from datetime import datetime, timedelta, timezone

import jwt
from passlib.context import CryptContext


class PasswordHasher:
    """One-way password hashing backed by bcrypt."""

    def __init__(self, rounds: int = 10):
        self._context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    def hash(self, password: str) -> str:
        return self._context.hash(password)

    def verify(self, password: str, digest: str) -> bool:
        try:
            return self._context.verify(password, digest)
        except ValueError:
            # not a digest this context recognizes
            return False


class TokenIssuer:
    """Signs and verifies the session token handed out at login."""

    def __init__(self, secret: str, algorithm: str = "HS256", ttl_minutes: int = 24 * 60):
        self.secret = secret
        self.algorithm = algorithm
        self.ttl = timedelta(minutes=ttl_minutes)

    def sign(self, claims: dict) -> str:
        payload = dict(claims)
        now = datetime.now(timezone.utc)
        payload.update({"iat": now, "exp": now + self.ttl})
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> dict:
        """Decode ``token``; raises ``jwt.InvalidTokenError`` if bad or expired."""
        return jwt.decode(token, self.secret, algorithms=[self.algorithm])
