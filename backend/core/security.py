from datetime import datetime, timedelta
from typing import Optional
import uuid
from jose import JWTError, jwt
from passlib.context import CryptContext
from core.config import AuthConfig
from schemas.user_schema import TokenPair
import logging

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class PasswordHasher:
    """Salted one-way bcrypt hashing"""

    def __init__(self, rounds: int = 10):
        self._context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    def hash(self, password: str) -> str:
        """Generate password hash"""
        return self._context.hash(password)

    def verify(self, plain_password: str, hashed_password: str) -> bool:
        """Verify a password against its hash"""
        if not plain_password or not hashed_password:
            return False
        try:
            return self._context.verify(plain_password, hashed_password)
        except (ValueError, TypeError) as e:
            logger.warning(f"Password verify failed on malformed hash: {e}")
            return False


class TokenIssuer:
    """Creates and validates access/refresh JWTs.

    Access and refresh tokens are signed with distinct secrets, carry the
    user id as ``sub`` and a random ``jti`` so two tokens issued in the same
    second for the same user never collide.
    """

    def __init__(self, config: AuthConfig):
        self.config = config

    def _encode(self, user_id: str, token_type: str, secret: str, expires_delta: timedelta) -> str:
        now = datetime.utcnow()
        to_encode = {
            "sub": str(user_id),
            "type": token_type,
            "jti": uuid.uuid4().hex,
            "iat": now,
            "exp": now + expires_delta,
        }
        return jwt.encode(to_encode, secret, algorithm=self.config.algorithm)

    def create_access_token(self, user_id: str, expires_delta: Optional[timedelta] = None) -> str:
        """Create JWT access token"""
        if expires_delta is None:
            expires_delta = timedelta(minutes=self.config.access_token_expire_minutes)
        return self._encode(user_id, ACCESS_TOKEN_TYPE, self.config.access_secret, expires_delta)

    def create_refresh_token(self, user_id: str, expires_delta: Optional[timedelta] = None) -> str:
        """Create JWT refresh token"""
        if expires_delta is None:
            expires_delta = timedelta(days=self.config.refresh_token_expire_days)
        return self._encode(user_id, REFRESH_TOKEN_TYPE, self.config.refresh_secret, expires_delta)

    def issue_pair(self, user_id: str) -> TokenPair:
        return TokenPair(
            accessToken=self.create_access_token(user_id),
            refreshToken=self.create_refresh_token(user_id),
        )

    def _decode(self, token: str, secret: str, token_type: str) -> Optional[dict]:
        try:
            payload = jwt.decode(token, secret, algorithms=[self.config.algorithm])
        except JWTError as e:
            logger.warning(f"JWT decode failed: {e}")
            return None
        if payload.get("type") != token_type:
            logger.warning(f"JWT has type {payload.get('type')!r}, expected {token_type!r}")
            return None
        if not payload.get("sub"):
            return None
        return payload

    def verify_access_token(self, token: str) -> Optional[dict]:
        """Verify and decode an access token"""
        return self._decode(token, self.config.access_secret, ACCESS_TOKEN_TYPE)

    def verify_refresh_token(self, token: str) -> Optional[dict]:
        """Verify and decode a refresh token"""
        return self._decode(token, self.config.refresh_secret, REFRESH_TOKEN_TYPE)
