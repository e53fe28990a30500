import logging
import re
from typing import Optional
from bson import ObjectId
from core.config import AuthConfig
from core.errors import (
    AuthError,
    InvalidCredentialsError,
    InvalidTokenError,
    MissingTokenError,
    NotFoundError,
    ServerError,
    ValidationError,
)
from core.security import PasswordHasher, TokenIssuer
from db.user_repository import DuplicateEmailError, UserRepository
from schemas.user_schema import AuthResponse, MessageResponse, TokenPair, User, UserInDB
from utils.timing import timeit

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
PASSWORD_PATTERN = re.compile(r"^(?=.*[0-9])(?=.*[!@#$%^&*])[A-Za-z0-9!@#$%^&*]{8,}$")

PASSWORD_RULES_MESSAGE = (
    "Password must be at least 8 characters long and include at least one number "
    "and one special character"
)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def is_valid_email(email: str) -> bool:
    return bool(email) and EMAIL_PATTERN.fullmatch(email) is not None


def is_strong_password(password: str) -> bool:
    return bool(password) and PASSWORD_PATTERN.fullmatch(password) is not None


class AuthService:
    """Register, login, refresh and logout over a single users collection.

    Every user holds at most one active refresh token. Issuing a new one on
    register/login/refresh overwrites the stored value, so the previous token
    stops matching any record. Concurrent writes for the same user resolve
    last-write-wins at the store.
    """

    def __init__(
        self,
        config: AuthConfig,
        users: UserRepository,
        hasher: Optional[PasswordHasher] = None,
        tokens: Optional[TokenIssuer] = None,
    ):
        self.config = config
        self.users = users
        self.hasher = hasher or PasswordHasher(config.bcrypt_rounds)
        self.tokens = tokens or TokenIssuer(config)

    @timeit("register")
    async def register(self, email: Optional[str], password: Optional[str]) -> AuthResponse:
        if not email or not password:
            raise ValidationError("Email and password are required")
        email = normalize_email(email)
        if not is_valid_email(email):
            raise ValidationError("Invalid email format")
        if not is_strong_password(password):
            raise ValidationError(PASSWORD_RULES_MESSAGE)

        try:
            user_id = ObjectId()
            pair = self.tokens.issue_pair(str(user_id))
            await self.users.create({
                "_id": user_id,
                "email": email,
                "hashed_password": self.hasher.hash(password),
                "refresh_token": pair.refreshToken,
            })
        except DuplicateEmailError:
            logger.warning(f"Registration rejected, email already registered: {email}")
            raise ServerError("Email already registered")
        except Exception as e:
            logger.error(f"Error registering user: {e}")
            raise ServerError()

        logger.info(f"Registered user {user_id}")
        return AuthResponse(message="User registered successfully", **pair.model_dump())

    @timeit("login")
    async def login(self, email: Optional[str], password: Optional[str]) -> AuthResponse:
        if not email or not password:
            raise ValidationError("Email and password are required")
        try:
            doc = await self.users.find_by_email(normalize_email(email))
            if not doc:
                raise NotFoundError("User not found")
            user = UserInDB.from_document(doc)
            if not self.hasher.verify(password, user.hashed_password):
                raise InvalidCredentialsError("Invalid credentials")
            pair = self.tokens.issue_pair(user.id)
            await self.users.set_refresh_token(doc["_id"], pair.refreshToken)
        except AuthError as e:
            logger.warning(f"Login failed: {e.message}")
            raise
        except Exception as e:
            logger.error(f"Error logging in user: {e}")
            raise ServerError()

        return AuthResponse(message="Login successful", **pair.model_dump())

    @timeit("refresh")
    async def refresh(self, refresh_token: Optional[str]) -> TokenPair:
        if not refresh_token:
            raise MissingTokenError("Refresh token required")
        if not isinstance(refresh_token, str):
            raise InvalidTokenError("Invalid refresh token")
        try:
            doc = await self.users.find_by_refresh_token(refresh_token)
            if not doc:
                raise InvalidTokenError("Invalid refresh token")
            payload = self.tokens.verify_refresh_token(refresh_token)
            if payload is None or payload.get("sub") != str(doc["_id"]):
                raise InvalidTokenError("Invalid refresh token")
            # Rotation: the token used for lookup stops matching after this write
            pair = self.tokens.issue_pair(str(doc["_id"]))
            await self.users.set_refresh_token(doc["_id"], pair.refreshToken)
        except AuthError as e:
            logger.warning(f"Refresh failed: {e.message}")
            raise
        except Exception as e:
            logger.error(f"Error refreshing tokens: {e}")
            raise ServerError()
        return pair

    @timeit("logout")
    async def logout(self, refresh_token: Optional[str]) -> MessageResponse:
        if not refresh_token:
            raise MissingTokenError("Refresh token required")
        if not isinstance(refresh_token, str):
            raise InvalidTokenError("Invalid refresh token")
        try:
            doc = await self.users.find_by_refresh_token(refresh_token)
            if not doc:
                raise InvalidTokenError("Invalid refresh token")
            await self.users.set_refresh_token(doc["_id"], None)
        except AuthError as e:
            logger.warning(f"Logout failed: {e.message}")
            raise
        except Exception as e:
            logger.error(f"Error logging out user: {e}")
            raise ServerError()
        logger.info(f"Revoked refresh token for user {doc['_id']}")
        return MessageResponse(message="Logout successful")

    async def current_user(self, access_token: Optional[str]) -> Optional[User]:
        """Resolve the user behind an access token, or None."""
        if not access_token:
            return None
        payload = self.tokens.verify_access_token(access_token)
        if payload is None:
            return None
        try:
            doc = await self.users.find_by_id(payload["sub"])
        except Exception as e:
            logger.error(f"Error loading current user: {e}")
            raise ServerError()
        if not doc:
            return None
        return User(id=str(doc["_id"]), email=doc["email"])
