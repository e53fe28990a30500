"""
Pytest configuration and fixtures for the backend tests.
"""
import os

# Settings are read from the environment when main is imported
os.environ.setdefault("JWT_SECRET", "test-access-secret")
os.environ.setdefault("JWT_REFRESH_SECRET", "test-refresh-secret")
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from types import SimpleNamespace
from bson import ObjectId
from faker import Faker
from fastapi.testclient import TestClient
from pymongo.errors import ConnectionFailure, DuplicateKeyError

from core.config import AuthConfig, Settings
from core.security import PasswordHasher, TokenIssuer
from db.user_repository import UserRepository
from main import create_app
from services.auth_service import AuthService

# Initialize Faker for test data generation
fake = Faker()

VALID_PASSWORD = "Secret1!"


class FakeUsersCollection:
    """In-memory stand-in for the motor ``users`` collection.

    Supports the calls the repository makes, with the unique email index
    enforced on insert.
    """

    def __init__(self):
        self.docs = []
        self.indexes = {}
        self.fail_with = None

    def _check_failure(self):
        if self.fail_with is not None:
            raise self.fail_with

    @staticmethod
    def _matches(doc, query):
        return all(doc.get(key) == value for key, value in query.items())

    async def create_index(self, key, name=None, **kwargs):
        self.indexes[name or key] = {"key": key, **kwargs}
        return name or key

    async def find_one(self, query):
        self._check_failure()
        for doc in self.docs:
            if self._matches(doc, query):
                return dict(doc)
        return None

    async def insert_one(self, doc):
        self._check_failure()
        if any(existing["email"] == doc["email"] for existing in self.docs):
            raise DuplicateKeyError("E11000 duplicate key error collection: users index: u_email")
        doc.setdefault("_id", ObjectId())
        self.docs.append(dict(doc))
        return SimpleNamespace(inserted_id=doc["_id"])

    async def update_one(self, query, update):
        self._check_failure()
        for doc in self.docs:
            if self._matches(doc, query):
                doc.update(update.get("$set", {}))
                return SimpleNamespace(matched_count=1, modified_count=1)
        return SimpleNamespace(matched_count=0, modified_count=0)

    def get(self, **query):
        for doc in self.docs:
            if self._matches(doc, query):
                return doc
        return None


class FakeDatabase:
    def __init__(self):
        self.users = FakeUsersCollection()
        self.down = False

    async def command(self, cmd):
        if self.down:
            raise ConnectionFailure("server selection timeout")
        return {"ok": 1.0}


def make_settings(**overrides) -> Settings:
    values = {
        "JWT_SECRET": "test-access-secret",
        "JWT_REFRESH_SECRET": "test-refresh-secret",
        "BCRYPT_ROUNDS": 4,
        "LOG_TO_FILE": False,
        "LOG_LEVEL": "DEBUG",
        "RATE_LIMIT_ENABLED": False,
        "CORS_WHITELIST": "http://localhost:5173",
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def auth_config(settings) -> AuthConfig:
    return AuthConfig.from_settings(settings)


@pytest.fixture
def token_issuer(auth_config) -> TokenIssuer:
    return TokenIssuer(auth_config)


@pytest.fixture
def hasher(auth_config) -> PasswordHasher:
    return PasswordHasher(auth_config.bcrypt_rounds)


@pytest.fixture
def fake_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def auth_service(auth_config, fake_db, hasher, token_issuer) -> AuthService:
    return AuthService(auth_config, UserRepository(fake_db.users), hasher=hasher, tokens=token_issuer)


@pytest.fixture
def app(settings, fake_db):
    return create_app(settings, db=fake_db)


@pytest.fixture
def client(app) -> TestClient:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def sample_credentials():
    """Valid registration payload."""
    return {"email": fake.unique.email(), "password": VALID_PASSWORD}


@pytest.fixture
def registered_user(client, sample_credentials):
    """Register a user through the API and return credentials plus tokens."""
    response = client.post("/auth/register", json=sample_credentials)
    assert response.status_code == 201
    return {**sample_credentials, **response.json()}
