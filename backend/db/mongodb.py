import logging
import asyncio
from typing import Optional
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
import certifi
from core.config import Settings

logger = logging.getLogger(__name__)

_mongo_client: Optional[AsyncIOMotorClient] = None
_mongo_db: Optional[AsyncIOMotorDatabase] = None


def _client_kwargs(uri: str) -> dict:
    kwargs = {
        "serverSelectionTimeoutMS": 30000,
        "connectTimeoutMS": 20000,
        "socketTimeoutMS": 20000,
    }
    # Atlas / TLS endpoints: pass the CA bundle explicitly to avoid local OpenSSL issues
    if "mongodb.net" in uri or uri.startswith("mongodb+srv://"):
        kwargs.update({
            "tls": True,
            "tlsCAFile": certifi.where(),
            "retryWrites": True,
        })
    if uri.startswith("mongodb+srv://"):
        kwargs["directConnection"] = False
    return kwargs


def get_mongo_db(settings: Settings) -> Optional[AsyncIOMotorDatabase]:
    global _mongo_client, _mongo_db
    if _mongo_db is not None:
        return _mongo_db
    if not settings.MONGO_URI:
        logger.warning("MONGO_URI is not set; credential store unavailable")
        return None
    _mongo_client = AsyncIOMotorClient(settings.MONGO_URI, **_client_kwargs(settings.MONGO_URI))
    _mongo_db = _mongo_client[settings.MONGO_DB]
    return _mongo_db


def close_mongo_client() -> None:
    global _mongo_client, _mongo_db
    if _mongo_client is not None:
        _mongo_client.close()
        logger.info("Closed Mongo client")
    _mongo_client = None
    _mongo_db = None


async def init_mongo_indexes(db, attempts: int = 5) -> bool:
    if db is None:
        return False
    # Retry ping and index creation to allow primary election / networking delays
    for attempt in range(1, attempts + 1):
        try:
            await db.command({"ping": 1})
            await db.users.create_index("email", unique=True, name="u_email")
            await db.users.create_index("refresh_token", sparse=True, name="i_refresh_token")
            return True
        except Exception as e:
            wait_s = min(2 ** attempt, 15)
            logger.warning(f"Mongo not ready (attempt {attempt}): {e}; retrying in {wait_s}s")
            await asyncio.sleep(wait_s)
    logger.error("Mongo index initialization failed after retries")
    return False
