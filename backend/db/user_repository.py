from datetime import datetime
from typing import Optional
import logging
from bson import ObjectId
from bson.errors import InvalidId
from pymongo.errors import DuplicateKeyError

logger = logging.getLogger(__name__)


class DuplicateEmailError(Exception):
    pass


class UserRepository:
    """Single-record reads and writes on the ``users`` collection.

    Documents look like ``{_id, email, hashed_password, refresh_token,
    created_at, updated_at}``. Uniqueness of ``email`` is enforced by the
    store's unique index, not here.
    """

    def __init__(self, collection):
        self.collection = collection

    async def find_by_email(self, email: str) -> Optional[dict]:
        return await self.collection.find_one({"email": email})

    async def find_by_id(self, user_id) -> Optional[dict]:
        try:
            oid = user_id if isinstance(user_id, ObjectId) else ObjectId(str(user_id))
        except (InvalidId, TypeError):
            return None
        return await self.collection.find_one({"_id": oid})

    async def find_by_refresh_token(self, token: str) -> Optional[dict]:
        if not token:
            return None
        return await self.collection.find_one({"refresh_token": token})

    async def create(self, doc: dict) -> dict:
        now = datetime.utcnow().isoformat()
        doc = {**doc, "created_at": now, "updated_at": now}
        try:
            result = await self.collection.insert_one(doc)
        except DuplicateKeyError as e:
            raise DuplicateEmailError(doc.get("email")) from e
        doc.setdefault("_id", result.inserted_id)
        return doc

    async def set_refresh_token(self, user_id, token: Optional[str]) -> bool:
        """Overwrite the single stored refresh token; ``None`` revokes it."""
        result = await self.collection.update_one(
            {"_id": user_id},
            {"$set": {"refresh_token": token, "updated_at": datetime.utcnow().isoformat()}},
        )
        return result.matched_count == 1
