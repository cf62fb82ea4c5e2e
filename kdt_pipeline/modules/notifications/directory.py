import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection
from pymongo.errors import PyMongoError


logger = logging.getLogger(__name__)


class TokenDirectoryError(Exception):
    pass


class TokenDirectory:
    """Документы вида {"user_id": ..., "tokens": [...]}"""

    def __init__(self, collection: AsyncIOMotorCollection) -> None:
        self.collection = collection

    @classmethod
    def from_client(
        cls,
        client: AsyncIOMotorClient,
        db_name: str,
        collection_name: str,
    ) -> "TokenDirectory":
        return cls(client[db_name][collection_name])

    async def get_tokens(self, user_id: str) -> Optional[set[str]]:
        """None, если пользователь ни разу не регистрировал токен"""
        try:
            document = await self.collection.find_one({"user_id": user_id})
        except PyMongoError as exc:
            raise TokenDirectoryError(f"tokens lookup failed for {user_id}: {exc}") from exc
        if document is None:
            return None
        tokens = set()
        for token in document.get("tokens") or []:
            if isinstance(token, str) and token:
                tokens.add(token)
            else:
                logger.warning("Skipping bad token %r of user_id=%s", token, user_id)
        return tokens

    async def add_token(self, user_id: str, token: str) -> None:
        try:
            await self.collection.update_one(
                {"user_id": user_id},
                {"$addToSet": {"tokens": token}},
                upsert=True,
            )
        except PyMongoError as exc:
            raise TokenDirectoryError(f"failed to add token for {user_id}: {exc}") from exc

    async def remove_token(self, user_id: str, token: str) -> None:
        try:
            await self.collection.update_one(
                {"user_id": user_id},
                {"$pull": {"tokens": token}},
            )
        except PyMongoError as exc:
            raise TokenDirectoryError(f"failed to remove token for {user_id}: {exc}") from exc
