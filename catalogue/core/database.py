from __future__ import annotations

import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection
from pymongo.errors import PyMongoError

from catalogue.core.config import settings

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Owns the Motor client behind the persistent poster cache tier.

    Use the module-level ``db`` instance. The catalogue works without
    MongoDB, so ``connect()`` reports an unreachable server instead of
    raising and the caller runs with the memory tier alone.

    Lifecycle::

        if await db.connect():   # once at startup
            ...
        await db.disconnect()    # once at shutdown
    """

    _instance: DatabaseManager | None = None
    _client: AsyncIOMotorClient | None = None

    def __new__(cls) -> DatabaseManager:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    async def connect(self) -> bool:
        """Open the client and ping the server. Returns ``False`` if it is unreachable."""
        client = AsyncIOMotorClient(
            settings.mongo_uri,
            maxPoolSize=settings.mongo_max_pool_size,
            serverSelectionTimeoutMS=settings.mongo_connect_timeout_ms,
        )
        try:
            await client.admin.command("ping")
        except PyMongoError as exc:
            client.close()
            logger.warning(
                "MongoDB at %s unreachable (%s); persistent poster cache disabled",
                settings.mongo_uri,
                exc,
            )
            return False
        self._client = client
        logger.info("Persistent poster cache connected to %s", settings.mongo_uri)
        return True

    async def disconnect(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
            logger.info("Persistent poster cache disconnected")

    def get_collection(self, name: str) -> AsyncIOMotorCollection:
        """Return collection *name* from ``settings.mongo_db``."""
        if self._client is None:
            raise RuntimeError("Persistent cache is not connected. Call connect() first.")
        return self._client[settings.mongo_db][name]


#: Shared connection pool; cache state lives in ``CachedResourceFetcher``.
db: DatabaseManager = DatabaseManager()
