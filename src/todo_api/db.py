from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection
from pymongo import ReturnDocument

from .models import TodoEntity
from .repositories import Repository, parse_object_id
from .schemas import validate_todo

logger = logging.getLogger(__name__)

COLLECTION_NAME = "todos"


class MongoRepository(Repository):
    """
    MongoDB repository implementing the Repository interface through motor.
    """

    def __init__(
        self,
        connection_string: str = "mongodb://localhost:27017",
        database_name: str = "todos",
        collection_name: str = COLLECTION_NAME,
        **client_kwargs: Any,
    ) -> None:
        self.connection_string = connection_string
        self.database_name = database_name
        self.collection_name = collection_name
        self.client_kwargs = client_kwargs
        self.client: Optional[AsyncIOMotorClient] = None
        self._collection: Optional[AsyncIOMotorCollection] = None

    async def connect(self) -> None:
        if self.client is None:
            self.client = AsyncIOMotorClient(self.connection_string, **self.client_kwargs)
            self._collection = self.client[self.database_name][self.collection_name]
            logger.info("Connected to MongoDB database=%s collection=%s", self.database_name, self.collection_name)

    async def close(self) -> None:
        if self.client is not None:
            self.client.close()
            self.client = None
            self._collection = None
            logger.info("Closed MongoDB connection")

    async def _get_collection(self) -> AsyncIOMotorCollection:
        if self._collection is None:
            await self.connect()
        assert self._collection is not None
        return self._collection

    @staticmethod
    def _to_entity(doc: Mapping[str, Any]) -> TodoEntity:
        return {"_id": str(doc["_id"]), "title": doc["title"], "done": doc["done"]}

    async def create(self, payload: Mapping[str, Any]) -> TodoEntity:
        fields = validate_todo(payload)
        collection = await self._get_collection()
        result = await collection.insert_one(dict(fields))
        return self._to_entity({"_id": result.inserted_id, **fields})

    async def find(self, query: Optional[Mapping[str, Any]] = None) -> List[TodoEntity]:
        collection = await self._get_collection()
        return [self._to_entity(doc) async for doc in collection.find(dict(query or {}))]

    async def find_by_id(self, todo_id: str) -> Optional[TodoEntity]:
        oid = parse_object_id(todo_id)
        collection = await self._get_collection()
        doc = await collection.find_one({"_id": oid})
        return self._to_entity(doc) if doc else None

    async def find_by_id_and_update(
        self, todo_id: str, payload: Mapping[str, Any], new: bool = True
    ) -> Optional[TodoEntity]:
        oid = parse_object_id(todo_id)
        fields = validate_todo(payload)
        collection = await self._get_collection()
        doc = await collection.find_one_and_update(
            {"_id": oid},
            {"$set": fields},
            return_document=ReturnDocument.AFTER if new else ReturnDocument.BEFORE,
        )
        return self._to_entity(doc) if doc else None

    async def find_by_id_and_delete(self, todo_id: str) -> Optional[TodoEntity]:
        oid = parse_object_id(todo_id)
        collection = await self._get_collection()
        doc = await collection.find_one_and_delete({"_id": oid})
        return self._to_entity(doc) if doc else None
