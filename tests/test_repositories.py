from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from bson import ObjectId
from pymongo import ReturnDocument

from todo_api.db import MongoRepository
from todo_api.errors import StoreError, TodoCastError, TodoValidationError
from todo_api.repositories import InMemoryRepository, get_repository, parse_object_id

NOT_EXISTING_TODO_ID = "683c4feb83b48baa4c6b2222"


class TestInMemoryRepository:
    @pytest.mark.asyncio
    async def test_create_assigns_object_id(self):
        repo = InMemoryRepository()
        todo = await repo.create({"title": "Write tests", "done": False})
        assert ObjectId.is_valid(todo["_id"])
        assert todo["title"] == "Write tests"
        assert todo["done"] is False

    @pytest.mark.asyncio
    async def test_create_ignores_supplied_id_and_extra_keys(self):
        repo = InMemoryRepository()
        todo = await repo.create({"_id": NOT_EXISTING_TODO_ID, "title": "x", "done": True, "extra": 1})
        assert todo["_id"] != NOT_EXISTING_TODO_ID
        assert set(todo) == {"_id", "title", "done"}

    @pytest.mark.asyncio
    async def test_create_missing_done(self):
        repo = InMemoryRepository()
        with pytest.raises(TodoValidationError) as excinfo:
            await repo.create({"title": "Missing done property"})
        assert str(excinfo.value) == "Todo validation failed: done: Path `done` is required."
        assert excinfo.value.fields == {"done": "Path `done` is required."}
        assert await repo.find() == []

    @pytest.mark.asyncio
    async def test_create_null_and_empty_values_count_as_missing(self):
        repo = InMemoryRepository()
        with pytest.raises(TodoValidationError) as excinfo:
            await repo.create({"title": "", "done": None})
        assert [field for field, _ in excinfo.value.errors] == ["title", "done"]
        assert str(excinfo.value) == (
            "Todo validation failed: title: Path `title` is required., done: Path `done` is required."
        )

    @pytest.mark.asyncio
    async def test_create_does_not_coerce_types(self):
        repo = InMemoryRepository()
        with pytest.raises(TodoValidationError) as excinfo:
            await repo.create({"title": 5, "done": "true"})
        assert excinfo.value.fields == {
            "title": 'Cast to String failed for value "5" (type number) at path "title"',
            "done": 'Cast to Boolean failed for value "true" (type string) at path "done"',
        }

    @pytest.mark.asyncio
    async def test_find_returns_copies_in_insertion_order(self):
        repo = InMemoryRepository()
        a = await repo.create({"title": "a", "done": False})
        b = await repo.create({"title": "b", "done": True})
        items = await repo.find({})
        assert items == [a, b]
        items[0]["title"] = "mutated"
        assert (await repo.find_by_id(a["_id"]))["title"] == "a"

    @pytest.mark.asyncio
    async def test_find_with_equality_filter(self):
        repo = InMemoryRepository()
        await repo.create({"title": "a", "done": False})
        b = await repo.create({"title": "b", "done": True})
        assert await repo.find({"done": True}) == [b]

    @pytest.mark.asyncio
    async def test_find_by_id_missing_returns_none(self):
        repo = InMemoryRepository()
        assert await repo.find_by_id(NOT_EXISTING_TODO_ID) is None

    @pytest.mark.asyncio
    async def test_malformed_id_raises_cast_error(self):
        repo = InMemoryRepository()
        for call in (
            repo.find_by_id("123"),
            repo.find_by_id_and_update("123", {"title": "x", "done": True}),
            repo.find_by_id_and_delete("123"),
        ):
            with pytest.raises(TodoCastError):
                await call

    @pytest.mark.asyncio
    async def test_update_returns_new_or_previous_document(self):
        repo = InMemoryRepository()
        todo = await repo.create({"title": "old", "done": False})
        previous = await repo.find_by_id_and_update(todo["_id"], {"title": "mid", "done": False}, new=False)
        assert previous == todo
        updated = await repo.find_by_id_and_update(todo["_id"], {"title": "new", "done": True})
        assert updated == {"_id": todo["_id"], "title": "new", "done": True}

    @pytest.mark.asyncio
    async def test_update_missing_returns_none(self):
        repo = InMemoryRepository()
        assert await repo.find_by_id_and_update(NOT_EXISTING_TODO_ID, {"title": "x", "done": True}) is None

    @pytest.mark.asyncio
    async def test_update_validates_payload(self):
        repo = InMemoryRepository()
        todo = await repo.create({"title": "keep", "done": False})
        with pytest.raises(TodoValidationError):
            await repo.find_by_id_and_update(todo["_id"], {"title": "no flag"})
        assert await repo.find_by_id(todo["_id"]) == todo

    @pytest.mark.asyncio
    async def test_delete_is_not_idempotent(self):
        repo = InMemoryRepository()
        todo = await repo.create({"title": "gone", "done": False})
        assert await repo.find_by_id_and_delete(todo["_id"]) == todo
        assert await repo.find_by_id_and_delete(todo["_id"]) is None


def test_parse_object_id():
    assert parse_object_id(NOT_EXISTING_TODO_ID) == ObjectId(NOT_EXISTING_TODO_ID)
    with pytest.raises(TodoCastError) as excinfo:
        parse_object_id("abc")
    assert isinstance(excinfo.value, StoreError)
    assert str(excinfo.value) == 'Cast to ObjectId failed for value "abc" (type string) at path "_id" for model "Todo"'


def test_get_repository_defaults_to_memory(monkeypatch):
    monkeypatch.setenv("PERSISTENCE_BACKEND", "memory")
    get_repository.cache_clear()
    repo = get_repository()
    assert isinstance(repo, InMemoryRepository)
    assert get_repository() is repo


def test_get_repository_mongo(monkeypatch):
    monkeypatch.setenv("PERSISTENCE_BACKEND", "mongo")
    monkeypatch.setenv("MONGODB_DATABASE", "todo_test")
    get_repository.cache_clear()
    repo = get_repository()
    assert isinstance(repo, MongoRepository)
    assert repo.database_name == "todo_test"
    assert repo.client is None


class _Cursor:
    def __init__(self, docs):
        self._docs = list(docs)

    async def _iterate(self):
        for doc in self._docs:
            yield doc

    def __aiter__(self):
        return self._iterate()


def _mongo_repo(collection) -> MongoRepository:
    repo = MongoRepository("mongodb://localhost:27017", "todo_test")
    repo._collection = collection
    return repo


class TestMongoRepository:
    @pytest.mark.asyncio
    async def test_create_inserts_validated_fields(self):
        oid = ObjectId()
        collection = MagicMock()
        collection.insert_one = AsyncMock(return_value=MagicMock(inserted_id=oid))
        repo = _mongo_repo(collection)

        todo = await repo.create({"title": "Stored", "done": True, "extra": "dropped"})

        collection.insert_one.assert_awaited_once_with({"title": "Stored", "done": True})
        assert todo == {"_id": str(oid), "title": "Stored", "done": True}

    @pytest.mark.asyncio
    async def test_create_rejects_before_touching_the_driver(self):
        collection = MagicMock()
        collection.insert_one = AsyncMock()
        repo = _mongo_repo(collection)
        with pytest.raises(TodoValidationError):
            await repo.create({"title": "Missing done"})
        collection.insert_one.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_find_converts_ids(self):
        oid = ObjectId()
        collection = MagicMock()
        collection.find = MagicMock(return_value=_Cursor([{"_id": oid, "title": "a", "done": False}]))
        repo = _mongo_repo(collection)

        assert await repo.find({}) == [{"_id": str(oid), "title": "a", "done": False}]
        collection.find.assert_called_once_with({})

    @pytest.mark.asyncio
    async def test_find_by_id(self):
        collection = MagicMock()
        collection.find_one = AsyncMock(return_value=None)
        repo = _mongo_repo(collection)

        assert await repo.find_by_id(NOT_EXISTING_TODO_ID) is None
        collection.find_one.assert_awaited_once_with({"_id": ObjectId(NOT_EXISTING_TODO_ID)})

    @pytest.mark.asyncio
    async def test_update_requests_post_update_document(self):
        oid = ObjectId(NOT_EXISTING_TODO_ID)
        collection = MagicMock()
        collection.find_one_and_update = AsyncMock(return_value={"_id": oid, "title": "new", "done": True})
        repo = _mongo_repo(collection)

        updated = await repo.find_by_id_and_update(NOT_EXISTING_TODO_ID, {"title": "new", "done": True})

        collection.find_one_and_update.assert_awaited_once_with(
            {"_id": oid},
            {"$set": {"title": "new", "done": True}},
            return_document=ReturnDocument.AFTER,
        )
        assert updated == {"_id": NOT_EXISTING_TODO_ID, "title": "new", "done": True}

    @pytest.mark.asyncio
    async def test_delete_missing_returns_none(self):
        collection = MagicMock()
        collection.find_one_and_delete = AsyncMock(return_value=None)
        repo = _mongo_repo(collection)

        assert await repo.find_by_id_and_delete(NOT_EXISTING_TODO_ID) is None
        collection.find_one_and_delete.assert_awaited_once_with({"_id": ObjectId(NOT_EXISTING_TODO_ID)})

    @pytest.mark.asyncio
    async def test_malformed_id_is_rejected(self):
        repo = _mongo_repo(MagicMock())
        with pytest.raises(TodoCastError):
            await repo.find_by_id("nope")

    @pytest.mark.asyncio
    async def test_close_without_connect_is_noop(self):
        repo = MongoRepository()
        await repo.close()
        assert repo.client is None

    @pytest.mark.asyncio
    async def test_connect_opens_client_once(self):
        repo = MongoRepository("mongodb://db.test:27017", "todo_test", tz_aware=True)
        with patch("todo_api.db.AsyncIOMotorClient") as client_cls:
            await repo.connect()
            await repo.connect()

        client_cls.assert_called_once_with("mongodb://db.test:27017", tz_aware=True)
        client = client_cls.return_value
        assert repo.client is client
        client.__getitem__.assert_called_once_with("todo_test")
        client.__getitem__.return_value.__getitem__.assert_called_once_with("todos")
        assert repo._collection is client["todo_test"]["todos"]

    @pytest.mark.asyncio
    async def test_close_releases_client(self):
        repo = MongoRepository()
        with patch("todo_api.db.AsyncIOMotorClient") as client_cls:
            await repo.connect()
            await repo.close()

        client_cls.return_value.close.assert_called_once_with()
        assert repo.client is None
        assert repo._collection is None
