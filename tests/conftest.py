"""
Shared fixtures.

The Connector takes a ``client_factory``; tests hand it a factory that
builds in-memory fake motor clients, so no MongoDB server is needed and
every physical connection attempt can be counted.
"""
from __future__ import annotations

import asyncio
import copy
from types import SimpleNamespace
from typing import Any
from urllib.parse import urlsplit

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from pymongo import ReturnDocument
from pymongo.errors import OperationFailure, ServerSelectionTimeoutError

from techassist.config import Settings
from techassist.database import ConnectConfig, Connector
from techassist.main import create_app

TEST_URI = "mongodb://localhost:27017/techassist_test"


def _matches(document: dict[str, Any], query: dict[str, Any]) -> bool:
    return all(document.get(key) == value for key, value in query.items())


class FakeCursor:
    def __init__(self, documents: list[dict[str, Any]]):
        self._documents = documents

    def sort(self, key: str, direction: int) -> "FakeCursor":
        self._documents = sorted(
            self._documents, key=lambda d: d.get(key), reverse=direction < 0
        )
        return self

    def skip(self, count: int) -> "FakeCursor":
        self._documents = self._documents[count:]
        return self

    def limit(self, count: int) -> "FakeCursor":
        self._documents = self._documents[:count]
        return self

    async def to_list(self, length: int | None = None) -> list[dict[str, Any]]:
        docs = self._documents if length is None else self._documents[:length]
        return [copy.deepcopy(d) for d in docs]


class FakeCollection:
    def __init__(self) -> None:
        self.documents: list[dict[str, Any]] = []

    async def insert_one(self, document: dict[str, Any]) -> SimpleNamespace:
        stored = copy.deepcopy(document)
        stored.setdefault("_id", ObjectId())
        self.documents.append(stored)
        return SimpleNamespace(inserted_id=stored["_id"])

    async def find_one(self, query: dict[str, Any]) -> dict[str, Any] | None:
        for document in self.documents:
            if _matches(document, query):
                return copy.deepcopy(document)
        return None

    async def count_documents(self, query: dict[str, Any]) -> int:
        return sum(1 for d in self.documents if _matches(d, query))

    def find(self, query: dict[str, Any]) -> FakeCursor:
        return FakeCursor([d for d in self.documents if _matches(d, query)])

    async def find_one_and_update(
        self,
        query: dict[str, Any],
        update: dict[str, Any],
        return_document: bool = ReturnDocument.BEFORE,
    ) -> dict[str, Any] | None:
        for document in self.documents:
            if _matches(document, query):
                before = copy.deepcopy(document)
                document.update(update.get("$set", {}))
                return copy.deepcopy(document) if return_document else before
        return None

    async def delete_one(self, query: dict[str, Any]) -> SimpleNamespace:
        for index, document in enumerate(self.documents):
            if _matches(document, query):
                del self.documents[index]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)


class FakeDatabase:
    def __init__(self, name: str, factory: "FakeClientFactory"):
        self.name = name
        self._factory = factory
        self._collections: dict[str, FakeCollection] = {}

    def __getitem__(self, name: str) -> FakeCollection:
        return self._collections.setdefault(name, FakeCollection())

    async def command(self, name: str) -> dict[str, Any]:
        if name == "dbStats":
            if self._factory.stats_error is not None:
                raise self._factory.stats_error
            return {
                "db": self.name,
                "collections": len(self._collections),
                "objects": sum(len(c.documents) for c in self._collections.values()),
                "dataSize": 2048,
                "storageSize": 4096,
                "indexes": len(self._collections),
                "ok": 1.0,
            }
        return {"ok": 1.0}


class FakeAdmin:
    def __init__(self, factory: "FakeClientFactory"):
        self._factory = factory

    async def command(self, name: str) -> dict[str, Any]:
        self._factory.pings += 1
        if self._factory.ping_delay:
            await asyncio.sleep(self._factory.ping_delay)
        if self._factory.ping_error is not None:
            raise self._factory.ping_error
        return {"ok": 1.0}


class FakeMongoClient:
    def __init__(self, uri: str, factory: "FakeClientFactory", **options: Any):
        self.uri = uri
        self.options = options
        self.closed = False
        self.admin = FakeAdmin(factory)
        self._factory = factory

    def get_default_database(self, default: str | None = None) -> FakeDatabase:
        name = urlsplit(self.uri).path.lstrip("/") or default
        return self._factory.database(name)

    def close(self) -> None:
        self.closed = True


class FakeClientFactory:
    """Stands in for AsyncIOMotorClient and records every construction."""

    def __init__(self) -> None:
        self.clients: list[FakeMongoClient] = []
        self.pings = 0
        self.ping_delay = 0.0
        self.ping_error: Exception | None = None
        self.stats_error: Exception | None = None
        self._databases: dict[str, FakeDatabase] = {}

    def __call__(self, uri: str, **options: Any) -> FakeMongoClient:
        client = FakeMongoClient(uri, self, **options)
        self.clients.append(client)
        return client

    @property
    def calls(self) -> int:
        return len(self.clients)

    def database(self, name: str) -> FakeDatabase:
        return self._databases.setdefault(name, FakeDatabase(name, self))

    def go_down(self) -> None:
        self.ping_error = ServerSelectionTimeoutError("localhost:27017: connection refused")

    def fail_stats(self) -> None:
        self.stats_error = OperationFailure("not authorized on techassist_test to execute command")


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "mongodb_uri": TEST_URI,
        "node_env": "test",
        "db_warm_up_on_startup": False,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def client_factory() -> FakeClientFactory:
    return FakeClientFactory()


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def connector(settings: Settings, client_factory: FakeClientFactory) -> Connector:
    return Connector(ConnectConfig.from_settings(settings), client_factory=client_factory)


@pytest.fixture
def app(settings: Settings, connector: Connector):
    return create_app(settings=settings, connector=connector)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
