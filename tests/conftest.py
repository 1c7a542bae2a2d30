"""Shared fixtures: every test gets a fresh in-memory store."""

import os

import pytest
from fastapi.testclient import TestClient

# Default to the memory backend so tests never need a MongoDB server
os.environ.setdefault("PERSISTENCE_BACKEND", "memory")

from todo_api.main import app  # noqa: E402
from todo_api.repositories import get_repository  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_repository():
    get_repository.cache_clear()
    yield
    get_repository.cache_clear()
    app.dependency_overrides.clear()


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)
