"""
tests/conftest.py -- Shared test fixtures for the registry core.

This module provides:
  - memory_store:  fresh MemoryStore per test
  - sqlite_store:  fresh file-backed SQLiteStore under tmp_path per test
  - store:         parametrized over both backends, for contract tests
  - auth_service:  AuthService over a MemoryStore with the minimum bcrypt cost

Design: file-backed SQLite (not sqlite:///:memory:) is used for the SQLite
fixture because SQLAlchemy gives each thread its own connection to a plain
:memory: database, and the concurrency tests write from several threads.

The DEBUG env var must be set before any core import so get_settings()
auto-generates SECRET_KEY in dev mode rather than raising ValueError.
"""

from __future__ import annotations

import os
from collections.abc import Generator

# CRITICAL: Set DEBUG before any core/auth import.
os.environ.setdefault("DEBUG", "true")

import pytest

from auth.service import AuthService
from auth.tokens import TokenIssuer
from store.base import Store
from store.memory import MemoryStore
from store.sqlite import SQLiteStore, open_store

TEST_SECRET = "test-secret-key-that-is-at-least-32-chars"

# bcrypt's minimum cost keeps the auth tests fast.
TEST_ROUNDS = 4


@pytest.fixture
def memory_store() -> Generator[MemoryStore, None, None]:
    s = MemoryStore()
    yield s
    s.close()


@pytest.fixture
def sqlite_store(tmp_path) -> Generator[SQLiteStore, None, None]:
    s = open_store(tmp_path / "registry.db", busy_timeout=5.0)
    yield s
    s.close()


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path) -> Generator[Store, None, None]:
    """Yield each Store backend in turn so contract tests run against both."""
    if request.param == "memory":
        s: Store = MemoryStore()
    else:
        s = open_store(tmp_path / "registry.db", busy_timeout=5.0)
    yield s
    s.close()


@pytest.fixture
def tokens() -> TokenIssuer:
    return TokenIssuer(TEST_SECRET)


@pytest.fixture
def auth_service(memory_store: MemoryStore, tokens: TokenIssuer) -> AuthService:
    return AuthService(memory_store, tokens, bcrypt_rounds=TEST_ROUNDS)
