"""store/ -- Namespaced record persistence for packages and users.

Layer rule: store/ imports only from core/. auth/ depends on the Store
contract in store/base.py, never on a concrete backend.
"""

from store.base import PACKAGE_PREFIX, USER_PREFIX, Store
from store.memory import MemoryStore
from store.sqlite import SQLiteStore, open_store

__all__ = ["PACKAGE_PREFIX", "USER_PREFIX", "MemoryStore", "SQLiteStore", "Store", "open_store"]
