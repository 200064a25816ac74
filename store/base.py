"""
store/base.py -- The Store contract shared by every storage backend.

Pattern: Repository + Template Method. Store implements the per-entity
operations (get/add/del/all for packages and users) once, on top of five
byte-level primitives that each backend provides. SQLiteStore and MemoryStore
are therefore interchangeable wherever a Store is expected, and auth/ only
ever depends on this class.

Key namespace:
  Every persisted key is <prefix><identifier>. PACKAGE_PREFIX and USER_PREFIX
  partition one flat, ordered key space into two collections. Neither prefix
  is a prefix of the other, so no identifier of one kind can produce a key of
  the other kind.

Semantics:
  add_*     upsert -- overwrites unconditionally
  insert_*  insert-if-absent -- atomic; raises UserExists when taken
  del_*     idempotent -- deleting an absent key succeeds
  all_*     one snapshot, key order, all-or-nothing decode

Layer rule: imports only from core/.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from core.errors import NotFound, UserExists
from core.models import Package, User
from store import codec

logger = logging.getLogger("registry.store")

PACKAGE_PREFIX = "pkg_"
USER_PREFIX = "user_"


def make_key(prefix: str, identifier: str) -> str:
    """Return the namespaced key for identifier. Empty identifiers are rejected."""
    if not identifier:
        raise ValueError("identifier must be a non-empty string")
    return prefix + identifier


def prefix_successor(prefix: str) -> str:
    """Return the smallest string greater than every string starting with prefix.

    Used as the exclusive upper bound of a prefix range scan. Only valid for
    prefixes whose last character is below the maximum code point, which holds
    for the ASCII prefixes defined above.
    """
    return prefix[:-1] + chr(ord(prefix[-1]) + 1)


class Store(ABC):
    """Namespaced CRUD over packages and users.

    Usage:
        store = open_store("registry.db")     # or MemoryStore()
        store.add_package(Package(name="yay"))
        pkg = store.get_package("yay")
        names = store.all_package_names()
        store.close()
    """

    # ------------------------------------------------------------------
    # Backend primitives
    # ------------------------------------------------------------------

    @abstractmethod
    def _get(self, key: str) -> bytes | None:
        """Return the value at key, or None if absent."""

    @abstractmethod
    def _put(self, key: str, value: bytes) -> None:
        """Write value at key, overwriting any existing value."""

    @abstractmethod
    def _insert(self, key: str, value: bytes) -> bool:
        """Write value at key only if absent. Returns False if the key was taken."""

    @abstractmethod
    def _delete(self, key: str) -> None:
        """Remove key. Absent keys are not an error."""

    @abstractmethod
    def _scan(self, prefix: str) -> list[tuple[str, bytes]]:
        """Return every (key, value) whose key starts with prefix, in key order, from one snapshot."""

    @abstractmethod
    def close(self) -> None: ...

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Generic helpers
    # ------------------------------------------------------------------

    def _get_record(self, prefix: str, identifier: str, cls):
        blob = self._get(make_key(prefix, identifier))
        if blob is None:
            raise NotFound(f"{cls.__name__.lower()} {identifier!r} not found")
        return codec.decode(blob, cls)

    def _all_records(self, prefix: str, cls) -> list:
        return [codec.decode(value, cls) for _key, value in self._scan(prefix)]

    # ------------------------------------------------------------------
    # Packages
    # ------------------------------------------------------------------

    def get_package(self, name: str) -> Package:
        """Look up a package by exact name. Raises NotFound if absent."""
        return self._get_record(PACKAGE_PREFIX, name, Package)

    def add_package(self, pkg: Package) -> None:
        """Create or overwrite the package stored under pkg.name."""
        self._put(make_key(PACKAGE_PREFIX, pkg.name), codec.encode(pkg))
        logger.debug("stored package %s", pkg.name)

    def del_package(self, pkg: Package) -> None:
        self._delete(make_key(PACKAGE_PREFIX, pkg.name))
        logger.debug("deleted package %s", pkg.name)

    def all_packages(self) -> list[Package]:
        """Return every package in name order. One undecodable entry fails the whole call."""
        return self._all_records(PACKAGE_PREFIX, Package)

    def all_package_names(self) -> list[str]:
        return [pkg.name for pkg in self.all_packages()]

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def get_user(self, username: str) -> User:
        """Look up a user by exact username (case-sensitive). Raises NotFound if absent."""
        return self._get_record(USER_PREFIX, username, User)

    def add_user(self, user: User) -> None:
        """Create or overwrite the user stored under user.username.

        The caller is responsible for user.password already being a hash.
        auth.AuthService is the only writer in this codebase.
        """
        self._put(make_key(USER_PREFIX, user.username), codec.encode(user))
        logger.debug("stored user %s", user.username)

    def insert_user(self, user: User) -> None:
        """Store user only if the username is free. Raises UserExists otherwise.

        The existence check and the write happen in one engine operation, so of
        two concurrent inserts for the same username exactly one succeeds.
        """
        if not self._insert(make_key(USER_PREFIX, user.username), codec.encode(user)):
            raise UserExists(f"user {user.username!r} already exists")
        logger.debug("inserted user %s", user.username)

    def del_user(self, user: User) -> None:
        self._delete(make_key(USER_PREFIX, user.username))
        logger.debug("deleted user %s", user.username)

    def all_users(self) -> list[User]:
        """Return every user in username order. One undecodable entry fails the whole call."""
        return self._all_records(USER_PREFIX, User)
