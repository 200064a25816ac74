"""Contract tests for store/ -- run against MemoryStore and SQLiteStore.

Covers:
- add then get round-trips every field, including opaque metadata
- add is an upsert; insert_user is insert-if-absent
- delete is idempotent
- all_* list exactly one namespace, in key order
- package and user namespaces never collide
- corrupt blobs surface as DecodeError (all-or-nothing for listings)
- empty identifiers are rejected before touching the engine
"""

import pytest

from core.errors import DecodeError, EncodeError, NotFound, UserExists
from core.models import Package, User
from store.base import PACKAGE_PREFIX, USER_PREFIX, Store, make_key


def _pkg(name: str, **kwargs) -> Package:
    return Package(name=name, repo_url=f"https://aur.archlinux.org/{name}.git", **kwargs)


# ---------------------------------------------------------------------------
# Round-trip
# ---------------------------------------------------------------------------


class TestRoundTrip:
    def test_package_round_trip(self, store: Store) -> None:
        """Every declared field, including the opaque metadata dict, survives storage."""
        pkg = Package(
            name="yay",
            repo_url="https://aur.archlinux.org/yay.git",
            repo_branch="main",
            keep_last_n=3,
            uploaded_by="alice",
            metadata={"arch": ["x86_64", "aarch64"], "pinned": True, "size": 1024},
        )
        store.add_package(pkg)
        assert store.get_package("yay") == pkg

    def test_user_round_trip(self, store: Store) -> None:
        user = User(username="alice", password="$2b$04$" + "a" * 53)
        store.add_user(user)
        assert store.get_user("alice") == user

    def test_get_returns_a_copy(self, store: Store) -> None:
        """Mutating a returned record must not change what is stored."""
        store.add_package(_pkg("yay", metadata={"tags": ["aur"]}))
        fetched = store.get_package("yay")
        fetched.metadata["tags"].append("changed")
        assert store.get_package("yay").metadata == {"tags": ["aur"]}

    def test_unicode_identifier(self, store: Store) -> None:
        store.add_package(_pkg("päckage-ü"))
        assert store.get_package("päckage-ü").name == "päckage-ü"


# ---------------------------------------------------------------------------
# Get / Add / Delete semantics
# ---------------------------------------------------------------------------


class TestCrud:
    def test_get_missing_package_raises_not_found(self, store: Store) -> None:
        with pytest.raises(NotFound):
            store.get_package("missing")

    def test_get_missing_user_raises_not_found(self, store: Store) -> None:
        with pytest.raises(NotFound):
            store.get_user("missing")

    def test_add_overwrites_existing_record(self, store: Store) -> None:
        """add_package is an upsert: the second write wins."""
        store.add_package(_pkg("yay", keep_last_n=1))
        store.add_package(_pkg("yay", keep_last_n=5))
        assert store.get_package("yay").keep_last_n == 5
        assert store.all_package_names() == ["yay"]

    def test_insert_user_refuses_taken_username(self, store: Store) -> None:
        store.insert_user(User("alice", "first"))
        with pytest.raises(UserExists):
            store.insert_user(User("alice", "second"))
        assert store.get_user("alice").password == "first"

    def test_delete_removes_record(self, store: Store) -> None:
        pkg = _pkg("yay")
        store.add_package(pkg)
        store.del_package(pkg)
        with pytest.raises(NotFound):
            store.get_package("yay")

    def test_delete_is_idempotent(self, store: Store) -> None:
        """Deleting an absent key succeeds, and so does deleting it again."""
        pkg = _pkg("never-added")
        store.del_package(pkg)
        store.del_package(pkg)
        user = User("ghost")
        store.del_user(user)
        store.del_user(user)

    def test_empty_identifier_rejected(self, store: Store) -> None:
        with pytest.raises(ValueError):
            store.add_package(Package(name=""))
        with pytest.raises(ValueError):
            store.get_user("")

    def test_unserializable_metadata_raises_encode_error(self, store: Store) -> None:
        with pytest.raises(EncodeError):
            store.add_package(_pkg("yay", metadata={"when": object()}))
        with pytest.raises(NotFound):
            store.get_package("yay")

    @pytest.mark.parametrize(
        "metadata",
        [
            {1: "a"},  # int key would come back as "1"
            {"arch": ("x86_64",)},  # tuple would come back as a list
            {"ratio": float("nan")},
        ],
    )
    def test_metadata_that_would_change_on_reload_raises_encode_error(self, store: Store, metadata: dict) -> None:
        """Stored metadata must come back unchanged, so lossy values are refused up front."""
        with pytest.raises(EncodeError):
            store.add_package(_pkg("yay", metadata=metadata))
        with pytest.raises(NotFound):
            store.get_package("yay")


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


class TestListing:
    def test_all_package_names(self, store: Store) -> None:
        for name in ("c", "a", "b"):
            store.add_package(_pkg(name))
        assert set(store.all_package_names()) == {"a", "b", "c"}

    def test_all_packages_in_key_order(self, store: Store) -> None:
        for name in ("zsh", "Yay", "bash", "a-b", "a_b"):
            store.add_package(_pkg(name))
        assert store.all_package_names() == sorted(["zsh", "Yay", "bash", "a-b", "a_b"])

    def test_empty_store_lists_nothing(self, store: Store) -> None:
        assert store.all_packages() == []
        assert store.all_package_names() == []
        assert store.all_users() == []

    def test_all_users(self, store: Store) -> None:
        store.add_user(User("bob", "h1"))
        store.add_user(User("alice", "h2"))
        assert [u.username for u in store.all_users()] == ["alice", "bob"]


# ---------------------------------------------------------------------------
# Namespacing
# ---------------------------------------------------------------------------


class TestNamespaces:
    def test_prefixes_do_not_overlap(self) -> None:
        assert not PACKAGE_PREFIX.startswith(USER_PREFIX)
        assert not USER_PREFIX.startswith(PACKAGE_PREFIX)

    def test_same_identifier_in_both_namespaces(self, store: Store) -> None:
        """A package and a user may share an identifier without clobbering each other."""
        store.add_package(_pkg("alice"))
        store.add_user(User("alice", "hash"))
        assert store.get_package("alice").name == "alice"
        assert store.get_user("alice").password == "hash"
        assert store.all_package_names() == ["alice"]
        assert [u.username for u in store.all_users()] == ["alice"]

    def test_identifier_that_looks_like_other_prefix(self, store: Store) -> None:
        """A package named 'user_bob' lives under pkg_user_bob, not in the user namespace."""
        store.add_package(_pkg("user_bob"))
        assert store.all_users() == []
        with pytest.raises(NotFound):
            store.get_user("bob")

    def test_make_key(self) -> None:
        assert make_key(PACKAGE_PREFIX, "yay") == "pkg_yay"
        assert make_key(USER_PREFIX, "alice") == "user_alice"


# ---------------------------------------------------------------------------
# Corruption
# ---------------------------------------------------------------------------


class TestCorruption:
    def test_get_corrupt_blob_raises_decode_error(self, store: Store) -> None:
        store._put(make_key(PACKAGE_PREFIX, "broken"), b"\xff\x00not json")
        with pytest.raises(DecodeError):
            store.get_package("broken")

    def test_get_wrong_shape_raises_decode_error(self, store: Store) -> None:
        store._put(make_key(USER_PREFIX, "alice"), b'{"username":"alice","role":"admin"}')
        with pytest.raises(DecodeError):
            store.get_user("alice")

    def test_one_corrupt_entry_fails_whole_listing(self, store: Store) -> None:
        """Listing is all-or-nothing: no partial results."""
        store.add_package(_pkg("a"))
        store.add_package(_pkg("c"))
        store._put(make_key(PACKAGE_PREFIX, "b"), b"[1, 2, 3]")
        with pytest.raises(DecodeError):
            store.all_packages()
        with pytest.raises(DecodeError):
            store.all_package_names()

    def test_corrupt_user_does_not_affect_package_listing(self, store: Store) -> None:
        store.add_package(_pkg("a"))
        store._put(make_key(USER_PREFIX, "bad"), b"garbage")
        assert store.all_package_names() == ["a"]
