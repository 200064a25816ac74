"""
core/models.py -- Domain dataclasses shared by store/ and auth/.

Pattern: Data class (pure data container, zero logic). The Store owns the
persisted representation; everything else only ever holds transient copies
returned by Store operations.

Relations between entities are plain identifier fields (Package.uploaded_by
is a username), never object references.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class Package:
    """A registry package, identified by its unique name.

    Every field other than name is metadata owned by the HTTP and CLI layers.
    This core never interprets it; it only guarantees that the codec round-trips
    it unchanged. metadata must hold JSON values that reload as-is: str keys,
    lists rather than tuples, finite floats. Anything else raises EncodeError.
    """

    name: str
    repo_url: str = ""
    repo_branch: str = "master"
    keep_last_n: int = 0
    uploaded_by: str | None = None  # username of the uploader
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class User:
    """A registry account, identified by its unique username.

    password is plaintext only while a request is in flight. The value written
    to a Store is always the bcrypt hash produced by auth.passwords.
    """

    username: str
    password: str = ""


@dataclass
class Claims:
    """Identity assertions decoded from a verified token. Never persisted."""

    username: str
    raw_token: str
