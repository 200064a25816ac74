"""
auth/service.py -- Register, update, login and verify on top of a Store.

AuthService holds no state of its own: users live in the Store, passwords go
through auth.passwords, tokens through auth.tokens.

Registration race:
  register() hashes first and then calls Store.insert_user(), an atomic
  insert-if-absent. There is no separate existence check that a concurrent
  registration could slip past, so exactly one writer wins a username and
  every other one gets UserExists.

Username enumeration:
  login() raises the same InvalidCredentials, with the same message and no
  exception chain, for an unknown username and for a wrong password. For an
  unknown username it still runs one bcrypt comparison against a dummy hash
  of the same cost, so response time does not reveal whether the account
  exists either.

Plaintext invariant:
  Every write goes through _hashed(), which refuses to hand the Store a
  password that is not a bcrypt hash. The caller's User object is never
  mutated; the Store receives a copy.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from auth.passwords import hash_password, is_password_hash, verify_password
from auth.tokens import TokenIssuer
from core.config import Settings, get_settings
from core.errors import HashingError, InvalidCredentials, NotFound
from core.models import Claims, User
from store.base import Store

logger = logging.getLogger("registry.auth")

_INVALID_CREDENTIALS = "invalid username or password"


class AuthService:
    """User registration and token-based authentication.

    Usage:
        auth = AuthService(store, TokenIssuer(settings.secret_key))
        auth.register(User("alice", "s3cret"))
        token = auth.login(User("alice", "s3cret"))
        claims = auth.verify(token)   # Claims(username="alice", ...) or None
    """

    def __init__(self, store: Store, tokens: TokenIssuer, bcrypt_rounds: int | None = None) -> None:
        self.store = store
        self.tokens = tokens
        self.bcrypt_rounds = bcrypt_rounds
        # Same cost as real hashes so the unknown-user path takes as long as a real check.
        self._dummy_hash = hash_password("registry_timing_dummy", bcrypt_rounds)

    @classmethod
    def from_settings(cls, store: Store, settings: Settings | None = None) -> "AuthService":
        settings = settings or get_settings()
        tokens = TokenIssuer(
            settings.secret_key,
            audience=settings.token_audience,
            expire_seconds=settings.token_expire_seconds,
        )
        return cls(store, tokens, bcrypt_rounds=settings.bcrypt_rounds)

    def _hashed(self, user: User) -> User:
        hashed = hash_password(user.password, self.bcrypt_rounds)
        if not is_password_hash(hashed):
            raise HashingError("bcrypt returned an unrecognised hash format")
        return replace(user, password=hashed)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def register(self, user: User) -> None:
        """Create a new user. Raises UserExists if the username is taken."""
        self.store.insert_user(self._hashed(user))
        logger.info("registered user %s", user.username)

    def update(self, user: User, old_password: str | None = None) -> None:
        """Replace the stored password of an existing user.

        Raises NotFound if the user does not exist. When old_password is
        given it must match the stored hash, otherwise InvalidCredentials.
        Passing None skips that check (administrative reset).
        """
        stored = self.store.get_user(user.username)
        if old_password is not None and not verify_password(old_password, stored.password):
            raise InvalidCredentials(_INVALID_CREDENTIALS)
        self.store.add_user(self._hashed(user))
        logger.info("updated user %s", user.username)

    def login(self, user: User) -> str:
        """Check user's password and return a signed token.

        Raises InvalidCredentials for an unknown user and for a wrong
        password alike. Store and signing failures propagate unchanged.
        """
        try:
            stored = self.store.get_user(user.username)
        except NotFound:
            # Equalize timing -- do NOT return before running bcrypt.
            verify_password(user.password, self._dummy_hash)
            stored = None
        if stored is None or not verify_password(user.password, stored.password):
            logger.info("failed login for %s", user.username)
            raise InvalidCredentials(_INVALID_CREDENTIALS)
        return self.tokens.issue(stored.username)

    def verify(self, token: str) -> Claims | None:
        return self.tokens.verify(token)
