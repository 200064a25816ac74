"""
auth/tokens.py -- JWT issuing and verification.

Security design decisions:
  JWT: python-jose with HS384. Tokens carry the username as `sub` and a fixed
       `aud` that marks them as user session tokens. Verification pins both
       the algorithm and the audience, so a token signed with another
       algorithm (including "none") or minted for another audience is
       rejected.

  Failure reporting: verify() returns None on any failure -- bad signature,
       malformed token, unsupported algorithm, wrong audience, expiry. The
       caller cannot tell which check failed, and neither can an attacker.

  Expiry: off by default (expire_seconds=0), matching tokens issued before
       the setting existed. With expire_seconds > 0 tokens gain `iat` and
       `exp`, and python-jose rejects them once `exp` has passed.

  Signing key: supplied by the host process (Settings.secret_key) and never
       rotated or stored here.

Layer rule: imports only from core/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from core.errors import SigningError
from core.models import Claims

logger = logging.getLogger("registry.auth")

ALGORITHM = "HS384"
DEFAULT_AUDIENCE = "user"


class TokenIssuer:
    """Issues and verifies signed identity tokens with one symmetric key.

    Usage:
        issuer = TokenIssuer(settings.secret_key)
        token = issuer.issue("alice")
        claims = issuer.verify(token)   # Claims or None
    """

    def __init__(self, secret_key: str, audience: str = DEFAULT_AUDIENCE, expire_seconds: int = 0) -> None:
        if not secret_key:
            raise ValueError("secret_key must not be empty")
        self._key = secret_key
        self.audience = audience
        self.expire_seconds = expire_seconds

    def issue(self, subject: str) -> str:
        """Return a signed token asserting subject. Raises SigningError."""
        payload: dict = {"sub": subject, "aud": self.audience}
        if self.expire_seconds > 0:
            now = datetime.now(timezone.utc)
            payload["iat"] = now
            payload["exp"] = now + timedelta(seconds=self.expire_seconds)
        try:
            return jwt.encode(payload, self._key, algorithm=ALGORITHM)
        except JWTError as exc:
            raise SigningError("couldn't encode jwt token") from exc

    def verify(self, token: str) -> Claims | None:
        """Decode and verify a token. Returns Claims, or None on any failure."""
        try:
            # python-jose skips the audience check when aud is absent unless required.
            payload = jwt.decode(
                token,
                self._key,
                algorithms=[ALGORITHM],
                audience=self.audience,
                options={"require_aud": True, "require_sub": True},
            )
        except JWTError:
            return None
        subject = payload.get("sub")
        if not isinstance(subject, str) or not subject:
            return None
        return Claims(username=subject, raw_token=token)
