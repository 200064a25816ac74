"""auth/ -- Credentials, tokens and the authentication service.

Layer rule: auth/ imports from core/ and the Store contract in store/base.py.
It never depends on a concrete storage backend; callers inject one.
"""

from auth.service import AuthService
from auth.tokens import TokenIssuer

__all__ = ["AuthService", "TokenIssuer"]
