"""
core/errors.py -- Exception taxonomy for the store and auth layers.

Every failure in this core is a raised exception rooted at RegistryError;
nothing here terminates the process. Callers pick the retry policy by class:

  NotFound, AlreadyExists      -- caller input; never retry
  EncodeError, DecodeError     -- data corruption; never retry
  StoreUnavailable             -- engine I/O; retry with backoff
  InvalidCredentials           -- deliberately undifferentiated (see auth/service.py)
  HashingError, SigningError   -- crypto backend failure

Store errors keep the engine exception as __cause__ (raise ... from exc) so
logs carry the full chain.
"""


class RegistryError(Exception):
    """Base class for every error raised by store/ and auth/."""


class NotFound(RegistryError):
    """The requested identifier is not present in the store."""


class AlreadyExists(RegistryError):
    """A conditional insert found the key already taken."""


class UserExists(AlreadyExists):
    pass


class EncodeError(RegistryError):
    """A record could not be serialized for storage."""


class DecodeError(RegistryError):
    """Stored bytes could not be deserialized into the expected record type."""


class StoreUnavailable(RegistryError):
    """The storage engine failed or is locked by another opener."""


class InvalidCredentials(RegistryError):
    """Unknown username or wrong password. The two cases are indistinguishable."""


class HashingError(RegistryError):
    pass


class SigningError(RegistryError):
    pass
