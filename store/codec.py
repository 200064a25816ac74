"""
store/codec.py -- Record <-> bytes serialization for the key-value store.

Records are dataclasses encoded as compact JSON objects with sorted keys, so
the same record always yields the same bytes and blobs stay readable across
restarts. Decoding rebuilds the dataclass by keyword, so a blob whose fields
do not match the target type is reported as corruption rather than silently
producing a half-filled record.
"""

from __future__ import annotations

import json
from dataclasses import asdict, is_dataclass
from typing import TypeVar

from core.errors import DecodeError, EncodeError

T = TypeVar("T")


def encode(record) -> bytes:
    """Serialize a dataclass record. Raises EncodeError."""
    if not is_dataclass(record) or isinstance(record, type):
        raise EncodeError(f"cannot encode {type(record).__name__}: not a dataclass instance")
    fields = asdict(record)
    try:
        text = json.dumps(fields, sort_keys=True, separators=(",", ":"), allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise EncodeError(f"json encode {type(record).__name__}") from exc
    # json.dumps coerces non-str keys to str and tuples to lists; refuse anything
    # that would come back different from what was stored.
    if json.loads(text) != fields:
        raise EncodeError(f"json encode {type(record).__name__}: value does not round-trip unchanged")
    return text.encode("utf-8")


def decode(blob: bytes, cls: type[T]) -> T:
    """Deserialize bytes into an instance of cls. Raises DecodeError."""
    try:
        fields = json.loads(blob.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise DecodeError(f"json decode {cls.__name__}") from exc
    if not isinstance(fields, dict):
        raise DecodeError(f"json decode {cls.__name__}: expected object, got {type(fields).__name__}")
    try:
        return cls(**fields)
    except TypeError as exc:
        raise DecodeError(f"field mismatch for {cls.__name__}") from exc
