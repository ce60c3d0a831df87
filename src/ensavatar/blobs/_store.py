"""BlobStore: protocol for transcoded-image storage backends."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ensavatar.types import CachedImage


def utc_now() -> datetime:
    """Return the current timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


def validate_key(key: str) -> str:
    """Reject keys no backend can store."""
    if not key or key.startswith("/") or "\x00" in key:
        msg = f"Invalid blob key: {key!r}."
        raise ValueError(msg)
    return key


@dataclass(frozen=True, slots=True)
class BlobEntry:
    """One stored blob and its store-side metadata."""

    key: str
    media_type: str
    size: int
    created_at: datetime


@runtime_checkable
class BlobStore(Protocol):
    """Key/value storage for transcoded images.

    Entries are written once and never updated or expired by this service.
    A missing key raises ``BlobNotFoundError``; any other backend failure
    raises ``BlobStoreError`` so callers can tell a miss from an outage.
    """

    async def get_blob(self, key: str) -> CachedImage:
        """Return the image stored under ``key``."""
        ...

    async def put_blob(self, key: str, data: bytes, *, media_type: str) -> None:
        """Store ``data`` under ``key``, replacing any previous value."""
        ...

    async def has_blob(self, key: str) -> bool:
        """Check whether ``key`` holds a blob."""
        ...
