"""InMemoryBlobStore: dict-based blob storage for development and testing."""

from __future__ import annotations

from ensavatar.blobs._store import BlobEntry, utc_now, validate_key
from ensavatar.errors import BlobNotFoundError
from ensavatar.types import CachedImage


class InMemoryBlobStore:
    """In-memory blob store for development and testing."""

    def __init__(self) -> None:
        """Initialize an empty in-memory store."""
        self._blobs: dict[str, bytes] = {}
        self._entries: dict[str, BlobEntry] = {}

    async def get_blob(self, key: str) -> CachedImage:
        """Return stored bytes and media type."""
        data = self._blobs.get(key)
        entry = self._entries.get(key)
        if data is None or entry is None:
            raise BlobNotFoundError(key)
        return CachedImage(data=data, media_type=entry.media_type)

    async def put_blob(self, key: str, data: bytes, *, media_type: str) -> None:
        """Store bytes under ``key``."""
        validate_key(key)
        self._blobs[key] = data
        self._entries[key] = BlobEntry(key=key, media_type=media_type, size=len(data), created_at=utc_now())

    async def has_blob(self, key: str) -> bool:
        """Check whether a blob exists."""
        return key in self._blobs

    def list_blobs(self, *, prefix: str | None = None) -> tuple[BlobEntry, ...]:
        """List stored blobs sorted by key, optionally filtered by key prefix."""
        entries = (entry for entry in self._entries.values() if prefix is None or entry.key.startswith(prefix))
        return tuple(sorted(entries, key=lambda entry: entry.key))
