"""FileBlobStore: file-system-based blob storage for local development."""

from __future__ import annotations

import asyncio
import hashlib
import json
import uuid
from datetime import datetime
from pathlib import Path

from ensavatar.blobs._store import BlobEntry, utc_now, validate_key
from ensavatar.errors import BlobNotFoundError, BlobStoreError
from ensavatar.types import CachedImage

_PAYLOAD_SUFFIX = ".blob"
_META_SUFFIX = ".meta.json"


def _file_id(key: str) -> str:
    """Map a key to a fixed-length file name (keys embed whole URLs)."""
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


def _write_atomic(path: Path, data: bytes) -> None:
    """Write through a temporary sibling so readers never see partial files."""
    tmp = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
    tmp.write_bytes(data)
    tmp.replace(path)


class FileBlobStore:
    """File-system-based blob store.

    Store each blob payload as ``<sha256(key)>.blob`` and metadata as
    ``<sha256(key)>.meta.json`` under a root directory.
    """

    def __init__(self, root: str | Path) -> None:
        """Initialize with a root directory, creating it if needed."""
        self._root = Path(root)
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        """Return the root directory path."""
        return self._root

    def _payload_path(self, key: str) -> Path:
        """Return the payload file path for a key."""
        return self._root / f"{_file_id(key)}{_PAYLOAD_SUFFIX}"

    def _meta_path(self, key: str) -> Path:
        """Return the metadata sidecar path for a key."""
        return self._root / f"{_file_id(key)}{_META_SUFFIX}"

    def _entry_to_payload(self, entry: BlobEntry) -> dict[str, object]:
        """Serialize a BlobEntry for sidecar metadata."""
        return {
            "key": entry.key,
            "media_type": entry.media_type,
            "size": entry.size,
            "created_at": entry.created_at.isoformat(),
        }

    def _entry_from_payload(self, payload: object) -> BlobEntry | None:
        """Deserialize one metadata sidecar payload."""
        if not isinstance(payload, dict):
            return None
        key = payload.get("key")
        media_type = payload.get("media_type")
        size = payload.get("size")
        created_at_raw = payload.get("created_at")
        if (
            not isinstance(key, str)
            or not isinstance(media_type, str)
            or not isinstance(size, int)
            or not isinstance(created_at_raw, str)
        ):
            return None
        try:
            created_at = datetime.fromisoformat(created_at_raw)
        except ValueError:
            return None
        return BlobEntry(key=key, media_type=media_type, size=size, created_at=created_at)

    def _read_entry(self, key: str) -> BlobEntry | None:
        """Load the sidecar for ``key``; unreadable or mismatched sidecars count as absent."""
        try:
            raw = json.loads(self._meta_path(key).read_text(encoding="utf-8"))
        except (FileNotFoundError, ValueError):
            return None
        entry = self._entry_from_payload(raw)
        if entry is None or entry.key != key:
            return None
        return entry

    def _get(self, key: str) -> CachedImage:
        try:
            entry = self._read_entry(key)
            if entry is None:
                raise BlobNotFoundError(key)
            data = self._payload_path(key).read_bytes()
        except FileNotFoundError:
            raise BlobNotFoundError(key) from None
        except OSError as exc:
            raise BlobStoreError(key, str(exc)) from exc
        return CachedImage(data=data, media_type=entry.media_type)

    def _put(self, key: str, data: bytes, media_type: str) -> None:
        entry = BlobEntry(key=key, media_type=media_type, size=len(data), created_at=utc_now())
        try:
            # Payload first: a sidecar marks the blob as present.
            _write_atomic(self._payload_path(key), data)
            _write_atomic(
                self._meta_path(key),
                json.dumps(self._entry_to_payload(entry), ensure_ascii=False).encode("utf-8"),
            )
        except OSError as exc:
            raise BlobStoreError(key, str(exc)) from exc

    def _has(self, key: str) -> bool:
        return self._payload_path(key).exists() and self._read_entry(key) is not None

    async def get_blob(self, key: str) -> CachedImage:
        """Read a blob and its media type."""
        return await asyncio.to_thread(self._get, key)

    async def put_blob(self, key: str, data: bytes, *, media_type: str) -> None:
        """Write a blob payload and its metadata sidecar."""
        validate_key(key)
        await asyncio.to_thread(self._put, key, data, media_type)

    async def has_blob(self, key: str) -> bool:
        """Check whether a blob exists."""
        return await asyncio.to_thread(self._has, key)

    def list_blobs(self, *, prefix: str | None = None) -> tuple[BlobEntry, ...]:
        """List stored blobs sorted by key, optionally filtered by key prefix."""
        entries: list[BlobEntry] = []
        for meta_path in self._root.glob(f"*{_META_SUFFIX}"):
            try:
                raw = json.loads(meta_path.read_text(encoding="utf-8"))
            except (OSError, ValueError):
                continue
            entry = self._entry_from_payload(raw)
            if entry is None or not self._payload_path(entry.key).exists():
                continue
            if prefix is None or entry.key.startswith(prefix):
                entries.append(entry)
        return tuple(sorted(entries, key=lambda entry: entry.key))
