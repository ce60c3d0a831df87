"""Core data types: AvatarRequest, resolution outcomes, cache keys, images."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal
from urllib.parse import quote

from ensavatar.errors import InvalidSizeError

if TYPE_CHECKING:
    from collections.abc import Collection

SUPPORTED_SIZES: tuple[int, ...] = (64, 128, 256)
WEBP_MEDIA_TYPE = "image/webp"
SVG_MEDIA_TYPE = "image/svg+xml"

# Characters left unescaped by JavaScript's encodeURIComponent.
_URI_COMPONENT_SAFE = "-_.!~*'()"

CacheStatus = Literal["hit", "miss", "placeholder"]


@dataclass(frozen=True, slots=True)
class AvatarRequest:
    """One inbound avatar request: an opaque name and an allow-listed size."""

    name: str
    size: int

    @classmethod
    def parse(
        cls,
        name: str,
        raw_size: str | int,
        *,
        sizes: Collection[int] = SUPPORTED_SIZES,
    ) -> AvatarRequest:
        """Build a request from raw path values, rejecting unsupported sizes."""
        if isinstance(raw_size, bool):
            raise InvalidSizeError(raw_size)
        if isinstance(raw_size, str):
            text = raw_size.strip()
            if not text.isdecimal():
                raise InvalidSizeError(raw_size)
            size = int(text)
        else:
            size = raw_size
        if size not in sizes:
            raise InvalidSizeError(raw_size)
        return cls(name=name, size=size)


@dataclass(frozen=True, slots=True)
class Resolved:
    """The directory returned an avatar URL."""

    url: str


@dataclass(frozen=True, slots=True)
class NoAvatar:
    """The directory answered, but no avatar is configured for the name."""


@dataclass(frozen=True, slots=True)
class LookupFailed:
    """The directory lookup itself failed (network, status, or payload)."""

    reason: str


Resolution = Resolved | NoAvatar | LookupFailed


@dataclass(frozen=True, slots=True)
class ResolvedSource:
    """A fetchable source URL, plus the original IPFS path when one was rewritten."""

    source_url: str
    ipfs_path: str | None = None

    @property
    def is_content_addressed(self) -> bool:
        """Return whether the source was rewritten from an IPFS path."""
        return self.ipfs_path is not None


def encode_uri_component(value: str) -> str:
    """Percent-encode a string the way ``encodeURIComponent`` does."""
    return quote(value, safe=_URI_COMPONENT_SAFE)


def cache_key(size: int, source_url: str) -> str:
    """Build the object-store key for one (size, source URL) pair."""
    return f"{size}/{encode_uri_component(source_url)}"


@dataclass(frozen=True, slots=True)
class CachedImage:
    """Image bytes read back from a BlobStore."""

    data: bytes
    media_type: str


@dataclass(frozen=True, slots=True)
class TranscodedImage:
    """Square image bytes produced by the transcoder for one target size."""

    data: bytes
    media_type: str
    size: int


@dataclass(frozen=True, slots=True)
class AvatarResult:
    """What the pipeline serves for one request."""

    image: bytes
    media_type: str
    cache_status: CacheStatus
    ipfs_path: str | None = None
