"""ensavatar: cache-aside avatar resizing for ENS names."""

import importlib.metadata as importlib_metadata

from ensavatar.blobs import BlobStore, FileBlobStore, InMemoryBlobStore, S3BlobStore
from ensavatar.config import Settings
from ensavatar.errors import (
    BlobNotFoundError,
    BlobStoreError,
    ConfigError,
    EnsAvatarError,
    InvalidSizeError,
    OriginFetchError,
    TranscodeError,
)
from ensavatar.pipeline import AvatarPipeline
from ensavatar.placeholder import placeholder_svg
from ensavatar.resolver import NameResolver, rewrite_content_address
from ensavatar.transcode import transcode
from ensavatar.types import (
    SUPPORTED_SIZES,
    AvatarRequest,
    AvatarResult,
    LookupFailed,
    NoAvatar,
    Resolved,
    ResolvedSource,
    cache_key,
)


def _detect_version() -> str:
    """Return installed package version or a local fallback when metadata is unavailable."""
    try:
        return importlib_metadata.version("ens-avatar")
    except importlib_metadata.PackageNotFoundError:
        return "0.0.0+unknown"


__version__ = _detect_version()

__all__ = [
    "SUPPORTED_SIZES",
    "AvatarPipeline",
    "AvatarRequest",
    "AvatarResult",
    "BlobNotFoundError",
    "BlobStore",
    "BlobStoreError",
    "ConfigError",
    "EnsAvatarError",
    "FileBlobStore",
    "InMemoryBlobStore",
    "InvalidSizeError",
    "LookupFailed",
    "NameResolver",
    "NoAvatar",
    "OriginFetchError",
    "Resolved",
    "ResolvedSource",
    "S3BlobStore",
    "Settings",
    "TranscodeError",
    "cache_key",
    "placeholder_svg",
    "rewrite_content_address",
    "transcode",
]
