"""Typed errors for ensavatar."""


class EnsAvatarError(Exception):
    """Base exception for all ensavatar errors."""

    status_code = 500
    public_message = "Internal error"


class InvalidSizeError(EnsAvatarError):
    """Raised when a requested size is not in the supported allow-list."""

    status_code = 400
    public_message = "Invalid size"

    def __init__(self, size: object) -> None:
        """Initialize with the rejected size value."""
        self.size = size
        super().__init__(f"Unsupported avatar size: {size!r}")


class OriginFetchError(EnsAvatarError):
    """Raised when the origin image could not be fetched or was empty."""

    status_code = 502
    public_message = "Upstream did not return a valid image"

    def __init__(self, url: str, reason: str) -> None:
        """Initialize with the origin URL and a short failure reason."""
        self.url = url
        self.reason = reason
        super().__init__(f"Origin fetch failed for {url}: {reason}")


class TranscodeError(EnsAvatarError):
    """Raised when image bytes cannot be decoded or re-encoded."""

    status_code = 422
    public_message = "Could not process image, maybe the transcoder doesn't support this format?"

    def __init__(self, reason: str) -> None:
        """Initialize with the decoder/encoder failure reason."""
        self.reason = reason
        super().__init__(f"Could not transcode image: {reason}")


class BlobNotFoundError(EnsAvatarError):
    """Raised when a cache key has no stored blob (a cache miss)."""

    status_code = 404
    public_message = "File not found or could not be processed"

    def __init__(self, key: str) -> None:
        """Initialize with the missing key."""
        self.key = key
        super().__init__(f"Blob not found: {key}")


class BlobStoreError(EnsAvatarError):
    """Raised when the blob store itself fails (unreachable, denied, corrupt)."""

    status_code = 500
    public_message = "File not found or could not be processed"

    def __init__(self, key: str, reason: str) -> None:
        """Initialize with the affected key and the backend failure reason."""
        self.key = key
        self.reason = reason
        super().__init__(f"Blob store failure for {key}: {reason}")


class ConfigError(EnsAvatarError):
    """Raised when environment configuration is invalid."""
