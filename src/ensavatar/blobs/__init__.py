"""BlobStore backends for transcoded avatar images."""

from ensavatar.blobs._file import FileBlobStore
from ensavatar.blobs._memory import InMemoryBlobStore
from ensavatar.blobs._s3 import S3BlobStore
from ensavatar.blobs._store import BlobEntry, BlobStore

__all__ = [
    "BlobEntry",
    "BlobStore",
    "FileBlobStore",
    "InMemoryBlobStore",
    "S3BlobStore",
]
