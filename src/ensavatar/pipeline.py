"""AvatarPipeline: cache-aside resolution, transcoding and cache population.

For one request the pipeline resolves the name, serves the placeholder when
there is no avatar, serves the stored image on a cache hit, and otherwise
fetches the origin image, transcodes it to the requested size and serves it.
After a miss, every supported size is transcoded and stored by detached
tasks that the request never waits on.

Nothing is retried. Two concurrent misses on the same key both fetch and
both write; outputs are deterministic, so the last write wins harmlessly.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING

import httpx

from ensavatar.errors import BlobNotFoundError, EnsAvatarError, InvalidSizeError, OriginFetchError, TranscodeError
from ensavatar.placeholder import PLACEHOLDER_MEDIA_TYPE, placeholder_svg
from ensavatar.resolver import rewrite_content_address
from ensavatar.transcode import transcode_async
from ensavatar.types import (
    SUPPORTED_SIZES,
    AvatarResult,
    LookupFailed,
    NoAvatar,
    ResolvedSource,
    TranscodedImage,
    cache_key,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from ensavatar.blobs import BlobStore
    from ensavatar.resolver import NameResolver
    from ensavatar.types import AvatarRequest

    Transcoder = Callable[[bytes, int], Awaitable[TranscodedImage]]

logger = logging.getLogger(__name__)

DEFAULT_GATEWAY_URL = "https://cloudflare-ipfs.com"
DEFAULT_USER_AGENT = "ENS Avatar Service"


class AvatarPipeline:
    """Serve avatars for names, backed by a BlobStore cache."""

    def __init__(
        self,
        resolver: NameResolver,
        store: BlobStore,
        client: httpx.AsyncClient,
        *,
        sizes: Sequence[int] = SUPPORTED_SIZES,
        gateway_url: str = DEFAULT_GATEWAY_URL,
        user_agent: str = DEFAULT_USER_AGENT,
        fetch_timeout: float = 10.0,
        transcoder: Transcoder = transcode_async,
    ) -> None:
        """Initialize with injected collaborators; nothing here is global."""
        if not sizes:
            msg = "sizes cannot be empty."
            raise ValueError(msg)
        self._resolver = resolver
        self._store = store
        self._client = client
        self._sizes = tuple(sizes)
        self._gateway_url = gateway_url.rstrip("/")
        self._user_agent = user_agent
        self._fetch_timeout = fetch_timeout
        self._transcoder = transcoder
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def sizes(self) -> tuple[int, ...]:
        """Return the supported size allow-list."""
        return self._sizes

    @property
    def store(self) -> BlobStore:
        """Return the backing BlobStore."""
        return self._store

    @property
    def pending(self) -> int:
        """Return the number of cache-population tasks still running."""
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every outstanding cache-population task to finish."""
        while self._tasks:
            await asyncio.gather(*tuple(self._tasks), return_exceptions=True)

    async def resolve_source(self, name: str) -> ResolvedSource | None:
        """Resolve ``name`` to a fetchable source, or ``None`` when there is no avatar."""
        resolution = await self._resolver.resolve(name)
        if isinstance(resolution, LookupFailed):
            logger.info("no avatar for %r: lookup failed (%s)", name, resolution.reason)
            return None
        if isinstance(resolution, NoAvatar):
            logger.info("no avatar for %r", name)
            return None

        try:
            source = rewrite_content_address(resolution.url, self._gateway_url)
        except ValueError as exc:
            logger.warning("no avatar for %r: malformed avatar URL %r (%s)", name, resolution.url, exc)
            return None
        if source.is_content_addressed:
            logger.info("ipfs: %s -> %s", resolution.url, source.source_url)
        return source

    async def fetch_origin(self, url: str) -> bytes:
        """Download the origin image, raising ``OriginFetchError`` on any failure."""
        started = time.perf_counter()
        try:
            response = await self._client.get(
                url,
                headers={"User-Agent": self._user_agent},
                timeout=self._fetch_timeout,
                follow_redirects=True,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise OriginFetchError(url, f"{type(exc).__name__}: {exc}") from exc

        logger.info(
            "image fetch: %s -> %d in %.1fms", url, response.status_code, (time.perf_counter() - started) * 1000
        )
        if response.is_error:
            raise OriginFetchError(url, f"status {response.status_code}")
        if not response.content:
            raise OriginFetchError(url, "empty body")
        return response.content

    async def serve(self, request: AvatarRequest) -> AvatarResult:
        """Produce the image for one request.

        Raise ``InvalidSizeError``, ``OriginFetchError``, ``TranscodeError``
        or ``BlobStoreError`` for the corresponding terminal failures.
        """
        if request.size not in self._sizes:
            raise InvalidSizeError(request.size)

        source = await self.resolve_source(request.name)
        if source is None:
            return AvatarResult(
                image=placeholder_svg(request.size),
                media_type=PLACEHOLDER_MEDIA_TYPE,
                cache_status="placeholder",
            )

        key = cache_key(request.size, source.source_url)
        try:
            cached = await self._store.get_blob(key)
        except BlobNotFoundError:
            pass
        else:
            logger.info("cache hit: %s (%s)", request.name, key)
            return AvatarResult(
                image=cached.data,
                media_type=cached.media_type,
                cache_status="hit",
                ipfs_path=source.ipfs_path,
            )

        origin = await self.fetch_origin(source.source_url)
        try:
            image = await self._transcoder(origin, request.size)
        except TranscodeError as exc:
            logger.warning("transcode failed for %s: %s", source.source_url, exc.reason)
            raise

        logger.info("cache miss: %s (%s)", request.name, key)
        self._populate_all(origin, source.source_url, served=image)
        return AvatarResult(
            image=image.data,
            media_type=image.media_type,
            cache_status="miss",
            ipfs_path=source.ipfs_path,
        )

    def _populate_all(self, origin: bytes, source_url: str, *, served: TranscodedImage) -> None:
        """Start one detached store task per supported size."""
        for size in self._sizes:
            ready = served if served.size == size else None
            task = asyncio.create_task(self._populate(origin, source_url, size, ready), name=f"populate:{size}")
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _populate(self, origin: bytes, source_url: str, size: int, ready: TranscodedImage | None) -> None:
        """Transcode and store one size; failures stay inside this task."""
        key = cache_key(size, source_url)
        try:
            image = ready if ready is not None else await self._transcoder(origin, size)
            await self._store.put_blob(key, image.data, media_type=image.media_type)
        except EnsAvatarError as exc:
            logger.warning("populate %s failed: %s", key, exc)
            return
        except Exception:
            logger.exception("populate %s crashed", key)
            return
        logger.info("populated %s", key)
