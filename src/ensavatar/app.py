"""HTTP surface: ``GET /{size}/{name}.webp`` on FastAPI."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from ensavatar.blobs import FileBlobStore, InMemoryBlobStore, S3BlobStore
from ensavatar.config import Settings
from ensavatar.errors import EnsAvatarError
from ensavatar.pipeline import AvatarPipeline
from ensavatar.resolver import NameResolver
from ensavatar.tracing import new_correlation_id, reset_correlation_id, set_correlation_id
from ensavatar.types import AvatarRequest, AvatarResult

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from ensavatar.blobs import BlobStore

logger = logging.getLogger(__name__)

CACHE_MAX_AGE = 604800  # 7 days


def build_store(settings: Settings) -> BlobStore:
    """Create the BlobStore selected by ``settings.store_backend``."""
    if settings.store_backend == "memory":
        return InMemoryBlobStore()
    if settings.store_backend == "file":
        return FileBlobStore(settings.store_root)
    return S3BlobStore.from_settings(settings)


def build_pipeline(settings: Settings, client: httpx.AsyncClient, *, store: BlobStore | None = None) -> AvatarPipeline:
    """Wire a pipeline from settings around a shared HTTP client."""
    resolver = NameResolver(client, settings.directory_url, timeout=settings.lookup_timeout)
    return AvatarPipeline(
        resolver,
        store if store is not None else build_store(settings),
        client,
        gateway_url=settings.gateway_url,
        user_agent=settings.user_agent,
        fetch_timeout=settings.fetch_timeout,
    )


def avatar_response(result: AvatarResult) -> Response:
    """Convert an AvatarResult into an HTTP response."""
    headers: dict[str, str] = {}
    if result.cache_status != "placeholder":
        headers["Cache-Control"] = f"public, max-age={CACHE_MAX_AGE}"
        headers["X-Cache"] = result.cache_status.upper()
    if result.ipfs_path is not None:
        headers["x-ipfs-path"] = result.ipfs_path
    return Response(content=result.image, media_type=result.media_type, headers=headers)


def error_response(exc: EnsAvatarError) -> JSONResponse:
    """Render a user-visible error without internal details."""
    return JSONResponse({"error": exc.public_message}, status_code=exc.status_code)


def create_app(settings: Settings | None = None, *, pipeline: AvatarPipeline | None = None) -> FastAPI:
    """Build the FastAPI application.

    When ``pipeline`` is given it is used as-is; otherwise the lifespan builds
    one (and its HTTP client) from ``settings`` or the environment.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if pipeline is not None:
            yield
            await pipeline.drain()
            return

        resolved_settings = settings if settings is not None else Settings.from_env()
        async with httpx.AsyncClient() as client:
            app.state.pipeline = build_pipeline(resolved_settings, client)
            yield
            await app.state.pipeline.drain()

    app = FastAPI(title="ENS Avatar", lifespan=lifespan)
    if pipeline is not None:
        app.state.pipeline = pipeline

    @app.get("/healthz")
    async def healthz() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/{size}/{name}.webp")
    async def avatar(size: str, name: str, request: Request) -> Response:
        token = set_correlation_id(new_correlation_id())
        try:
            current: AvatarPipeline = request.app.state.pipeline
            try:
                avatar_request = AvatarRequest.parse(name, size, sizes=current.sizes)
                result = await current.serve(avatar_request)
            except EnsAvatarError as exc:
                logger.info("request %s/%s failed: %s", size, name, exc)
                return error_response(exc)
            logger.info("served %s/%s (%s)", size, name, result.cache_status)
            return avatar_response(result)
        finally:
            reset_correlation_id(token)

    return app
