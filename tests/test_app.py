"""Tests for the FastAPI surface."""

import io
from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient
from PIL import Image

from ensavatar.app import CACHE_MAX_AGE, build_store, create_app
from ensavatar.blobs import FileBlobStore, InMemoryBlobStore, S3BlobStore
from ensavatar.config import Settings
from ensavatar.errors import BlobStoreError
from ensavatar.pipeline import AvatarPipeline
from ensavatar.resolver import NameResolver
from ensavatar.types import cache_key

_ALICE_URL = "https://img.test/example.png"


def _upstream(avatars: dict[str, str], images: dict[str, bytes]) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "directory.test":
            name = request.url.path.rsplit("/", 1)[-1]
            if name not in avatars:
                return httpx.Response(404, json={})
            return httpx.Response(200, json={"avatar": avatars[name]})
        body = images.get(str(request.url))
        return httpx.Response(200, content=body) if body is not None else httpx.Response(404)

    return httpx.MockTransport(handler)


def _pipeline(
    avatars: dict[str, str],
    images: dict[str, bytes],
    store: InMemoryBlobStore | None = None,
) -> AvatarPipeline:
    client = httpx.AsyncClient(transport=_upstream(avatars, images))
    return AvatarPipeline(
        NameResolver(client, "https://directory.test"),
        store if store is not None else InMemoryBlobStore(),
        client,
        gateway_url="https://gateway.test",
    )


class _BrokenStore(InMemoryBlobStore):
    async def get_blob(self, key: str) -> object:  # type: ignore[override]
        raise BlobStoreError(key, "connection refused to minio:9000")


def test_miss_then_hit(png_bytes: bytes) -> None:
    store = InMemoryBlobStore()
    pipeline = _pipeline({"alice.eth": _ALICE_URL}, {_ALICE_URL: png_bytes}, store)

    with TestClient(create_app(pipeline=pipeline)) as client:
        response = client.get("/64/alice.eth.webp")

    assert response.status_code == 200
    assert response.headers["content-type"] == "image/webp"
    assert response.headers["cache-control"] == f"public, max-age={CACHE_MAX_AGE}"
    assert response.headers["x-cache"] == "MISS"
    assert "etag" not in response.headers
    with Image.open(io.BytesIO(response.content)) as image:
        assert image.size == (64, 64)

    # Leaving the client ran the lifespan shutdown, which drains population tasks.
    for size in (64, 128, 256):
        assert [entry.key for entry in store.list_blobs(prefix=f"{size}/")] == [cache_key(size, _ALICE_URL)]

    with TestClient(create_app(pipeline=pipeline)) as client:
        hit = client.get("/64/alice.eth.webp")
    assert hit.status_code == 200
    assert hit.headers["x-cache"] == "HIT"
    assert hit.headers["cache-control"] == "public, max-age=604800"
    assert hit.content == response.content


def test_invalid_size() -> None:
    pipeline = _pipeline({"alice": _ALICE_URL}, {})
    with TestClient(create_app(pipeline=pipeline)) as client:
        response = client.get("/999/alice.webp")
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid size"}


def test_non_numeric_size() -> None:
    pipeline = _pipeline({"alice": _ALICE_URL}, {})
    with TestClient(create_app(pipeline=pipeline)) as client:
        response = client.get("/large/alice.webp")
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid size"}


def test_placeholder_for_unknown_name() -> None:
    store = InMemoryBlobStore()
    pipeline = _pipeline({}, {}, store)
    with TestClient(create_app(pipeline=pipeline)) as client:
        response = client.get("/128/nobody.eth.webp")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("image/svg+xml")
    assert b'height="128px"' in response.content
    assert "x-cache" not in response.headers
    assert "cache-control" not in response.headers
    assert store.list_blobs() == ()


def test_unparseable_avatar_url_serves_placeholder() -> None:
    store = InMemoryBlobStore()
    pipeline = _pipeline({"alice": "http://[::1"}, {}, store)
    with TestClient(create_app(pipeline=pipeline), raise_server_exceptions=False) as client:
        response = client.get("/64/alice.webp")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("image/svg+xml")
    assert b'height="64px"' in response.content
    assert store.list_blobs() == ()


def test_ipfs_path_header(png_bytes: bytes) -> None:
    pipeline = _pipeline(
        {"carol": "https://ipfs.io/ipfs/QmHash"},
        {"https://gateway.test/ipfs/QmHash": png_bytes},
    )
    with TestClient(create_app(pipeline=pipeline)) as client:
        response = client.get("/256/carol.webp")
    assert response.status_code == 200
    assert response.headers["x-ipfs-path"] == "/ipfs/QmHash"


def test_no_ipfs_header_for_plain_urls(png_bytes: bytes) -> None:
    pipeline = _pipeline({"alice": _ALICE_URL}, {_ALICE_URL: png_bytes})
    with TestClient(create_app(pipeline=pipeline)) as client:
        response = client.get("/64/alice.webp")
    assert "x-ipfs-path" not in response.headers


def test_transcode_failure() -> None:
    store = InMemoryBlobStore()
    pipeline = _pipeline({"alice": _ALICE_URL}, {_ALICE_URL: b"corrupt payload"}, store)
    with TestClient(create_app(pipeline=pipeline)) as client:
        response = client.get("/64/alice.webp")
    assert response.status_code == 422
    assert response.json() == {
        "error": "Could not process image, maybe the transcoder doesn't support this format?"
    }
    assert store.list_blobs() == ()


def test_origin_failure() -> None:
    pipeline = _pipeline({"alice": _ALICE_URL}, {})
    with TestClient(create_app(pipeline=pipeline)) as client:
        response = client.get("/64/alice.webp")
    assert response.status_code == 502
    assert response.json() == {"error": "Upstream did not return a valid image"}


def test_store_failure_hides_internal_details(png_bytes: bytes) -> None:
    pipeline = _pipeline({"alice": _ALICE_URL}, {_ALICE_URL: png_bytes}, _BrokenStore())
    with TestClient(create_app(pipeline=pipeline)) as client:
        response = client.get("/64/alice.webp")
    assert response.status_code == 500
    assert response.json() == {"error": "File not found or could not be processed"}
    assert "minio" not in response.text


def test_healthz() -> None:
    with TestClient(create_app(pipeline=_pipeline({}, {}))) as client:
        response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_lifespan_builds_pipeline_from_settings() -> None:
    settings = Settings(store_backend="memory", directory_url="https://directory.test")
    app = create_app(settings)
    with TestClient(app):
        assert isinstance(app.state.pipeline, AvatarPipeline)
        assert isinstance(app.state.pipeline.store, InMemoryBlobStore)


@pytest.mark.parametrize(
    ("backend", "expected"),
    [("memory", InMemoryBlobStore), ("file", FileBlobStore), ("s3", S3BlobStore)],
)
def test_build_store_selects_backend(backend: str, expected: type, tmp_path: Path) -> None:
    settings = Settings(store_backend=backend, store_root=str(tmp_path))  # type: ignore[arg-type]
    assert isinstance(build_store(settings), expected)
