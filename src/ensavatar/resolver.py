"""NameResolver: turn a name into an avatar URL via the enstate directory."""

from __future__ import annotations

import logging
import re
import time
from typing import TYPE_CHECKING
from urllib.parse import quote, urlsplit

import httpx

from ensavatar.types import LookupFailed, NoAvatar, Resolution, Resolved, ResolvedSource

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)

_IPFS_PATH = re.compile(r"/ipfs/.+")


def rewrite_content_address(url: str, gateway_url: str) -> ResolvedSource:
    """Point IPFS paths at an HTTP gateway.

    When the URL path contains ``/ipfs/<cid>``, the source becomes
    ``{gateway_url}{path}`` and the original path is kept as ``ipfs_path``.
    Any other URL passes through unchanged.
    """
    path = urlsplit(url).path
    if not _IPFS_PATH.search(path):
        return ResolvedSource(source_url=url)
    return ResolvedSource(source_url=f"{gateway_url.rstrip('/')}{path}", ipfs_path=path)


def _avatar_field(payload: object) -> str:
    """Extract the avatar URL from a directory response body."""
    if not isinstance(payload, dict):
        msg = f"expected a JSON object, got {type(payload).__name__}"
        raise TypeError(msg)
    avatar = payload.get("avatar")
    if avatar is None:
        return ""
    return avatar if isinstance(avatar, str) else str(avatar)


class NameResolver:
    """Look up a name's avatar record in the enstate directory service.

    Lookup failures never raise: they come back as ``LookupFailed`` so the
    caller can fall back to the placeholder.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        *,
        timeout: float = 5.0,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize with a shared HTTP client and the directory base URL."""
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._headers = dict(headers or {})

    @property
    def base_url(self) -> str:
        """Return the directory base URL without a trailing slash."""
        return self._base_url

    def lookup_url(self, name: str) -> str:
        """Return the directory URL queried for ``name``."""
        return f"{self._base_url}/n/{quote(name, safe='')}"

    async def resolve(self, name: str) -> Resolution:
        """Resolve ``name`` to its avatar URL."""
        url = self.lookup_url(name)
        started = time.perf_counter()
        try:
            response = await self._client.get(url, headers=self._headers, timeout=self._timeout)
            response.raise_for_status()
            avatar = _avatar_field(response.json())
        except httpx.HTTPStatusError as exc:
            logger.info("directory lookup for %r returned %d", name, exc.response.status_code)
            return LookupFailed(reason=f"status {exc.response.status_code}")
        except httpx.HTTPError as exc:
            logger.warning("directory lookup for %r failed: %s", name, exc)
            return LookupFailed(reason=f"{type(exc).__name__}: {exc}")
        except (ValueError, TypeError) as exc:
            logger.warning("directory lookup for %r returned a malformed body: %s", name, exc)
            return LookupFailed(reason="malformed response")
        finally:
            logger.debug("%s: %.1fms", self._base_url, (time.perf_counter() - started) * 1000)

        if not avatar:
            return NoAvatar()
        return Resolved(url=avatar)
