"""Settings: environment-sourced configuration for the avatar service."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal, cast

from ensavatar.errors import ConfigError

if TYPE_CHECKING:
    from collections.abc import Mapping

StoreBackend = Literal["s3", "file", "memory"]
_STORE_BACKENDS: frozenset[str] = frozenset({"s3", "file", "memory"})


def _env_str(environ: Mapping[str, str], name: str, default: str) -> str:
    """Read a string variable, treating empty values as unset."""
    value = environ.get(name)
    return value if value else default


def _env_int(environ: Mapping[str, str], name: str, default: int) -> int:
    """Read an integer variable."""
    raw = environ.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        msg = f"{name} must be an integer; got {raw!r}."
        raise ConfigError(msg) from None


def _env_float(environ: Mapping[str, str], name: str, default: float) -> float:
    """Read a positive float variable (seconds)."""
    raw = environ.get(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        msg = f"{name} must be a number; got {raw!r}."
        raise ConfigError(msg) from None
    if value <= 0:
        msg = f"{name} must be > 0; got {raw!r}."
        raise ConfigError(msg)
    return value


@dataclass(frozen=True, slots=True)
class Settings:
    """Runtime configuration.

    Field defaults mirror the production deployment: a MinIO bucket on
    ``localhost:9000`` and the public enstate.rs directory.
    """

    directory_url: str = "https://enstate.rs"
    gateway_url: str = "https://cloudflare-ipfs.com"

    # Object store (any S3-compatible endpoint)
    bucket_host: str = "localhost"
    bucket_port: int = 9000
    bucket_use_ssl: bool = False
    access_key: str = ""
    secret_key: str = ""
    bucket_name: str = "ens-avatar"
    output_bucket: str = "ens-avatar"

    store_backend: StoreBackend = "s3"
    store_root: str = ".avatar-cache"

    lookup_timeout: float = 5.0
    fetch_timeout: float = 10.0
    user_agent: str = "ENS Avatar Service"
    log_level: str = "INFO"

    @property
    def bucket_endpoint_url(self) -> str:
        """Return the object-store endpoint as a URL for boto3."""
        scheme = "https" if self.bucket_use_ssl else "http"
        return f"{scheme}://{self.bucket_host}:{self.bucket_port}"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build Settings from environment variables."""
        env = os.environ if environ is None else environ
        defaults = cls()

        backend = _env_str(env, "STORE_BACKEND", defaults.store_backend).lower()
        if backend not in _STORE_BACKENDS:
            msg = f"STORE_BACKEND must be one of {sorted(_STORE_BACKENDS)}; got {backend!r}."
            raise ConfigError(msg)

        return cls(
            directory_url=_env_str(env, "ENSTATE_URL", defaults.directory_url).rstrip("/"),
            gateway_url=_env_str(env, "IPFS_GATEWAY_URL", defaults.gateway_url).rstrip("/"),
            bucket_host=_env_str(env, "BUCKET_HOST", defaults.bucket_host),
            bucket_port=_env_int(env, "BUCKET_PORT", defaults.bucket_port),
            # Only the literal "true" enables TLS.
            bucket_use_ssl=env.get("BUCKET_USE_SSL") == "true",
            access_key=env.get("AWS_ACCESS_KEY_ID", ""),
            secret_key=env.get("AWS_SECRET_ACCESS_KEY", ""),
            bucket_name=_env_str(env, "BUCKET_NAME", defaults.bucket_name),
            output_bucket=_env_str(env, "S3_BUCKET", defaults.output_bucket),
            store_backend=cast("StoreBackend", backend),
            store_root=_env_str(env, "STORE_ROOT", defaults.store_root),
            lookup_timeout=_env_float(env, "LOOKUP_TIMEOUT", defaults.lookup_timeout),
            fetch_timeout=_env_float(env, "FETCH_TIMEOUT", defaults.fetch_timeout),
            user_agent=_env_str(env, "USER_AGENT", defaults.user_agent),
            log_level=_env_str(env, "LOG_LEVEL", defaults.log_level).upper(),
        )
