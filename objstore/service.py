"""Uniform object-storage service over an S3 or local-filesystem backend."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from objstore.exceptions import (
    ConfigurationError,
    InvalidKeyError,
    MaxRetriesReached,
    MissingBucketError,
    ReadOnlyError,
    is_transient_timeout,
)
from objstore.logging_config import get_logger
from objstore.storage.adapter import AsyncBackend
from objstore.storage.base import BackendClient, Params

READ_ONLY_MESSAGE = "Readonly service - no CUD operations allowed"


class BackendType(str, Enum):
    REMOTE = "s3"
    LOCAL = "localstorage"


@dataclass(frozen=True)
class ServiceConfig:
    """Immutable settings a StorageService runs with.

    Attributes:
        backend_type: Which backend the service talks to.
        base_url_without_bucket: Public root used to build object URLs.
        bucket: Default bucket; calls may pass ``Bucket`` when this is unset.
        key_prefix: Namespace implicitly prepended to every key.
        read_only: Refuse put/delete/upload when True.
        max_retries_on_timeout: Total putObject attempts (first one included)
            while the backend keeps answering with RequestTimeout.
    """

    backend_type: BackendType
    base_url_without_bucket: str
    bucket: str | None = None
    key_prefix: str | None = None
    read_only: bool = False
    max_retries_on_timeout: int = 5

    def __post_init__(self) -> None:
        base_url = (self.base_url_without_bucket or "").rstrip("/")
        if not base_url:
            raise ConfigurationError("base_url_without_bucket must not be empty")
        if self.max_retries_on_timeout < 1:
            raise ConfigurationError(
                "max_retries_on_timeout must be at least 1",
                {"max_retries_on_timeout": str(self.max_retries_on_timeout)},
            )
        object.__setattr__(self, "backend_type", BackendType(self.backend_type))
        object.__setattr__(self, "base_url_without_bucket", base_url)
        object.__setattr__(self, "key_prefix", (self.key_prefix or "").strip("/") or None)
        object.__setattr__(self, "bucket", self.bucket or None)


def _rewind(body: Any, position: int | None) -> None:
    if position is not None:
        body.seek(position)


def _body_position(body: Any) -> int | None:
    seekable = getattr(body, "seekable", None)
    if callable(seekable) and seekable():
        return body.tell()
    return None


class StorageService:
    """Object operations with key-prefix namespacing, readonly gating and
    timeout retries, delegated to a backend chosen by the factory.

    Callers may pass short keys (``"x"``) or fully qualified ones
    (``"<prefix>/x"``); results always report the qualified key.
    """

    def __init__(
        self,
        backend: BackendClient | AsyncBackend,
        config: ServiceConfig,
        logger: Any | None = None,
    ) -> None:
        self._backend = backend if isinstance(backend, AsyncBackend) else AsyncBackend(backend)
        self._config = config
        self._logger = logger or get_logger("objstore.service")

    @property
    def config(self) -> ServiceConfig:
        return self._config

    @property
    def backend_type(self) -> BackendType:
        return self._config.backend_type

    @property
    def bucket(self) -> str | None:
        return self._config.bucket

    @property
    def key_prefix(self) -> str | None:
        return self._config.key_prefix

    # ------------------------------------------------------------------
    # URLs and keys
    # ------------------------------------------------------------------

    def get_base_endpoint_url(self, bucket: str | None = None) -> str:
        """Return ``<base>/<bucket>[/<prefix>]``.

        ``bucket`` is only consulted when the service has no bound bucket.
        """
        bucket = self._config.bucket or bucket
        if not bucket:
            raise MissingBucketError("Bucket must be provided")
        url = f"{self._config.base_url_without_bucket}/{bucket}"
        if self._config.key_prefix:
            url += f"/{self._config.key_prefix}"
        return url

    def get_url(self, key: str, bucket: str | None = None) -> str:
        return f"{self.get_base_endpoint_url(bucket)}/{key}"

    def get_key_with_key_prefix(self, key: str) -> str:
        prefix = self._config.key_prefix
        if not prefix or key.startswith(f"{prefix}/"):
            return key
        return f"{prefix}/{key}"

    def strip_key_prefix(self, key: str) -> str:
        prefix = self._config.key_prefix
        if prefix and key.startswith(f"{prefix}/"):
            return key[len(prefix) + 1:]
        return key

    def _qualified(self, params: Params) -> dict[str, Any]:
        key = params.get("Key")
        if not isinstance(key, str) or not key:
            raise InvalidKeyError("Key must be a non-empty string", {"key": repr(key)})
        request = dict(params)
        request["Key"] = self.get_key_with_key_prefix(key)
        return request

    def _ensure_writable(self, operation: str, params: Params) -> None:
        if self._config.read_only:
            self._logger.warning(f"Refused {operation} on readonly storage for key {params.get('Key')!r}")
            raise ReadOnlyError(READ_ONLY_MESSAGE, {"operation": operation})

    # ------------------------------------------------------------------
    # Object operations
    # ------------------------------------------------------------------

    async def get_object(self, params: Params) -> dict[str, Any]:
        """Fetch an object.

        Not-found errors are the backend's own: ``FileNotFoundError``
        (``ENOENT``) for local storage, ``ClientError`` ``NoSuchKey`` for S3.
        """
        request = self._qualified(params)
        self._logger.debug(f"getObject {self.backend_type.value} key={request['Key']}")
        result = dict(await self._backend.get_object(request))
        result["Key"] = request["Key"]
        return result

    async def delete_object(self, params: Params) -> Any:
        self._ensure_writable("deleteObject", params)
        request = self._qualified(params)
        self._logger.debug(f"deleteObject {self.backend_type.value} key={request['Key']}")
        result = await self._backend.delete_object(request)
        if result is None or isinstance(result, Mapping):
            return True
        return result

    async def put_object(self, params: Params) -> dict[str, Any]:
        """Write an object, retrying while the backend reports RequestTimeout.

        Attempts run one after another with no added delay; any other error
        aborts at once.
        """
        self._ensure_writable("putObject", params)
        max_attempts = self._config.max_retries_on_timeout
        position = _body_position(params.get("Body"))
        last_error: BaseException | None = None

        for attempt in range(1, max_attempts + 1):
            request = self._qualified(params)
            if attempt > 1:
                _rewind(request.get("Body"), position)
            self._logger.debug(
                f"putObject {self.backend_type.value} key={request['Key']} attempt={attempt}/{max_attempts}"
            )
            try:
                return await self._backend.put_object(request)
            except Exception as exc:
                if not is_transient_timeout(exc):
                    raise
                last_error = exc
                self._logger.warning(
                    f"putObject timed out for key {request['Key']} (attempt {attempt} of {max_attempts})"
                )

        self._logger.error(f"putObject gave up after {max_attempts} timed out attempts")
        raise MaxRetriesReached(
            f"StorageService: max retries ({max_attempts}) on timeout reached. "
            "Search for S3 RequestTimeout errors and how to resolve them.",
            {"max_retries": max_attempts, "key": str(params.get("Key"))},
        ) from last_error

    async def upload(self, params: Params, options: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Streaming/multipart upload; single attempt, the transfer layer retries parts itself."""
        self._ensure_writable("upload", params)
        request = self._qualified(params)
        self._logger.debug(f"upload {self.backend_type.value} key={request['Key']}")
        return await self._backend.upload(request, dict(options or {}))


__all__ = ["BackendType", "ServiceConfig", "StorageService", "READ_ONLY_MESSAGE"]
