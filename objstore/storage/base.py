"""Backend client protocol and helpers shared by every backend."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

from objstore.exceptions import MissingBucketError

Params = Mapping[str, Any]


class BackendClient(Protocol):
    """Synchronous capability set shared by every backend.

    Parameters use the S3 request shape (``Bucket``, ``Key``, ``Body`` and
    backend-specific extras); every call returns a response dict.
    """

    default_bucket: str | None

    def get_object(self, params: Params) -> dict[str, Any]:
        ...

    def put_object(self, params: Params) -> dict[str, Any]:
        ...

    def delete_object(self, params: Params) -> dict[str, Any]:
        ...

    def upload(self, params: Params, options: Mapping[str, Any] | None = None) -> dict[str, Any]:
        ...


def with_default_bucket(params: Params, default_bucket: str | None) -> dict[str, Any]:
    """Return a copy of ``params`` with ``Bucket`` filled from the bound default."""
    resolved = dict(params)
    if not resolved.get("Bucket"):
        if not default_bucket:
            raise MissingBucketError(
                "Bucket must be provided",
                {"key": str(resolved.get("Key", ""))},
            )
        resolved["Bucket"] = default_bucket
    return resolved


__all__ = ["BackendClient", "Params", "with_default_bucket"]
