"""
Local filesystem emulation of the S3 object API.

Objects live at ``<root>/<bucket>/<key>``, so a bucket is a directory and a
key is a relative path inside it:

    root="/srv/data", Bucket="media", Key="p/2024/a.jpg"
    -> /srv/data/media/p/2024/a.jpg

Missing objects surface as the native ``FileNotFoundError`` (errno ENOENT),
which callers branch on the same way they branch on ``NoSuchKey`` for S3.
"""

from __future__ import annotations

import hashlib
from collections.abc import Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from loguru import logger

from objstore.exceptions import InvalidKeyError
from objstore.storage.base import Params, with_default_bucket

_HANDLED_PARAMS = frozenset({"Bucket", "Key", "Body"})


def _etag(data: bytes) -> str:
    return f'"{hashlib.md5(data, usedforsecurity=False).hexdigest()}"'


def _body_bytes(body: Any) -> bytes:
    if body is None:
        return b""
    if hasattr(body, "read"):
        body = body.read()
    if isinstance(body, str):
        return body.encode("utf-8")
    if isinstance(body, (bytes, bytearray, memoryview)):
        return bytes(body)
    raise TypeError(f"Unsupported Body type: {type(body).__name__}")


class LocalFilesystemClient:
    def __init__(self, root: Path, default_bucket: str | None = None) -> None:
        self.root = Path(root)
        self.default_bucket = default_bucket

    def _object_path(self, bucket: str, key: str) -> Path:
        if bucket in {".", ".."} or "/" in bucket or "\\" in bucket:
            raise InvalidKeyError(f"Invalid bucket name: {bucket}", {"bucket": bucket})
        bucket_dir = (self.root / bucket).resolve()
        path = (bucket_dir / key.replace("\\", "/").lstrip("/")).resolve()
        if bucket_dir not in path.parents:
            raise InvalidKeyError(f"Suspicious key outside bucket: {key}", {"bucket": bucket, "key": key})
        return path

    def _resolve(self, params: Params) -> tuple[dict[str, Any], Path]:
        resolved = with_default_bucket(params, self.default_bucket)
        ignored = sorted(set(resolved) - _HANDLED_PARAMS)
        if ignored:
            logger.debug(f"Local storage ignores parameters: {ignored}")
        return resolved, self._object_path(resolved["Bucket"], resolved["Key"])

    def _write(self, path: Path, body: Any) -> bytes:
        data = _body_bytes(body)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return data

    def get_object(self, params: Params) -> dict[str, Any]:
        _, path = self._resolve(params)
        data = path.read_bytes()
        modified = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
        return {
            "Body": data,
            "ContentLength": len(data),
            "ETag": _etag(data),
            "LastModified": modified,
        }

    def put_object(self, params: Params) -> dict[str, Any]:
        resolved, path = self._resolve(params)
        data = self._write(path, resolved.get("Body"))
        return {"ETag": _etag(data)}

    def delete_object(self, params: Params) -> dict[str, Any]:
        # deleting a missing key succeeds, as on S3
        _, path = self._resolve(params)
        path.unlink(missing_ok=True)
        return {}

    def upload(self, params: Params, options: Mapping[str, Any] | None = None) -> dict[str, Any]:
        if options:
            logger.debug(f"Local storage ignores upload options: {sorted(options)}")
        resolved, path = self._resolve(params)
        data = self._write(path, resolved.get("Body"))
        return {
            "Location": str(path),
            "Bucket": resolved["Bucket"],
            "Key": resolved["Key"],
            "ETag": _etag(data),
        }


__all__ = ["LocalFilesystemClient"]
