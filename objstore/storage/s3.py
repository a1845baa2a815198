from __future__ import annotations

import io
from collections.abc import Callable, Mapping
from typing import Any
from urllib.parse import quote

from boto3.s3.transfer import TransferConfig
from botocore.exceptions import ConnectTimeoutError, ReadTimeoutError
from loguru import logger

from objstore.exceptions import TransientTimeoutError
from objstore.storage.base import Params, with_default_bucket

# upload() options -> TransferConfig keyword
_TRANSFER_OPTIONS = {
    "partSize": ("multipart_chunksize", "multipart_threshold"),
    "queueSize": ("max_concurrency",),
}


class S3Client:
    """Thin adapter over a boto3 S3 client bound to an optional default bucket."""

    def __init__(self, client: Any, default_bucket: str | None = None) -> None:
        self.client = client
        self.default_bucket = default_bucket

    @property
    def endpoint_url(self) -> str:
        return str(self.client.meta.endpoint_url).rstrip("/")

    def _call(self, operation: Callable[..., Any], **kwargs: Any) -> Any:
        try:
            return operation(**kwargs)
        except (ReadTimeoutError, ConnectTimeoutError) as exc:
            raise TransientTimeoutError(
                f"S3 request timed out: {exc}",
                {"bucket": str(kwargs.get("Bucket", "")), "key": str(kwargs.get("Key", ""))},
            ) from exc

    def get_object(self, params: Params) -> dict[str, Any]:
        resolved = with_default_bucket(params, self.default_bucket)
        response = dict(self._call(self.client.get_object, **resolved))
        stream = response.get("Body")
        if hasattr(stream, "read"):
            try:
                response["Body"] = self._call(stream.read)
            finally:
                stream.close()
        return response

    def put_object(self, params: Params) -> dict[str, Any]:
        resolved = with_default_bucket(params, self.default_bucket)
        return self._call(self.client.put_object, **resolved)

    def delete_object(self, params: Params) -> dict[str, Any]:
        resolved = with_default_bucket(params, self.default_bucket)
        return self._call(self.client.delete_object, **resolved)

    def upload(self, params: Params, options: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Multipart-capable upload through boto3's managed transfer.

        ``options`` accepts ``partSize`` (bytes per part) and ``queueSize``
        (parts uploaded concurrently). Extra params become ``ExtraArgs``.
        """
        extra = with_default_bucket(params, self.default_bucket)
        bucket = extra.pop("Bucket")
        key = extra.pop("Key")
        body = extra.pop("Body", b"")
        if isinstance(body, str):
            body = body.encode("utf-8")
        fileobj = body if hasattr(body, "read") else io.BytesIO(body)

        transfer_kwargs: dict[str, Any] = {}
        for option, value in (options or {}).items():
            targets = _TRANSFER_OPTIONS.get(option)
            if targets is None:
                logger.debug(f"S3 upload ignores option: {option}")
                continue
            for target in targets:
                transfer_kwargs[target] = value

        self._call(
            self.client.upload_fileobj,
            Fileobj=fileobj,
            Bucket=bucket,
            Key=key,
            ExtraArgs=extra or None,
            Config=TransferConfig(**transfer_kwargs) if transfer_kwargs else None,
        )
        return {
            "Location": f"{self.endpoint_url}/{bucket}/{quote(key)}",
            "Bucket": bucket,
            "Key": key,
        }


__all__ = ["S3Client"]
