"""Backend clients (S3 via boto3 or local filesystem emulation)."""

from .adapter import AsyncBackend
from .base import BackendClient, Params, with_default_bucket
from .local import LocalFilesystemClient
from .s3 import S3Client

__all__ = [
    "AsyncBackend",
    "BackendClient",
    "Params",
    "with_default_bucket",
    "LocalFilesystemClient",
    "S3Client",
]
