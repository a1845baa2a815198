"""objstore: one object-storage API over S3 or a local filesystem."""

from objstore.exceptions import (
    ConfigurationError,
    InvalidKeyError,
    MaxRetriesReached,
    MissingBucketError,
    ReadOnlyError,
    StorageServiceError,
    TransientTimeoutError,
    ValidationError,
)
from objstore.factory import StorageServiceFactory
from objstore.service import BackendType, ServiceConfig, StorageService

__version__ = "0.1.0"

__all__ = [
    "StorageServiceFactory",
    "StorageService",
    "ServiceConfig",
    "BackendType",
    "StorageServiceError",
    "ConfigurationError",
    "ValidationError",
    "MissingBucketError",
    "ReadOnlyError",
    "InvalidKeyError",
    "TransientTimeoutError",
    "MaxRetriesReached",
    "__version__",
]
