"""
StorageService factory.

Creates the backend client matching a validated storage config:

    type: localstorage  ->  LocalFilesystemClient rooted at <base_path>/<localConfig.path>
    type: s3            ->  S3Client over a boto3 client built from s3Config

No network I/O happens here; boto3 resolves endpoints lazily.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from pathlib import Path
from typing import Any

import boto3
from botocore.config import Config as BotoConfig

from objstore.logging_config import get_logger
from objstore.service import BackendType, ServiceConfig, StorageService
from objstore.settings import (
    AwsS3Config,
    HapiS3Config,
    LocalStorageConfig,
    S3StorageConfig,
    get_config_section,
    load_config_file,
    validate_storage_config,
)
from objstore.storage.base import BackendClient
from objstore.storage.local import LocalFilesystemClient
from objstore.storage.s3 import S3Client

S3_API_VERSION = "2006-03-01"


class StorageServiceFactory:
    """Factory for creating storage services from configuration."""

    @classmethod
    def create(
        cls,
        config: Mapping[str, Any] | S3StorageConfig | LocalStorageConfig,
        logger: Any | None = None,
        base_path: Path | str | None = None,
    ) -> StorageService:
        """Validate ``config`` and build a StorageService for it.

        Args:
            config: Raw storage config mapping (or an already validated model).
            logger: Optional loguru logger handed to the service.
            base_path: Directory that relative ``localConfig.path`` values
                resolve against. Defaults to the working directory.

        Raises:
            ValidationError: If the config does not match the schema.
        """
        logger = logger or get_logger("objstore.factory")
        settings = validate_storage_config(config)

        if isinstance(settings, LocalStorageConfig):
            backend, base_url = cls._create_local_backend(settings, base_path)
        else:
            backend, base_url = cls._create_s3_backend(settings)

        service_config = ServiceConfig(
            backend_type=BackendType(settings.type),
            base_url_without_bucket=base_url,
            bucket=backend.default_bucket,
            key_prefix=settings.key_prefix,
            read_only=settings.read_only,
            max_retries_on_timeout=settings.max_retries_on_timeout,
        )
        logger.info(
            f"Created {service_config.backend_type.value} storage service "
            f"(bucket={service_config.bucket}, base_url={service_config.base_url_without_bucket})"
        )
        return StorageService(backend, service_config, logger)

    @classmethod
    def create_from_settings(
        cls,
        source: Mapping[str, Any],
        config_path: str,
        logger: Any | None = None,
        base_path: Path | str | None = None,
    ) -> StorageService:
        """Build a service from the section at ``config_path`` of a loaded config tree."""
        return cls.create(get_config_section(source, config_path), logger, base_path)

    @classmethod
    def create_from_config_file(
        cls,
        config_path: str,
        file_path: Path | str | None = None,
        logger: Any | None = None,
        base_path: Path | str | None = None,
    ) -> StorageService:
        """Load a YAML file (see ``load_config_file``) and build from ``config_path``."""
        return cls.create_from_settings(load_config_file(file_path), config_path, logger, base_path)

    # ------------------------------------------------------------------
    # Backend construction
    # ------------------------------------------------------------------

    @staticmethod
    def _create_local_backend(
        settings: LocalStorageConfig,
        base_path: Path | str | None,
    ) -> tuple[BackendClient, str]:
        root = (Path(base_path or Path.cwd()) / settings.local_config.path).resolve()
        base_url = settings.local_config.base_url or str(root)
        return LocalFilesystemClient(root, default_bucket=settings.bucket), base_url

    @staticmethod
    def _create_s3_backend(settings: S3StorageConfig) -> tuple[BackendClient, str]:
        s3_config = settings.s3_config
        client_kwargs: dict[str, Any] = {"api_version": S3_API_VERSION}
        boto_options: dict[str, Any] = {}
        default_bucket = settings.bucket

        if isinstance(s3_config, HapiS3Config):
            access_key, secret_key = s3_config.aws_access_key, s3_config.aws_secret_key
            if s3_config.http_timeout_ms:
                boto_options["connect_timeout"] = s3_config.http_timeout_ms / 1000.0
                boto_options["read_timeout"] = s3_config.http_timeout_ms / 1000.0
        else:
            access_key, secret_key = s3_config.access_key_id, s3_config.secret_access_key
            if s3_config.api_version:
                client_kwargs["api_version"] = _api_version(s3_config.api_version)
            boto_options.update(_sdk_client_options(s3_config))
            if s3_config.ssl_enabled is not None:
                client_kwargs["use_ssl"] = s3_config.ssl_enabled
            default_bucket = default_bucket or s3_config.params.get("Bucket")

        if s3_config.endpoint:
            client_kwargs["endpoint_url"] = s3_config.endpoint
        if boto_options:
            client_kwargs["config"] = BotoConfig(**boto_options)

        session = boto3.session.Session(
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=s3_config.region,
        )
        backend = S3Client(session.client("s3", **client_kwargs), default_bucket=default_bucket)
        base_url = s3_config.base_url or backend.endpoint_url
        return backend, base_url


def _sdk_client_options(s3_config: AwsS3Config) -> dict[str, Any]:
    options: dict[str, Any] = {}
    s3_options: dict[str, Any] = {}
    if s3_config.max_retries is not None:
        options["retries"] = {"max_attempts": s3_config.max_retries}
    if s3_config.signature_version:
        options["signature_version"] = s3_config.signature_version
    if s3_config.param_validation is not None:
        options["parameter_validation"] = s3_config.param_validation is not False
    if s3_config.s3_force_path_style:
        s3_options["addressing_style"] = "path"
    if s3_config.use_dualstack:
        s3_options["use_dualstack_endpoint"] = True
    if s3_config.s3_disable_body_signing is not None:
        s3_options["payload_signing_enabled"] = not s3_config.s3_disable_body_signing
    if s3_options:
        options["s3"] = s3_options
    http = s3_config.http_options
    if http is not None:
        if http.timeout:
            options["read_timeout"] = http.timeout / 1000.0
        if http.connect_timeout:
            options["connect_timeout"] = http.connect_timeout / 1000.0
        if http.proxy:
            options["proxies"] = {"http": http.proxy, "https": http.proxy}
    return options


def _api_version(value: str | date) -> str:
    """Resolve an SDK ``apiVersion`` to the newest S3 API not later than it."""
    version = value.isoformat() if isinstance(value, date) else value
    if version == "latest" or version >= S3_API_VERSION:
        return S3_API_VERSION
    return version


__all__ = ["StorageServiceFactory", "S3_API_VERSION"]
