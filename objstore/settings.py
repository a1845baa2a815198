from __future__ import annotations

import os
import re
from collections.abc import Callable, Mapping
from datetime import date
from pathlib import Path
from typing import Annotated, Any, Literal, Union

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError

from objstore.exceptions import ConfigurationError, ValidationError

# Load .env file from project root
_env_path = Path(__file__).parent.parent / ".env"
if _env_path.exists():
    load_dotenv(_env_path)

CONFIG_ENV_VAR = "OBJSTORE_CONFIG"
DEFAULT_CONFIG_PATH = "config/default.yaml"

_ENV_REF = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


class _ConfigModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid", frozen=True)


class LocalConfig(_ConfigModel):
    path: str
    base_url: str | None = Field(default=None, alias="baseUrl")


class HapiS3Config(_ConfigModel):
    """Short credential form: ``awsAccessKey`` / ``awsSecretKey``."""

    aws_access_key: str = Field(alias="awsAccessKey")
    aws_secret_key: str = Field(alias="awsSecretKey")
    user_name: str | None = Field(default=None, alias="userName")
    http_timeout_ms: int | None = Field(default=None, alias="httpTimeoutMs", gt=0)
    base_url: str | None = Field(default=None, alias="baseUrl")
    endpoint: str | None = None
    region: str | None = None


class HttpOptions(_ConfigModel):
    timeout: int | None = Field(default=None, gt=0)  # ms
    connect_timeout: int | None = Field(default=None, alias="connectTimeout", gt=0)  # ms
    proxy: str | None = None
    # browser-only SDK flags, accepted and unused
    xhr_async: bool | None = Field(default=None, alias="xhrAsync")
    xhr_with_credentials: bool | None = Field(default=None, alias="xhrWithCredentials")


class ParamValidation(_ConfigModel):
    min: bool | None = None
    max: bool | None = None
    pattern: bool | None = None
    enum: bool | None = None


class RetryDelayOptions(_ConfigModel):
    base: float | None = Field(default=None, ge=0)  # ms
    custom_backoff: Callable[..., Any] | None = Field(default=None, alias="customBackoff")


class SdkLogger(_ConfigModel):
    write: Callable[..., Any]
    log: Callable[..., Any]


class AwsS3Config(_ConfigModel):
    """SDK-style form: ``accessKeyId`` / ``secretAccessKey`` plus client knobs."""

    access_key_id: str = Field(alias="accessKeyId")
    secret_access_key: str = Field(alias="secretAccessKey")
    endpoint: str | None = None
    region: str | None = None
    params: dict[str, Any] = Field(default_factory=dict)
    max_retries: int | None = Field(default=None, alias="maxRetries", ge=0)
    ssl_enabled: bool | None = Field(default=None, alias="sslEnabled")
    use_dualstack: bool | None = Field(default=None, alias="useDualstack")
    s3_force_path_style: bool | None = Field(default=None, alias="s3ForcePathStyle")
    signature_version: str | None = Field(default=None, alias="signatureVersion")
    http_options: HttpOptions | None = Field(default=None, alias="httpOptions")
    base_url: str | None = Field(default=None, alias="baseUrl")
    api_version: str | date | None = Field(default=None, alias="apiVersion")
    param_validation: bool | ParamValidation | None = Field(default=None, alias="paramValidation")
    s3_disable_body_signing: bool | None = Field(default=None, alias="s3DisableBodySigning")
    # no boto3 counterpart; accepted so existing configs keep validating
    max_redirects: int | None = Field(default=None, alias="maxRedirects", ge=0)
    compute_checksums: bool | None = Field(default=None, alias="computeChecksums")
    convert_response_types: bool | None = Field(default=None, alias="convertResponseTypes")
    correct_clock_skew: bool | None = Field(default=None, alias="correctClockSkew")
    s3_bucket_endpoint: bool | None = Field(default=None, alias="s3BucketEndpoint")
    retry_delay_options: RetryDelayOptions | None = Field(default=None, alias="retryDelayOptions")
    system_clock_offset: float | None = Field(default=None, alias="systemClockOffset")
    signature_cache: bool | None = Field(default=None, alias="signatureCache")
    logger: SdkLogger | None = None


class _BaseStorageConfig(_ConfigModel):
    bucket: str | None = None
    key_prefix: str | None = Field(default=None, alias="keyPrefix")
    read_only: bool = Field(default=False, alias="readOnly")
    max_retries_on_timeout: int = Field(default=5, alias="maxRetriesOnTimeout", ge=1)

    @field_validator("key_prefix")
    @classmethod
    def _normalize_prefix(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip("/") or None


class S3StorageConfig(_BaseStorageConfig):
    type: Literal["s3"]
    s3_config: Union[AwsS3Config, HapiS3Config] = Field(alias="s3Config")
    # accepted for either type, only consumed by localstorage
    local_config: Any = Field(default=None, alias="localConfig")


class LocalStorageConfig(_BaseStorageConfig):
    type: Literal["localstorage"]
    local_config: LocalConfig = Field(alias="localConfig")
    s3_config: Any = Field(default=None, alias="s3Config")


StorageConfig = Annotated[Union[S3StorageConfig, LocalStorageConfig], Field(discriminator="type")]

_storage_config_adapter: TypeAdapter[Any] = TypeAdapter(StorageConfig)


def validate_storage_config(config: Any) -> S3StorageConfig | LocalStorageConfig:
    """Validate a raw config mapping against the storage schema.

    Raises:
        ValidationError: If the config matches neither backend shape.
    """
    if isinstance(config, (S3StorageConfig, LocalStorageConfig)):
        return config
    try:
        return _storage_config_adapter.validate_python(config)
    except PydanticValidationError as exc:
        errors = exc.errors(include_url=False, include_context=False)
        summary = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or '<root>'}: {err['msg']}" for err in errors
        )
        raise ValidationError(f"Invalid storage configuration: {summary}", {"errors": errors}) from exc


def _expand_env(value: Any) -> Any:
    if isinstance(value, str):
        def _lookup(match: re.Match[str]) -> str:
            name = match.group(1)
            if name not in os.environ:
                raise ConfigurationError(f"Environment variable '{name}' referenced in config is not set")
            return os.environ[name]

        return _ENV_REF.sub(_lookup, value)
    if isinstance(value, Mapping):
        return {key: _expand_env(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_expand_env(item) for item in value]
    return value


def load_config_file(path: Path | str | None = None) -> dict[str, Any]:
    """Load a YAML configuration file.

    Args:
        path: Optional path to configuration file. If not provided, uses
            OBJSTORE_CONFIG environment variable or defaults to config/default.yaml.

    Returns:
        The parsed document with ``${VAR}`` references expanded.

    Raises:
        FileNotFoundError: If configuration file does not exist.
        ConfigurationError: If the file is not a YAML mapping.
    """
    config_path = Path(path) if path else Path(os.getenv(CONFIG_ENV_VAR, DEFAULT_CONFIG_PATH))
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")
    with config_path.open("r", encoding="utf-8") as fp:
        try:
            payload = yaml.safe_load(fp) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {exc}") from exc
    if not isinstance(payload, Mapping):
        raise ConfigurationError(f"Configuration root must be a mapping: {config_path}")
    return _expand_env(payload)


def get_config_section(source: Mapping[str, Any], dotted_path: str) -> Any:
    """Return the value stored under ``dotted_path`` (e.g. ``"services.media.storage"``)."""
    node: Any = source
    walked: list[str] = []
    for part in (segment for segment in dotted_path.split(".") if segment):
        walked.append(part)
        if not isinstance(node, Mapping) or part not in node:
            raise ConfigurationError(
                f"Configuration path '{'.'.join(walked)}' not found",
                {"path": dotted_path},
            )
        node = node[part]
    return node


__all__ = [
    "LocalConfig",
    "HapiS3Config",
    "HttpOptions",
    "ParamValidation",
    "RetryDelayOptions",
    "SdkLogger",
    "AwsS3Config",
    "S3StorageConfig",
    "LocalStorageConfig",
    "StorageConfig",
    "validate_storage_config",
    "load_config_file",
    "get_config_section",
    "CONFIG_ENV_VAR",
    "DEFAULT_CONFIG_PATH",
]
