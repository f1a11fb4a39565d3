# unistore/file_access/config.py
"""
Storage configuration.

A StorageConfig is validated once, when it is built, and is immutable
afterwards. Invalid configuration raises StorageError(INVALID_CONFIG) or
StorageError(INVALID_PROVIDER); it is never a runtime error of an operation.

Accepted shape (camelCase aliases from the JSON form are accepted too):
{
    "name": "documents",
    "provider": "filesystem",            # or "objectstore"
    "filesystem": {
        "base_path": "/var/lib/unistore",
        "create_dirs": true,
        "permissions": "0644"            # optional, octal
    },
    "signed_url": {
        "enabled": true,
        "expires_in_seconds": 1800,      # optional, default 30 minutes
        "secret_key": "..."
    }
}
"""
from datetime import timedelta
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from unistore.file_access.errors import ErrorKind, StorageError

DEFAULT_SIGNED_URL_EXPIRY = timedelta(minutes=30)


class StorageProvider(str, Enum):
    FILESYSTEM = "filesystem"
    OBJECTSTORE = "objectstore"


class _FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class FilesystemConfig(_FrozenModel):
    """Configuration for the local filesystem backend."""
    base_path: str = Field(validation_alias=AliasChoices("base_path", "basePath"))
    create_dirs: bool = Field(False, validation_alias=AliasChoices("create_dirs", "createDirs"))
    permissions: Optional[str] = None

    @field_validator("base_path")
    @classmethod
    def _base_path_required(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("base_path is required for filesystem provider")
        return value

    @field_validator("permissions")
    @classmethod
    def _permissions_octal(cls, value: Optional[str]) -> Optional[str]:
        if value is None or value == "":
            return None
        try:
            mode = int(str(value), 8)
        except ValueError:
            raise ValueError(f"permissions must be an octal string, got {value!r}")
        if mode < 0 or mode > 0o7777:
            raise ValueError(f"permissions out of range: {value!r}")
        return str(value)

    @property
    def permission_bits(self) -> Optional[int]:
        """Parsed permission bits, or None when not configured."""
        if self.permissions is None:
            return None
        return int(self.permissions, 8)


class ObjectStoreConfig(_FrozenModel):
    """Configuration for an S3-compatible object store."""
    region: str
    endpoint: Optional[str] = None
    bucket: str
    access_key: str = Field(validation_alias=AliasChoices("access_key", "accessKey", "accessKeyId"))
    secret_key: str = Field(validation_alias=AliasChoices("secret_key", "secretKey", "secretAccessKey"))
    session_token: Optional[str] = Field(None, validation_alias=AliasChoices("session_token", "sessionToken"))
    use_tls: bool = Field(True, validation_alias=AliasChoices("use_tls", "useTLS", "useSSL"))
    force_path_style: bool = Field(False, validation_alias=AliasChoices("force_path_style", "forcePathStyle"))
    max_retries: int = Field(3, ge=0, validation_alias=AliasChoices("max_retries", "maxRetries"))
    default_upload_params: Optional[Dict[str, Any]] = Field(
        None, validation_alias=AliasChoices("default_upload_params", "defaultUploadParams")
    )

    @field_validator("region", "bucket", "access_key", "secret_key")
    @classmethod
    def _required(cls, value: str, info) -> str:
        if not value or not value.strip():
            raise ValueError(f"{info.field_name} is required for objectstore provider")
        return value


class SignedURLConfig(_FrozenModel):
    """Signed URL settings. The default expiry is applied here, once."""
    enabled: bool = False
    expires_in: timedelta = Field(
        DEFAULT_SIGNED_URL_EXPIRY,
        validation_alias=AliasChoices("expires_in", "expiresIn", "expires_in_seconds", "expiresInSeconds"),
    )
    secret_key: str = Field("", validation_alias=AliasChoices("secret_key", "secretKey"))

    @field_validator("expires_in", mode="before")
    @classmethod
    def _default_expiry(cls, value):
        if value is None or value == 0:
            return DEFAULT_SIGNED_URL_EXPIRY
        return value

    @field_validator("expires_in")
    @classmethod
    def _positive_expiry(cls, value: timedelta) -> timedelta:
        if value <= timedelta(0):
            raise ValueError("expires_in must be positive")
        return value


class StorageConfig(_FrozenModel):
    """Validated, immutable description of one storage instance."""
    name: str
    provider: StorageProvider
    filesystem: Optional[FilesystemConfig] = None
    objectstore: Optional[ObjectStoreConfig] = Field(
        None, validation_alias=AliasChoices("objectstore", "objectStore", "s3")
    )
    signed_url: SignedURLConfig = Field(
        default_factory=SignedURLConfig,
        validation_alias=AliasChoices("signed_url", "signedUrl", "signedURL"),
    )

    @field_validator("name")
    @classmethod
    def _name_required(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("storage name is required")
        return value.strip()

    @field_validator("provider", mode="before")
    @classmethod
    def _normalize_provider(cls, value):
        if isinstance(value, str):
            value = value.lower().strip()
            if value == "s3":
                return StorageProvider.OBJECTSTORE.value
        return value

    @field_validator("signed_url", mode="before")
    @classmethod
    def _signed_url_default(cls, value):
        if value is None:
            return SignedURLConfig()
        return value

    @model_validator(mode="after")
    def _exactly_one_backend(self) -> "StorageConfig":
        if self.provider == StorageProvider.FILESYSTEM:
            if self.filesystem is None:
                raise ValueError("filesystem configuration is required when provider is filesystem")
            if self.objectstore is not None:
                raise ValueError("objectstore configuration must be empty when provider is filesystem")
        elif self.provider == StorageProvider.OBJECTSTORE:
            if self.objectstore is None:
                raise ValueError("objectstore configuration is required when provider is objectstore")
            if self.filesystem is not None:
                raise ValueError("filesystem configuration must be empty when provider is objectstore")
        return self


def _describe(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "config"
        msg = err.get("msg", "invalid value")
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        parts.append(f"{loc}: {msg}")
    return "; ".join(parts)


def _is_provider_error(exc: ValidationError) -> bool:
    return any(
        tuple(err.get("loc", ()))[:1] == ("provider",) and err.get("type") != "missing"
        for err in exc.errors()
    )


def load_storage_config(data: Union[StorageConfig, Mapping[str, Any]]) -> StorageConfig:
    """
    Validate raw configuration into a StorageConfig.

    Raises:
        StorageError: INVALID_PROVIDER for an unknown provider, INVALID_CONFIG
            for anything else
    """
    if isinstance(data, StorageConfig):
        return data
    if data is None:
        raise StorageError(ErrorKind.INVALID_CONFIG, "storage configuration is required")
    try:
        return StorageConfig.model_validate(dict(data))
    except ValidationError as exc:
        kind = ErrorKind.INVALID_PROVIDER if _is_provider_error(exc) else ErrorKind.INVALID_CONFIG
        raise StorageError(kind, _describe(exc), cause=exc) from exc
