from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, TypeAdapter, ValidationError


LOG_LEVEL_ENV = "BUCKETSYNC_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "WARNING"


class ConfigError(RuntimeError):
    """Raised when the configuration or metadata document cannot be used."""


class Credentials(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    access_key_id: str = Field(alias="accessKeyId")
    secret_access_key: str = Field(alias="secretAccessKey")


class BucketSyncConfig(BaseModel):
    """Validated configuration document.

    Relative paths in the document are resolved against ``base_dir``, the
    directory holding the document itself.
    """

    model_config = ConfigDict(extra="forbid")

    schema_url: str | None = Field(default=None, alias="$schema")
    region: str
    bucket: str
    copy_source_directory: str = Field(alias="copySourceDirectory")
    metadata_file: str = Field(alias="metadataFile")
    credentials: Credentials
    key_prefix: str = Field(default="", alias="keyPrefix")
    endpoint_url: str | None = Field(default=None, alias="endpointUrl")
    _base_dir: Path = PrivateAttr(default_factory=Path.cwd)

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    @property
    def source_path(self) -> Path:
        return (self.base_dir / self.copy_source_directory).resolve()

    @property
    def metadata_path(self) -> Path:
        return (self.base_dir / self.metadata_file).resolve()


class ObjectMetadata(BaseModel):
    """Per-key extras applied to uploads."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    cache_control: str | None = Field(default=None, alias="CacheControl")
    content_type: str | None = Field(default=None, alias="ContentType")
    website_redirect_location: str | None = Field(default=None, alias="WebsiteRedirectLocation")

    def put_kwargs(self) -> dict[str, str]:
        return self.model_dump(by_alias=True, exclude_none=True)


MetadataDocument = dict[str, ObjectMetadata | None]
_metadata_adapter: TypeAdapter[MetadataDocument] = TypeAdapter(MetadataDocument)


def _read_json(path: Path, what: str) -> Any:
    try:
        with path.open("r", encoding="utf-8") as fh:
            return json.load(fh)
    except OSError as exc:
        raise ConfigError(f"Cannot read {what} {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in {what} {path}: {exc}") from exc


def load_config(path: Path) -> BucketSyncConfig:
    path = path.resolve()
    data = _read_json(path, "config file")
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")

    try:
        config = BucketSyncConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Failed to validate config file {path}:\n{exc}") from exc

    config._base_dir = path.parent
    return config


def load_metadata(path: Path) -> MetadataDocument:
    data = _read_json(path, "metadata file")
    try:
        return _metadata_adapter.validate_python(data)
    except ValidationError as exc:
        raise ConfigError(f"Failed to validate metadata file {path}:\n{exc}") from exc


def dump_metadata(metadata: MetadataDocument) -> dict[str, Any]:
    return {
        key: None if value is None else value.put_kwargs()
        for key, value in metadata.items()
    }


def default_log_level() -> str:
    return os.getenv(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL).strip().upper() or DEFAULT_LOG_LEVEL
