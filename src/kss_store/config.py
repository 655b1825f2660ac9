"""Backend selection and per-backend options.

A store is described by a ``StoreConfig``: the backend type identifier plus a
free-form options mapping. Each adapter parses the mapping into its own option
model; keys it does not recognise are kept on the model (``model_extra``)
rather than rejected.

Option names follow the camelCase spelling used in configuration files
(``connectionString``, ``dbName``); the snake_case field names are accepted too.
"""

from enum import Enum
from pathlib import Path
from typing import Any, Mapping, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from kss_store.errors import ConfigurationError

OptionsT = TypeVar("OptionsT", bound="StoreOptions")


class StorageType(str, Enum):
    """Backend identifiers understood by the facade."""

    LOCAL_STORAGE = "localStorage"
    SESSION_STORAGE = "sessionStorage"
    INDEXED_DB = "IndexedDB"
    MONGODB = "MongoDB"
    SQLITE = "SQLite"
    FILE_SYSTEM = "FileSystem"
    MYSQL = "MySQL"
    POSTGRESQL = "PostgreSQL"
    REDIS = "Redis"


WEB_STORAGE_TYPES = frozenset({StorageType.LOCAL_STORAGE.value, StorageType.SESSION_STORAGE.value})


class StoreOptions(BaseModel):
    """Options shared by every backend."""

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    prefix: str = ""

    @classmethod
    def parse(cls: type[OptionsT], options: "Mapping[str, Any] | StoreOptions | None") -> OptionsT:
        """Build options from a mapping or another options model.

        Raises:
            ConfigurationError: If an option has an invalid value
        """
        if isinstance(options, cls):
            return options
        if isinstance(options, StoreOptions):
            data = options.model_dump(by_alias=True)
        else:
            data = dict(options or {})
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid {cls.__name__}: {e}", cause=e) from e


class WebStorageOptions(StoreOptions):
    storage_type: StorageType = Field(default=StorageType.LOCAL_STORAGE, alias="storageType")


class FileSystemOptions(StoreOptions):
    path: Path | None = Field(
        default=None,
        description="Root directory; defaults to .kss-store under the working directory",
    )


class MongoDBOptions(StoreOptions):
    """MongoDB options.

    ``connection_string`` and ``database`` are required, but are checked by the
    store itself so the failure is a ``ConfigurationError`` with a readable
    message instead of a validation dump.
    """

    connection_string: str | None = Field(default=None, alias="connectionString")
    database: str | None = None
    collection: str | None = None


class IndexedDBOptions(StoreOptions):
    db_name: str = Field(default="kss-store", alias="dbName")
    store_name: str = Field(default="kss-data", alias="storeName")
    version: int = Field(default=1, ge=1)
    location: str | Path | None = Field(
        default=None,
        description="Directory holding database files, or ':memory:'",
    )


class StoreConfig(BaseModel):
    """Which backend to use and how to configure it.

    ``type`` is a plain string on purpose: an identifier with no registered
    implementation is reported when the store is first used.
    """

    model_config = ConfigDict(frozen=True)

    type: str
    options: dict[str, Any] = Field(default_factory=dict)

    @field_validator("type", mode="before")
    @classmethod
    def _type_value(cls, value: Any) -> Any:
        return value.value if isinstance(value, StorageType) else value


class StoreSettings(BaseSettings):
    """Store configuration loaded from the environment.

    Example:
        ```bash
        export KSS_STORE_TYPE=FileSystem
        export KSS_STORE_OPTIONS='{"path": "/var/lib/app/store"}'
        ```

        ```python
        config = StoreSettings().to_config()
        ```
    """

    type: str = Field(default=StorageType.LOCAL_STORAGE.value, description="Backend identifier")
    options: dict[str, Any] = Field(
        default_factory=dict,
        description="Backend options as a JSON object",
    )

    model_config = SettingsConfigDict(
        env_prefix="KSS_STORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def to_config(self) -> StoreConfig:
        return StoreConfig(type=self.type, options=self.options)
