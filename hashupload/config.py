"""hashupload configuration, pydantic BaseSettings read from the environment.

Every variable is prefixed with ``HASHUPLOAD_`` and may also be placed in an
env file (``.env`` by default)::

    HASHUPLOAD_ENDPOINT=minio.local:9000
    HASHUPLOAD_ACCESS_KEY_ID=...
    HASHUPLOAD_SECRET_ACCESS_KEY=...
    HASHUPLOAD_BUCKET_NAME=backup
    HASHUPLOAD_DB_PATH=/var/lib/hashupload
    HASHUPLOAD_UPLOAD_PATH=/srv/photos
"""

import logging
from pathlib import Path
from typing import Annotated, Optional

from pydantic import Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigInvalid

logger = logging.getLogger(__name__)

ENV_PREFIX = "HASHUPLOAD_"
DEFAULT_ENV_FILE = ".env"


class Settings(BaseSettings):
    endpoint: Annotated[str, Field(min_length=1, description="Object store host[:port]")]
    access_key_id: Annotated[str, Field(min_length=1)]
    secret_access_key: SecretStr
    bucket_name: Annotated[str, Field(min_length=1)]
    db_path: Annotated[Path, Field(description="Directory holding the fingerprint index")]
    upload_path: Annotated[Path, Field(description="Directory tree to upload")]

    secure: Annotated[bool, Field(description="Use TLS to reach the object store")] = False
    upload_timeout: Annotated[
        Optional[float],
        Field(gt=0, description="Connect/read timeout in seconds for uploads; unbounded if unset"),
    ] = None

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX, env_file=DEFAULT_ENV_FILE, extra="ignore")

    @field_validator("secret_access_key")
    @classmethod
    def secret_not_empty(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value():
            raise ValueError("must not be empty")
        return value

    @field_validator("upload_path")
    @classmethod
    def upload_path_is_dir(cls, value: Path) -> Path:
        value = value.expanduser()
        if not value.is_dir():
            raise ValueError(f"{value} is not a directory")
        return value.resolve()


def load_settings(env_file=DEFAULT_ENV_FILE) -> Settings:
    """Read settings from the environment and `env_file`.

    Raises:
        ConfigInvalid: If a required field is missing or a value is invalid.
    """
    try:
        settings = Settings(_env_file=env_file)  # type: ignore[call-arg]
    except ValidationError as exc:
        problems = "; ".join(
            f"{ENV_PREFIX}{'.'.join(str(part) for part in error['loc']).upper()}: {error['msg']}"
            for error in exc.errors()
        )
        raise ConfigInvalid(f"invalid configuration: {problems}") from exc
    logger.info("config: %r", settings)
    return settings
