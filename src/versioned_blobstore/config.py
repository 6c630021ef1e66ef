"""Store configuration.

Configuration comes from an optional YAML file with a ``storage:`` section,
overridden by ``VERSIONED_BLOBSTORE_*`` environment variables. Cloud
credentials never live in the file: Azure reads
``AZURE_STORAGE_CONNECTION_STRING`` and S3 uses the boto3 credential chain.
"""

import logging
import os
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, ValidationError, model_validator

from .constants import ENV_PREFIX
from .errors import ConfigError, InvalidProviderError

logger = logging.getLogger(__name__)

# Settings that may be overridden from the environment
_ENV_FIELDS = ("provider", "container", "prefix", "identifier_prefix", "verifier", "region", "endpoint_url")


class StoreConfig(BaseModel):
    """
    Configuration for one versioned store.

    Providers:
    - "memory": in-process dict, for tests
    - "fs": local directory (container = directory path, optional)
    - "azure": Azure Blob Storage (container required)
    - "s3": S3-compatible bucket (container = bucket, required)
    """
    provider: Literal["memory", "fs", "azure", "s3"] = "memory"
    container: str = ""             # Bucket/container name or fs path
    prefix: str = ""                # Storage-level key prefix
    identifier_prefix: str = ""     # Deployment prefix before the scheme
    verifier: Literal["none", "sha256", "etag"] = "none"
    region: str = "us-east-1"       # S3 only
    endpoint_url: Optional[str] = None  # S3-compatible endpoints (MinIO etc.)

    @model_validator(mode="after")
    def validate_container(self):
        """Cloud providers need somewhere to put objects."""
        if self.provider in ("azure", "s3") and not self.container:
            raise InvalidProviderError(self.provider, "storage.container is required")
        return self


def _env_overrides(environ) -> dict:
    overrides = {}
    for name in _ENV_FIELDS:
        value = environ.get(f"{ENV_PREFIX}{name.upper()}")
        if value is not None:
            overrides[name] = value
    return overrides


def load_store_config(path: Optional[Path] = None, environ=None) -> StoreConfig:
    """
    Load store configuration from YAML plus environment overrides.

    Args:
        path: YAML file; a missing file means defaults
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Validated StoreConfig

    Raises:
        ConfigError: If the file is malformed or values are invalid
    """
    environ = os.environ if environ is None else environ
    data: dict = {}
    if path is not None and Path(path).exists():
        try:
            loaded = yaml.safe_load(Path(path).read_text()) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
        if not isinstance(loaded, dict):
            raise ConfigError(f"Expected a mapping in {path}")
        data = dict(loaded.get("storage", loaded))
    elif path is not None:
        logger.debug("No config file at %s, using defaults", path)

    data.update(_env_overrides(environ))
    try:
        return StoreConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid storage configuration: {e}") from e
