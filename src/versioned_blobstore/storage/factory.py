"""Factory for creating object stores and versioned stores from configuration."""

import os
from pathlib import Path
from typing import Optional

from ..checksum import ChecksumVerifier, MultipartEtagVerifier, Sha256Verifier
from ..config import StoreConfig
from ..constants import AZURE_CONNECTION_STRING_ENV
from ..errors import InvalidProviderError
from .base import ObjectStore
from .fs import FilesystemObjectStore
from .memory import InMemoryObjectStore


def validate_azure_config(config: StoreConfig, environ=None) -> str:
    """
    Early validation of Azure configuration.

    Returns:
        The connection string

    Raises:
        InvalidProviderError: If configuration is incomplete
    """
    environ = os.environ if environ is None else environ
    if not config.container:
        raise InvalidProviderError("azure", "storage.container required for Azure blob storage")
    if AZURE_CONNECTION_STRING_ENV not in environ:
        raise InvalidProviderError(
            "azure",
            f"Set {AZURE_CONNECTION_STRING_ENV} and storage.container for Azure blob storage",
        )
    return environ[AZURE_CONNECTION_STRING_ENV]


def make_object_store(config: StoreConfig, environ=None) -> ObjectStore:
    """
    Create the backend object store described by ``config``.

    Raises:
        InvalidProviderError: If configuration is invalid
    """
    if config.provider == "memory":
        return InMemoryObjectStore()

    elif config.provider == "fs":
        return FilesystemObjectStore(Path(config.container) if config.container else None)

    elif config.provider == "azure":
        conn_str = validate_azure_config(config, environ)
        from .azure import AzureObjectStore
        return AzureObjectStore(conn_str, config.container, config.prefix)

    elif config.provider == "s3":
        from .s3 import S3ObjectStore
        return S3ObjectStore(
            config.container,
            prefix=config.prefix,
            region=config.region,
            endpoint_url=config.endpoint_url,
        )

    raise InvalidProviderError(config.provider, "not supported")


def make_verifier(config: StoreConfig) -> Optional[ChecksumVerifier]:
    """Checksum verifier named by ``config.verifier``, or None."""
    if config.verifier == "sha256":
        return Sha256Verifier()
    if config.verifier == "etag":
        return MultipartEtagVerifier()
    return None
