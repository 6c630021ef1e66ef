"""Versioned blob storage over flat object stores."""

from pathlib import Path
from typing import Optional

from .checksum import ChecksumVerifier, MultipartEtagVerifier, Sha256Verifier
from .config import StoreConfig, load_store_config
from .constants import CONFIG_FILE, PACKAGE_VERSION
from .errors import (
    BlobStoreError,
    ChecksumMismatchError,
    ConfigError,
    FileNotFound,
    IntegrityError,
    InvalidVersionIdError,
    NotFoundError,
    PartialDeleteError,
)
from .handle import StoredObjectHandle
from .storage import make_object_store, make_verifier
from .version_id import CurrentReference, Timestamp, Tombstone, VersionClock, VersionId
from .versioned import VersionedBlobStore

__version__ = PACKAGE_VERSION


def make_versioned_store(config: Optional[StoreConfig] = None, environ=None) -> VersionedBlobStore:
    """Build a VersionedBlobStore with backend and verifier from ``config``."""
    config = config or StoreConfig()
    return VersionedBlobStore(
        make_object_store(config, environ),
        verifier=make_verifier(config),
        identifier_prefix=config.identifier_prefix,
    )


def open_store(path: Optional[Path] = None) -> VersionedBlobStore:
    """Build a VersionedBlobStore from a YAML config file plus environment.

    Defaults to blobstore.yaml in the working directory.
    """
    return make_versioned_store(load_store_config(path or Path.cwd() / CONFIG_FILE))


__all__ = [
    "BlobStoreError",
    "ChecksumMismatchError",
    "ChecksumVerifier",
    "ConfigError",
    "CurrentReference",
    "FileNotFound",
    "IntegrityError",
    "InvalidVersionIdError",
    "MultipartEtagVerifier",
    "NotFoundError",
    "PartialDeleteError",
    "Sha256Verifier",
    "StoreConfig",
    "StoredObjectHandle",
    "Timestamp",
    "Tombstone",
    "VersionClock",
    "VersionId",
    "VersionedBlobStore",
    "load_store_config",
    "make_versioned_store",
    "open_store",
]
