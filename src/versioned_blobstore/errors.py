"""Custom exceptions for versioned-blobstore.

This module defines typed exceptions so callers can branch on the failure
kind without knowing which backend produced it.
"""


class BlobStoreError(RuntimeError):
    """Base class for all blob store errors."""
    pass


# Storage Errors
class StorageError(BlobStoreError):
    """Base class for backend storage errors."""
    pass


class NotFoundError(StorageError):
    """Identifier resolves to no live object."""

    def __init__(self, identifier: str, reason: str = ""):
        self.identifier = identifier
        message = f"No live object found for '{identifier}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)


# Name used by the surrounding repository framework
FileNotFound = NotFoundError


class BackendError(StorageError):
    """Backend failed for a reason other than a missing object."""
    pass


class PartialDeleteError(BackendError):
    """Batch delete removed some keys and failed on others."""

    def __init__(self, deleted, failed):
        self.deleted = list(deleted)
        self.failed = dict(failed)
        details = ", ".join(f"{key} ({reason})" for key, reason in self.failed.items())
        super().__init__(f"Could not delete {len(self.failed)} object(s): {details}")


# Identifier Errors
class InvalidVersionIdError(BlobStoreError, ValueError):
    """Version token after the delimiter is not a timestamp, reference or marker."""

    def __init__(self, raw: str, token: str):
        self.raw = raw
        self.token = token
        super().__init__(
            f"Invalid version token '{token}' in '{raw}'. "
            f"Expected epoch milliseconds, 'current', or '<millis>-deletionmarker'."
        )


# Integrity Errors
class IntegrityError(BlobStoreError):
    """Base class for data integrity errors."""
    pass


class ChecksumMismatchError(IntegrityError):
    """Uploaded content doesn't match the checksum of the written object.

    The written object is left in place; remediation is the caller's call.
    """

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(
            f"Checksum verification failed for {identifier}. "
            f"The object was written and has not been removed."
        )


# Configuration Errors
class ConfigError(BlobStoreError):
    """Base class for configuration errors."""
    pass


class InvalidProviderError(ConfigError):
    """Storage provider is unknown or missing required settings."""

    def __init__(self, provider: str, detail: str = ""):
        self.provider = provider
        message = f"Storage provider '{provider}' is not usable"
        if detail:
            message += f": {detail}"
        super().__init__(message)
