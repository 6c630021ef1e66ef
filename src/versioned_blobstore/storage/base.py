"""Base protocol for flat key-value object stores."""

from typing import BinaryIO, List, Optional, Protocol, Union

from ..models import ObjectMetadata

Content = Union[bytes, BinaryIO]


class ObjectStore(Protocol):
    """
    Protocol for the object stores the versioned layer is built on.

    Keys are logical: any storage-level prefix is applied on the way in and
    stripped on the way out. Missing objects raise NotFoundError regardless
    of backend; no operation retries.
    """

    def put(self, key: str, data: Content, content_type: Optional[str] = None) -> ObjectMetadata:
        """
        Write an object, replacing any existing object at ``key``.

        Args:
            key: Logical object key
            data: Bytes or a binary file object
            content_type: Optional media type to record

        Returns:
            Metadata of the written object
        """
        ...

    def get(self, key: str) -> bytes:
        """
        Read an object's content.

        Raises:
            NotFoundError: If no object exists at ``key``
        """
        ...

    def head(self, key: str) -> ObjectMetadata:
        """
        Read an object's metadata without fetching content.

        Raises:
            NotFoundError: If no object exists at ``key``
        """
        ...

    def delete(self, key: str) -> None:
        """Delete an object. Deleting a missing key is a no-op."""
        ...

    def delete_many(self, keys: List[str]) -> List[str]:
        """
        Delete several objects in as few requests as the backend allows.

        Returns:
            Keys that were deleted

        Raises:
            PartialDeleteError: If some keys could not be deleted
        """
        ...

    def list_by_prefix(self, prefix: str) -> List[str]:
        """
        List logical keys starting with ``prefix``.

        Prefix matching is plain string matching, so ``a/b`` also matches
        ``a/bc``; callers filter.
        """
        ...

    def copy(self, src_key: str, dst_key: str) -> ObjectMetadata:
        """
        Server-side copy, preserving content.

        Raises:
            NotFoundError: If ``src_key`` does not exist
        """
        ...


def read_content(data: Content) -> bytes:
    """Materialize bytes from ``data``, reading file objects from the start if seekable."""
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    if hasattr(data, "seekable") and data.seekable():
        data.seek(0)
    return data.read()


def join_prefix(prefix: str, key: str) -> str:
    """Apply a storage-level prefix: ``prefix/key``."""
    return f"{prefix}/{key}" if prefix else key


def strip_prefix(prefix: str, key: str) -> str:
    """Inverse of join_prefix."""
    if prefix and key.startswith(prefix + "/"):
        return key[len(prefix) + 1:]
    return key
