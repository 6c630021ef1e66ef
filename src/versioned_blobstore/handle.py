"""Handles to stored object versions with lazily fetched content."""

import io
from datetime import datetime
from typing import Callable, Iterator, Optional

from .version_id import VersionId


class StoredObjectHandle:
    """
    Read-only handle to one stored object.

    The content is not fetched from the backend until the first read:
    ``opener`` runs exactly once, on first access to the stream.

    Attributes:
        id: Caller-facing identifier of the object
        etag: Provider content tag
        size: Object size in bytes
        last_modified: Backend modification time (UTC)
    """

    def __init__(
        self,
        id: VersionId,
        opener: Callable[[], bytes],
        etag: Optional[str] = None,
        size: int = 0,
        last_modified: Optional[datetime] = None,
    ):
        self.id = id
        self.etag = etag
        self.size = size
        self.last_modified = last_modified
        self._opener = opener
        self._stream: Optional[io.BytesIO] = None

    def __repr__(self) -> str:
        return f"StoredObjectHandle(id={str(self.id)!r}, size={self.size}, etag={self.etag!r})"

    @property
    def version_id(self) -> VersionId:
        return self.id

    @property
    def is_open(self) -> bool:
        """Whether the content has been fetched."""
        return self._stream is not None

    @property
    def stream(self) -> io.BytesIO:
        """Content stream, fetched on first access."""
        if self._stream is None:
            self._stream = io.BytesIO(self._opener())
        return self._stream

    def read(self, size: int = -1) -> bytes:
        return self.stream.read(size)

    def rewind(self) -> None:
        self.stream.seek(0)

    def iter_chunks(self, chunk_size: int = 16 * 1024) -> Iterator[bytes]:
        """Yield the content from the start in ``chunk_size`` pieces."""
        self.rewind()
        for chunk in iter(lambda: self.stream.read(chunk_size), b""):
            yield chunk

    def close(self) -> None:
        if self._stream is not None:
            self._stream.close()
            self._stream = None

    def __enter__(self) -> "StoredObjectHandle":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
