"""In-memory object store for development and testing."""

from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from ..checksum import MULTIPART_PART_SIZE, MULTIPART_THRESHOLD, s3_etag
from ..errors import NotFoundError
from ..models import ObjectMetadata, utc_now
from .base import Content, read_content


class InMemoryObjectStore:
    """
    Dict-based object store.

    ETags follow S3: the MD5 hex below ``multipart_threshold``, the
    multipart form ``<md5 of part md5s>-<parts>`` at or above it.
    ``clock`` supplies modification times so tests can pin them.
    """

    def __init__(
        self,
        clock: Optional[Callable[[], datetime]] = None,
        multipart_threshold: int = MULTIPART_THRESHOLD,
        part_size: int = MULTIPART_PART_SIZE,
    ):
        self._clock = clock or utc_now
        self.multipart_threshold = multipart_threshold
        self.part_size = part_size
        self._objects: Dict[str, Tuple[bytes, ObjectMetadata]] = {}

    def __len__(self) -> int:
        return len(self._objects)

    def __contains__(self, key: str) -> bool:
        return key in self._objects

    def put(self, key: str, data: Content, content_type: Optional[str] = None) -> ObjectMetadata:
        payload = read_content(data)
        meta = ObjectMetadata(
            key=key,
            size=len(payload),
            etag=s3_etag(payload, self.multipart_threshold, self.part_size),
            last_modified=self._clock(),
            content_type=content_type,
        )
        self._objects[key] = (payload, meta)
        return meta

    def get(self, key: str) -> bytes:
        try:
            return self._objects[key][0]
        except KeyError:
            raise NotFoundError(key) from None

    def head(self, key: str) -> ObjectMetadata:
        try:
            return self._objects[key][1]
        except KeyError:
            raise NotFoundError(key) from None

    def delete(self, key: str) -> None:
        self._objects.pop(key, None)

    def delete_many(self, keys: List[str]) -> List[str]:
        deleted = []
        for key in keys:
            if self._objects.pop(key, None) is not None:
                deleted.append(key)
        return deleted

    def list_by_prefix(self, prefix: str) -> List[str]:
        return sorted(key for key in self._objects if key.startswith(prefix))

    def copy(self, src_key: str, dst_key: str) -> ObjectMetadata:
        try:
            payload, meta = self._objects[src_key]
        except KeyError:
            raise NotFoundError(src_key) from None
        return self.put(dst_key, payload, content_type=meta.content_type)
