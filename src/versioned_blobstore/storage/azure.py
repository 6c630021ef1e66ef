"""Azure blob storage implementation."""

import logging
import time
from typing import List, Optional

from ..errors import BackendError, NotFoundError, PartialDeleteError
from ..models import ObjectMetadata
from .base import Content, join_prefix, strip_prefix

logger = logging.getLogger(__name__)

# Azure batch delete accepts at most 256 blobs per request
_BATCH_LIMIT = 256
_COPY_POLL_SECONDS = 0.5


class AzureObjectStore:
    """
    Azure Blob Storage implementation.

    Objects are stored at prefix/<key> in one container.
    """

    def __init__(self, connection_string: str, container: str, prefix: str = "", client=None):
        """
        Initialize Azure object store.

        Args:
            connection_string: Azure Storage connection string
            container: Container name
            prefix: Optional storage-level key prefix
            client: Pre-built BlobServiceClient (used instead of the connection string)
        """
        try:
            from azure.core.exceptions import AzureError, ResourceNotFoundError
            from azure.storage.blob import BlobServiceClient, ContentSettings
        except ImportError:
            raise ImportError(
                "azure-storage-blob required for Azure blob storage. "
                "Install with: pip install azure-storage-blob"
            )
        self._not_found = ResourceNotFoundError
        self._azure_error = AzureError
        self._content_settings = ContentSettings

        self.client = client or BlobServiceClient.from_connection_string(connection_string)
        self.container = container
        self.prefix = prefix.strip("/") if prefix else ""

        # Ensure container exists
        self.container_client = self.client.get_container_client(container)
        if not self.container_client.exists():
            self.container_client.create_container()

    def _blob(self, key: str):
        return self.container_client.get_blob_client(join_prefix(self.prefix, key))

    def _translate(self, key: str, exc: Exception) -> Exception:
        """Map SDK errors onto the package's error types."""
        if isinstance(exc, self._not_found):
            return NotFoundError(key)
        return BackendError(f"Azure operation failed for {key}: {exc}")

    def _metadata(self, key: str, props) -> ObjectMetadata:
        settings = props.get("content_settings") or {}
        return ObjectMetadata(
            key=key,
            size=props.get("size") or 0,
            etag=props.get("etag"),
            last_modified=props.get("last_modified"),
            content_type=settings.get("content_type") if settings else None,
        )

    def put(self, key: str, data: Content, content_type: Optional[str] = None) -> ObjectMetadata:
        blob_client = self._blob(key)
        kwargs = {}
        if content_type:
            kwargs["content_settings"] = self._content_settings(content_type=content_type)
        if hasattr(data, "seekable") and data.seekable():
            data.seek(0)
        try:
            blob_client.upload_blob(data, overwrite=True, **kwargs)
            props = blob_client.get_blob_properties()
        except self._azure_error as e:
            raise self._translate(key, e) from e
        logger.debug("Uploaded azure://%s/%s", self.container, blob_client.blob_name)
        return self._metadata(key, props)

    def get(self, key: str) -> bytes:
        try:
            return self._blob(key).download_blob().readall()
        except self._azure_error as e:
            raise self._translate(key, e) from e

    def head(self, key: str) -> ObjectMetadata:
        try:
            props = self._blob(key).get_blob_properties()
        except self._azure_error as e:
            raise self._translate(key, e) from e
        return self._metadata(key, props)

    def delete(self, key: str) -> None:
        try:
            self._blob(key).delete_blob()
        except self._not_found:
            pass
        except self._azure_error as e:
            raise self._translate(key, e) from e

    def delete_many(self, keys: List[str]) -> List[str]:
        """
        Delete keys with blob batch requests. Blobs already gone count as deleted.

        Raises:
            PartialDeleteError: If any sub-request failed
        """
        deleted = []
        failed = {}
        for start in range(0, len(keys), _BATCH_LIMIT):
            batch = keys[start:start + _BATCH_LIMIT]
            names = [join_prefix(self.prefix, key) for key in batch]
            try:
                responses = self.container_client.delete_blobs(*names, raise_on_any_failure=False)
            except self._azure_error as e:
                if deleted:
                    raise PartialDeleteError(deleted, {k: str(e) for k in keys[start:]}) from e
                raise BackendError(f"Azure batch delete failed: {e}") from e
            for key, response in zip(batch, responses):
                if response.status_code in (200, 202, 404):
                    deleted.append(key)
                else:
                    failed[key] = f"HTTP {response.status_code}"
        if failed:
            raise PartialDeleteError(deleted, failed)
        return deleted

    def list_by_prefix(self, prefix: str) -> List[str]:
        storage_prefix = join_prefix(self.prefix, prefix)
        try:
            names = [b.name for b in self.container_client.list_blobs(name_starts_with=storage_prefix)]
        except self._azure_error as e:
            raise self._translate(prefix, e) from e
        return [strip_prefix(self.prefix, name) for name in names]

    def copy(self, src_key: str, dst_key: str) -> ObjectMetadata:
        src = self._blob(src_key)
        dst = self._blob(dst_key)
        try:
            src.get_blob_properties()
            dst.start_copy_from_url(src.url)
            props = dst.get_blob_properties()
            # Same-account copies usually finish immediately
            while props.copy.status == "pending":
                time.sleep(_COPY_POLL_SECONDS)
                props = dst.get_blob_properties()
        except self._azure_error as e:
            raise self._translate(src_key, e) from e
        if props.copy.status != "success":
            raise BackendError(
                f"Azure copy {src_key} -> {dst_key} ended with status {props.copy.status}"
            )
        logger.debug("Copied azure://%s/%s -> %s", self.container, src.blob_name, dst.blob_name)
        return self._metadata(dst_key, props)
