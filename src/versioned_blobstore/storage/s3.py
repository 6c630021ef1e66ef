"""S3-compatible object store (AWS S3, MinIO, SeaweedFS)."""

import io
import logging
from typing import List, Optional

from ..checksum import MULTIPART_PART_SIZE, MULTIPART_THRESHOLD
from ..errors import BackendError, NotFoundError, PartialDeleteError
from ..models import ObjectMetadata
from .base import Content, join_prefix, strip_prefix

logger = logging.getLogger(__name__)

# DeleteObjects accepts at most 1000 keys per request
_BATCH_LIMIT = 1000
_NOT_FOUND_CODES = {"404", "NoSuchKey", "NoSuchBucket", "NotFound"}


class S3ObjectStore:
    """
    S3 implementation.

    Objects are stored at prefix/<key> in one bucket. Credentials come from
    the boto3 credential chain unless given explicitly.

    Uploads at or above ``multipart_threshold`` go up in ``part_size`` parts,
    so reported ETags follow the rule MultipartEtagVerifier checks.
    """

    def __init__(
        self,
        bucket_name: str,
        prefix: str = "",
        region: str = "us-east-1",
        endpoint_url: Optional[str] = None,
        client=None,
        multipart_threshold: int = MULTIPART_THRESHOLD,
        part_size: int = MULTIPART_PART_SIZE,
    ):
        try:
            import boto3
            from boto3.s3.transfer import TransferConfig
            from botocore.config import Config
            from botocore.exceptions import BotoCoreError, ClientError
        except ImportError:
            raise ImportError(
                "boto3 required for S3 storage. Install with: pip install boto3"
            )
        self._client_error = ClientError
        self._errors = (ClientError, BotoCoreError)
        self._transfer_config = TransferConfig(
            multipart_threshold=multipart_threshold,
            multipart_chunksize=part_size,
        )

        self.bucket = bucket_name
        self.prefix = prefix.strip("/") if prefix else ""
        if client is None:
            kwargs: dict = {
                "config": Config(region_name=region, signature_version="s3v4"),
            }
            if endpoint_url:
                kwargs["endpoint_url"] = endpoint_url
            client = boto3.client("s3", **kwargs)
        self._client = client

    def _key(self, key: str) -> str:
        return join_prefix(self.prefix, key)

    def _translate(self, key: str, exc: Exception) -> Exception:
        if isinstance(exc, self._client_error):
            code = str(exc.response.get("Error", {}).get("Code", ""))
            if code in _NOT_FOUND_CODES:
                return NotFoundError(key)
        return BackendError(f"S3 operation failed for {key}: {exc}")

    def put(self, key: str, data: Content, content_type: Optional[str] = None) -> ObjectMetadata:
        if isinstance(data, (bytes, bytearray, memoryview)):
            body = io.BytesIO(bytes(data))
        else:
            body = data
            if hasattr(body, "seekable") and body.seekable():
                body.seek(0)
        extra_args = {"ContentType": content_type} if content_type else None
        try:
            self._client.upload_fileobj(
                body,
                self.bucket,
                self._key(key),
                ExtraArgs=extra_args,
                Config=self._transfer_config,
            )
        except self._errors as e:
            raise self._translate(key, e) from e
        logger.debug("Uploaded s3://%s/%s", self.bucket, self._key(key))
        return self.head(key)

    def get(self, key: str) -> bytes:
        try:
            response = self._client.get_object(Bucket=self.bucket, Key=self._key(key))
            return response["Body"].read()
        except self._errors as e:
            raise self._translate(key, e) from e

    def head(self, key: str) -> ObjectMetadata:
        try:
            response = self._client.head_object(Bucket=self.bucket, Key=self._key(key))
        except self._errors as e:
            raise self._translate(key, e) from e
        return ObjectMetadata(
            key=key,
            size=response.get("ContentLength", 0),
            etag=response.get("ETag"),
            last_modified=response["LastModified"],
            content_type=response.get("ContentType"),
        )

    def delete(self, key: str) -> None:
        try:
            self._client.delete_object(Bucket=self.bucket, Key=self._key(key))
        except self._errors as e:
            raise self._translate(key, e) from e

    def delete_many(self, keys: List[str]) -> List[str]:
        """
        Delete keys with DeleteObjects.

        Raises:
            PartialDeleteError: If S3 reported per-key errors
        """
        deleted = []
        failed = {}
        for start in range(0, len(keys), _BATCH_LIMIT):
            batch = keys[start:start + _BATCH_LIMIT]
            try:
                response = self._client.delete_objects(
                    Bucket=self.bucket,
                    Delete={"Objects": [{"Key": self._key(k)} for k in batch], "Quiet": False},
                )
            except self._errors as e:
                if deleted:
                    raise PartialDeleteError(deleted, {k: str(e) for k in keys[start:]}) from e
                raise BackendError(f"S3 batch delete failed: {e}") from e
            for item in response.get("Deleted", []):
                deleted.append(strip_prefix(self.prefix, item["Key"]))
            for item in response.get("Errors", []):
                failed[strip_prefix(self.prefix, item["Key"])] = item.get("Code") or item.get("Message", "")
        if failed:
            raise PartialDeleteError(deleted, failed)
        return deleted

    def list_by_prefix(self, prefix: str) -> List[str]:
        keys = []
        paginator = self._client.get_paginator("list_objects_v2")
        try:
            for page in paginator.paginate(Bucket=self.bucket, Prefix=self._key(prefix)):
                for obj in page.get("Contents", []):
                    keys.append(strip_prefix(self.prefix, obj["Key"]))
        except self._errors as e:
            raise self._translate(prefix, e) from e
        return keys

    def copy(self, src_key: str, dst_key: str) -> ObjectMetadata:
        try:
            self._client.copy_object(
                Bucket=self.bucket,
                Key=self._key(dst_key),
                CopySource={"Bucket": self.bucket, "Key": self._key(src_key)},
            )
        except self._errors as e:
            raise self._translate(src_key, e) from e
        logger.debug("Copied s3://%s/%s -> %s", self.bucket, self._key(src_key), self._key(dst_key))
        return self.head(dst_key)
