"""Checksum verification for uploaded content.

A verifier compares the content a caller uploaded with what the backend
reports for the written object. The versioned store calls it once per
upload when one is configured.
"""

import hashlib
import io
from typing import BinaryIO, Protocol, Union

from .handle import StoredObjectHandle

_CHUNK = 16 * 1024

# S3 multipart upload rule: objects at or above the threshold go up in parts
MULTIPART_THRESHOLD = 15 * 1024 * 1024
MULTIPART_PART_SIZE = 5 * 1024 * 1024


class ChecksumVerifier(Protocol):
    """Capability: does ``content`` match the stored object?"""

    def verify(self, content: Union[bytes, BinaryIO], stored: StoredObjectHandle) -> bool:
        ...


def _as_stream(content: Union[bytes, BinaryIO]) -> BinaryIO:
    if isinstance(content, (bytes, bytearray, memoryview)):
        return io.BytesIO(bytes(content))
    content.seek(0)
    return content


def digest_stream(stream: BinaryIO, algorithm: str = "sha256") -> str:
    """Hex digest of a stream, read from the start in chunks."""
    h = hashlib.new(algorithm)
    stream.seek(0)
    for chunk in iter(lambda: stream.read(_CHUNK), b""):
        h.update(chunk)
    return h.hexdigest()


class Sha256Verifier:
    """
    Compare SHA-256 of the uploaded content with SHA-256 of the stored bytes.

    Works with any backend, at the cost of reading the object back.
    """

    def verify(self, content: Union[bytes, BinaryIO], stored: StoredObjectHandle) -> bool:
        expected = digest_stream(_as_stream(content))
        actual = digest_stream(stored.stream)
        stored.rewind()
        return expected == actual


class MultipartEtagVerifier:
    """
    Compare the content's S3-style ETag with the ETag the backend reports.

    Content below ``threshold`` is expected to carry the plain MD5 hex.
    Larger content is expected to carry the multipart form: MD5 over the
    concatenated binary MD5s of each ``part_size`` chunk, then ``-<parts>``.
    Without a reported ETag the stored bytes are read back and hashed.
    """

    def __init__(self, threshold: int = MULTIPART_THRESHOLD, part_size: int = MULTIPART_PART_SIZE):
        self.threshold = threshold
        self.part_size = part_size

    def checksum_for(self, stream: BinaryIO) -> str:
        stream.seek(0, io.SEEK_END)
        size = stream.tell()
        stream.seek(0)
        if size < self.threshold:
            return digest_stream(stream, "md5")
        return self.multipart_checksum(stream)

    def multipart_checksum(self, stream: BinaryIO) -> str:
        """
        S3 multipart ETag for a stream.

        Example:
            Two 5 MiB parts give "md5(md5(part1) + md5(part2))-2".
        """
        stream.seek(0)
        digests = []
        for chunk in iter(lambda: stream.read(self.part_size), b""):
            digests.append(hashlib.md5(chunk).digest())
        return f"{hashlib.md5(b''.join(digests)).hexdigest()}-{len(digests)}"

    def verify(self, content: Union[bytes, BinaryIO], stored: StoredObjectHandle) -> bool:
        expected = self.checksum_for(_as_stream(content))
        if stored.etag:
            return expected == stored.etag
        actual = self.checksum_for(stored.stream)
        stored.rewind()
        return expected == actual


def s3_etag(payload: bytes, threshold: int = MULTIPART_THRESHOLD, part_size: int = MULTIPART_PART_SIZE) -> str:
    """ETag S3 reports for ``payload`` uploaded with the given multipart rule."""
    return MultipartEtagVerifier(threshold, part_size).checksum_for(io.BytesIO(payload))
