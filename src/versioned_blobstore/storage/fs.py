"""Filesystem object store.

Each logical key maps to a file under the store root, so ``r1/u1_v-1000``
lives at ``<root>/r1/u1_v-1000``. Writes go to a temp file in the target
directory and are promoted with ``os.replace`` under a per-key lock, so
readers never see partial content and concurrent writers to one key
serialize.
"""

from __future__ import annotations

import contextlib
import hashlib
import logging
import os
import shutil
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import platformdirs
import portalocker

from ..errors import NotFoundError
from ..models import ObjectMetadata
from .base import Content

logger = logging.getLogger(__name__)

_LOCK_DIR = ".locks"
_TMP_PREFIX = ".tmp-"
_LOCK_TIMEOUT = 60


def default_root() -> Path:
    """Platform-appropriate data directory for the filesystem store."""
    return Path(platformdirs.user_data_dir("versioned-blobstore", "versioned-blobstore")) / "objects"


class FilesystemObjectStore:
    """
    Local filesystem store for development and tests (no cloud dependency).

    ETags are derived from size and mtime, so they change on every write
    but are not content digests.
    """

    def __init__(self, base_dir: Optional[Path] = None):
        """
        Initialize filesystem store.

        Args:
            base_dir: Root directory; defaults to the user data directory
        """
        self.base_dir = Path(base_dir) if base_dir else default_root()
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self._lock_dir = self.base_dir / _LOCK_DIR
        self._lock_dir.mkdir(exist_ok=True)

    def _path_for(self, key: str) -> Path:
        """
        Resolve a key to a path under the root.

        Raises:
            ValueError: If the key escapes the root or names internal files
        """
        if not key or key.startswith("/") or _LOCK_DIR in key.split("/"):
            raise ValueError(f"Invalid object key: {key!r}")
        root = self.base_dir.resolve()
        candidate = (self.base_dir / key).resolve()
        try:
            candidate.relative_to(root)
        except ValueError:
            raise ValueError(f"Object key escapes store root: {key!r}") from None
        return candidate

    def _lock_for(self, key: str) -> portalocker.Lock:
        name = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return portalocker.Lock(str(self._lock_dir / f"{name}.lock"), "w", timeout=_LOCK_TIMEOUT)

    def _metadata(self, key: str, path: Path) -> ObjectMetadata:
        try:
            st = path.stat()
        except FileNotFoundError:
            raise NotFoundError(key) from None
        if not path.is_file():
            raise NotFoundError(key, "not a file")
        return ObjectMetadata(
            key=key,
            size=st.st_size,
            etag=f"{st.st_mtime_ns:x}-{st.st_size:x}",
            last_modified=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
        )

    def _write_atomic(self, dest: Path, write) -> None:
        dest.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(prefix=_TMP_PREFIX, dir=str(dest.parent), delete=False) as tmp:
            tmppath = Path(tmp.name)
            try:
                write(tmp)
                tmp.flush()
                os.fsync(tmp.fileno())
            except Exception:
                tmp.close()
                with contextlib.suppress(OSError):
                    tmppath.unlink()
                raise
        os.replace(str(tmppath), str(dest))

    def put(self, key: str, data: Content, content_type: Optional[str] = None) -> ObjectMetadata:
        dest = self._path_for(key)

        def write(f):
            if isinstance(data, (bytes, bytearray, memoryview)):
                f.write(data)
            else:
                if hasattr(data, "seekable") and data.seekable():
                    data.seek(0)
                shutil.copyfileobj(data, f)

        with self._lock_for(key):
            self._write_atomic(dest, write)
        logger.debug("Wrote %s", dest)
        return self._metadata(key, dest)

    def get(self, key: str) -> bytes:
        path = self._path_for(key)
        try:
            return path.read_bytes()
        except (FileNotFoundError, IsADirectoryError):
            raise NotFoundError(key) from None

    def head(self, key: str) -> ObjectMetadata:
        return self._metadata(key, self._path_for(key))

    def delete(self, key: str) -> None:
        path = self._path_for(key)
        with self._lock_for(key):
            with contextlib.suppress(FileNotFoundError):
                path.unlink()

    def delete_many(self, keys: List[str]) -> List[str]:
        deleted = []
        for key in keys:
            path = self._path_for(key)
            with self._lock_for(key):
                try:
                    path.unlink()
                except FileNotFoundError:
                    continue
            deleted.append(key)
        return deleted

    def list_by_prefix(self, prefix: str) -> List[str]:
        """List keys under ``prefix``, walking only its deepest directory."""
        parent = prefix.rpartition("/")[0]
        start = self.base_dir / parent if parent else self.base_dir
        if parent:
            try:
                self._path_for(parent)
            except ValueError:
                return []
        if not start.is_dir():
            return []
        keys = []
        for path in start.rglob("*"):
            rel = path.relative_to(self.base_dir)
            if rel.parts[0] == _LOCK_DIR or rel.name.startswith(_TMP_PREFIX) or not path.is_file():
                continue
            key = rel.as_posix()
            if key.startswith(prefix):
                keys.append(key)
        return sorted(keys)

    def copy(self, src_key: str, dst_key: str) -> ObjectMetadata:
        src = self._path_for(src_key)
        dest = self._path_for(dst_key)
        if not src.is_file():
            raise NotFoundError(src_key)

        def write(f):
            with open(src, "rb") as s:
                shutil.copyfileobj(s, f)

        with self._lock_for(dst_key):
            self._write_atomic(dest, write)
        logger.debug("Copied %s -> %s", src, dest)
        return self._metadata(dst_key, dest)
