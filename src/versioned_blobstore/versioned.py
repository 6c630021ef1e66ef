"""Versioned blob storage on top of a flat object store.

Every version of a logical object is an independent object keyed
``<base>_v-<millis>``. "Current" is never stored: it is the newest live key
under the base at query time. Deleting a version replaces it with an empty
``<base>_v-<millis>-deletionmarker`` object so listings keep the history.

Objects written before versioning live at the bare ``<base>`` key. They
keep resolving through ``find_by`` and are moved to ``<base>_v-<mtime>``
the first time a new version is uploaded for that base.

The store holds no mutable state of its own beyond the version clock;
every operation is a short sequence of backend calls with no locking
across them.
"""

import logging
import uuid
from typing import Callable, List, Optional, Tuple

from .checksum import ChecksumVerifier
from .constants import IDENTIFIER_PREFIX_SEPARATOR, PROTOCOL, SUPPORTED_FEATURES
from .errors import ChecksumMismatchError, NotFoundError, PartialDeleteError
from .handle import StoredObjectHandle
from .models import ObjectMetadata
from .storage.base import Content, ObjectStore
from .version_id import VersionClock, VersionId, newest_first

logger = logging.getLogger(__name__)


def generate_base_id(resource, original_filename: Optional[str] = None) -> str:
    """Fresh base identifier ``<resource id>/<uuid>``; the filename is not used."""
    resource_id = getattr(resource, "id", resource)
    return f"{resource_id}/{uuid.uuid4()}"


class VersionedBlobStore:
    """
    Store, resolve, enumerate and delete versions of binary objects.

    Args:
        backend: Object store holding all state
        verifier: Optional checksum capability run after every upload
        identifier_prefix: Deployment prefix; identifiers become
            ``<prefix>-shrine://<key>``
        clock: Source of version timestamps
        id_generator: Builds base identifiers for first uploads
    """

    def __init__(
        self,
        backend: ObjectStore,
        verifier: Optional[ChecksumVerifier] = None,
        identifier_prefix: str = "",
        clock: Optional[VersionClock] = None,
        id_generator: Callable[..., str] = generate_base_id,
    ):
        self.backend = backend
        self.verifier = verifier
        self.identifier_prefix = identifier_prefix
        self.id_generator = id_generator
        self._clock = clock or VersionClock()

    @property
    def scheme(self) -> str:
        if self.identifier_prefix:
            return f"{self.identifier_prefix}{IDENTIFIER_PREFIX_SEPARATOR}{PROTOCOL}"
        return PROTOCOL

    # ---- Capabilities ----------------------------------------------------

    def handles(self, id) -> bool:
        """True if ``id`` carries this store's scheme and prefix."""
        return str(id).startswith(self.scheme)

    def supports(self, feature: str) -> bool:
        """Report ``versions`` and ``version_deletion`` as supported."""
        return feature in SUPPORTED_FEATURES

    def parse(self, id) -> VersionId:
        """Parse a caller identifier (with or without scheme)."""
        return VersionId.parse(id, scheme=self.scheme)

    # ---- Upload ----------------------------------------------------------

    def upload(
        self,
        content: Content,
        original_filename: Optional[str],
        resource,
        content_type: Optional[str] = None,
    ) -> StoredObjectHandle:
        """
        Store the first version of a new object.

        Args:
            content: Bytes or binary file object
            original_filename: Display name, not used in the key
            resource: Owning resource (its ``id`` seeds the base identifier)
            content_type: Optional media type

        Returns:
            Handle to the written version; content is not fetched

        Raises:
            ChecksumMismatchError: Verification failed (object stays written)
        """
        base = VersionId(self.id_generator(resource, original_filename), None, self.scheme)
        version = base.new_version(at=self._clock.next())
        return self._write(version, content, content_type)

    def upload_version(
        self,
        id,
        content: Content,
        content_type: Optional[str] = None,
    ) -> StoredObjectHandle:
        """
        Add a new version under the base of ``id``.

        A legacy unversioned object at the bare base key is migrated first.

        Raises:
            ChecksumMismatchError: Verification failed (object stays written)
        """
        base = self.parse(id).base_identifier()
        migrated = self.migrate_legacy_object(base)
        after = migrated.timestamp.millis if migrated is not None else None
        version = base.new_version(at=self._clock.next(after=after))
        return self._write(version, content, content_type)

    def _write(self, version: VersionId, content: Content, content_type: Optional[str]) -> StoredObjectHandle:
        if self.verifier is not None and not isinstance(content, (bytes, bytearray, memoryview)):
            seekable = hasattr(content, "seekable") and content.seekable()
            if not seekable:
                # Verifiers need the content a second time
                content = content.read()
        meta = self.backend.put(version.key, content, content_type=content_type)
        handle = self._handle(version, meta)
        logger.debug("Stored version %s (%d bytes)", version, meta.size)
        if self.verifier is not None and not self.verifier.verify(content, handle):
            raise ChecksumMismatchError(str(version))
        return handle

    def _handle(self, version: VersionId, meta: ObjectMetadata) -> StoredObjectHandle:
        key = version.key
        return StoredObjectHandle(
            id=version,
            opener=lambda: self.backend.get(key),
            etag=meta.etag,
            size=meta.size,
            last_modified=meta.last_modified,
        )

    # ---- Lookup ----------------------------------------------------------

    def _scan(self, base: VersionId) -> Tuple[List[VersionId], bool]:
        """
        List version ids stored under a base.

        Returns:
            (concrete and tombstone ids in key order, whether a legacy
            object exists at the bare base key)
        """
        ids = []
        legacy = False
        for key in self.backend.list_by_prefix(base.key):
            try:
                vid = VersionId.parse(key, scheme=self.scheme)
            except ValueError as e:
                logger.warning("Skipping unparseable key %s: %s", key, e)
                continue
            # Prefix r1/u1 also matches r1/u10...
            if vid.base != base.base:
                continue
            if vid.token is None:
                legacy = True
            elif vid.is_current_reference():
                logger.warning("Ignoring stored reference key %s", key)
            else:
                ids.append(vid)
        return ids, legacy

    def version_files(self, id) -> List[VersionId]:
        """All versions under the base of ``id``, tombstones included, newest first."""
        ids, _ = self._scan(self.parse(id).base_identifier())
        return newest_first(ids)

    def _live_versions(self, base: VersionId) -> Tuple[List[VersionId], bool]:
        ids, legacy = self._scan(base)
        tombstoned = {v.live_version() for v in ids if v.is_tombstone()}
        live = [v for v in ids if v.is_concrete() and v not in tombstoned]
        return newest_first(live), legacy

    def resolve(self, id) -> VersionId:
        """
        Resolve ``id`` to the identifier of a concrete object.

        Concrete versions pass through. A bare base or ``current`` reference
        resolves to the newest live version, or to the legacy object when no
        versions exist.

        Raises:
            NotFoundError: For tombstones, or when nothing live remains
        """
        vid = self.parse(id)
        if vid.is_tombstone():
            raise NotFoundError(str(vid), "identifier is a deletion marker")
        if vid.is_concrete():
            return vid
        base = vid.base_identifier()
        live, legacy = self._live_versions(base)
        if live:
            return live[0]
        if legacy:
            return base
        raise NotFoundError(str(vid), "no live versions")

    def find_by(self, id) -> StoredObjectHandle:
        """
        Handle for ``id``, resolving bare bases and ``current`` to the newest version.

        Raises:
            NotFoundError: If nothing live matches
        """
        version = self.resolve(id)
        meta = self.backend.head(version.key)
        return self._handle(version, meta)

    def find_versions(self, id) -> List[StoredObjectHandle]:
        """Handles for all live versions under the base of ``id``, newest first."""
        live, _ = self._live_versions(self.parse(id).base_identifier())
        handles = []
        for version in live:
            try:
                meta = self.backend.head(version.key)
            except NotFoundError:
                logger.warning("Version %s disappeared during listing", version)
                continue
            handles.append(self._handle(version, meta))
        return handles

    def is_current(self, id) -> bool:
        """True if ``id`` names the newest live version of its base."""
        vid = self.parse(id)
        if not vid.is_concrete():
            return False
        try:
            return self.resolve(vid.current_reference()) == vid
        except NotFoundError:
            return False

    # ---- Migration -------------------------------------------------------

    def migrate_legacy_object(self, id) -> Optional[VersionId]:
        """
        Move an unversioned object at the bare base key to a versioned key.

        The version timestamp is the object's last-modified time, so migrated
        history stays in chronological order. Uses a server-side copy and a
        delete; content is never downloaded.

        Returns:
            The migrated version id, or None if there was nothing to migrate
        """
        base = self.parse(id).base_identifier()
        try:
            meta = self.backend.head(base.key)
        except NotFoundError:
            return None

        target = base.new_version(at=meta.last_modified_millis)
        try:
            self.backend.copy(base.key, target.key)
        except NotFoundError:
            # Another writer migrated it between head and copy
            logger.debug("Legacy object %s already migrated", base)
            return None
        self.backend.delete(base.key)
        logger.info("Migrated legacy object %s to %s", base, target)
        return target

    # ---- Deletion --------------------------------------------------------

    def delete(self, id) -> List[VersionId]:
        """
        Tombstone one version, or every live version of a base.

        Args:
            id: Concrete version, ``current`` reference, or bare base

        Returns:
            Deletion marker ids written; empty when ``id`` is already a
            marker or its version was already tombstoned

        Raises:
            NotFoundError: If nothing live matches
            PartialDeleteError: If the backend could not delete some versions;
                markers are still written for the ones it did delete
        """
        vid = self.parse(id)
        if vid.is_tombstone():
            return []

        if vid.is_versioned():
            target = self.resolve(vid)
            if not target.is_versioned():
                # Only a legacy object backs the reference
                target = self.migrate_legacy_object(target) or self.resolve(vid)
            return self._delete_version(target)

        self.migrate_legacy_object(vid)
        live, _ = self._live_versions(vid)
        if not live:
            raise NotFoundError(str(vid), "no live versions")
        try:
            deleted = set(self.backend.delete_many([v.key for v in live]))
        except PartialDeleteError as e:
            done = set(e.deleted)
            for v in live:
                if v.key in done:
                    self._mark_deleted(v)
            logger.error("Deleted %d of %d versions of %s", len(done), len(live), vid)
            raise
        markers = [self._mark_deleted(v) for v in live if v.key in deleted]
        logger.info("Deleted %d versions of %s", len(markers), vid)
        return markers

    def _delete_version(self, version: VersionId) -> List[VersionId]:
        try:
            self.backend.head(version.key)
        except NotFoundError:
            try:
                self.backend.head(version.tombstone().key)
            except NotFoundError:
                raise NotFoundError(str(version)) from None
            return []
        self.backend.delete(version.key)
        marker = self._mark_deleted(version)
        logger.info("Deleted version %s", version)
        return [marker]

    def _mark_deleted(self, version: VersionId) -> VersionId:
        marker = version.tombstone()
        self.backend.put(marker.key, b"")
        logger.debug("Wrote deletion marker %s", marker)
        return marker
