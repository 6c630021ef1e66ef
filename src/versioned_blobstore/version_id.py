"""Version identifiers embedded in object keys.

A version identifier is a base identifier plus an ordering token, joined by
``_v-``:

    r1/u1                         unversioned (legacy) object
    r1/u1_v-1694195675462         concrete version (epoch milliseconds)
    r1/u1_v-current               reference to the newest live version
    r1/u1_v-1694195675462-deletionmarker   tombstone for that version

Everything here is pure and in-memory; no backend calls.
"""

from __future__ import annotations

import re
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple, Union

from .constants import CURRENT_VERSION, DELETION_MARKER_SUFFIX, VERSION_DELIMITER
from .errors import InvalidVersionIdError

_TIMESTAMP = re.compile(r"^[0-9]+$")
_TOMBSTONE = re.compile(r"^([0-9]+)" + re.escape(DELETION_MARKER_SUFFIX) + r"$")


def now_millis() -> int:
    """Current UTC wall-clock time as epoch milliseconds."""
    return time.time_ns() // 1_000_000


@dataclass(frozen=True)
class Timestamp:
    """Concrete version created at ``millis``."""

    millis: int

    def __str__(self) -> str:
        return str(self.millis)


@dataclass(frozen=True)
class CurrentReference:
    """Symbolic "newest live version" token."""

    def __str__(self) -> str:
        return CURRENT_VERSION


@dataclass(frozen=True)
class Tombstone:
    """Deletion marker for the version ``of``."""

    of: Timestamp

    def __str__(self) -> str:
        return f"{self.of}{DELETION_MARKER_SUFFIX}"


VersionToken = Union[Timestamp, CurrentReference, Tombstone]


def parse_token(raw: str, token: str) -> VersionToken:
    """Parse the text after the version delimiter.

    Args:
        raw: Full identifier, used for error messages
        token: Text following the last ``_v-``

    Returns:
        The matching token variant

    Raises:
        InvalidVersionIdError: If the token matches no variant
    """
    if token == CURRENT_VERSION:
        return CurrentReference()
    if _TIMESTAMP.fullmatch(token):
        return Timestamp(int(token))
    match = _TOMBSTONE.fullmatch(token)
    if match:
        return Tombstone(Timestamp(int(match.group(1))))
    raise InvalidVersionIdError(raw, token)


@dataclass(frozen=True)
class VersionId:
    """A base identifier plus an optional version token.

    ``token`` is None for unversioned identifiers: a bare base, or a legacy
    object written before versioning. ``scheme`` is the caller-facing prefix
    (e.g. ``shrine://``); it is not part of the storage key.
    """

    base: str
    token: Optional[VersionToken] = None
    scheme: str = ""

    @classmethod
    def parse(cls, raw: object, scheme: str = "") -> "VersionId":
        """Parse an identifier, stripping ``scheme`` when present.

        Splits on the last ``_v-`` in the final ``/``-separated segment, so
        earlier path segments (resource ids) may contain the delimiter.
        Identifiers without it in the final segment parse as unversioned.

        Args:
            raw: Identifier (anything whose ``str()`` is the identifier)
            scheme: Caller-facing scheme to strip and carry along

        Returns:
            Parsed VersionId

        Raises:
            InvalidVersionIdError: If the version token is malformed
            ValueError: If the base identifier is empty
        """
        text = str(raw)
        key = text[len(scheme):] if scheme and text.startswith(scheme) else text
        head, slash, name = key.rpartition("/")
        stem, sep, token = name.rpartition(VERSION_DELIMITER)
        if not sep:
            base, token_value = key, None
        else:
            base = f"{head}{slash}{stem}"
            token_value = parse_token(text, token)
        if not base:
            raise ValueError(f"Empty base identifier in '{text}'")
        return cls(base=base, token=token_value, scheme=scheme)

    @property
    def key(self) -> str:
        """Storage key, without scheme."""
        if self.token is None:
            return self.base
        return f"{self.base}{VERSION_DELIMITER}{self.token}"

    def __str__(self) -> str:
        return f"{self.scheme}{self.key}"

    def is_versioned(self) -> bool:
        return self.token is not None

    def is_current_reference(self) -> bool:
        return isinstance(self.token, CurrentReference)

    def is_tombstone(self) -> bool:
        return isinstance(self.token, Tombstone)

    def is_concrete(self) -> bool:
        """True for a live version timestamp (not a reference or a marker)."""
        return isinstance(self.token, Timestamp)

    @property
    def timestamp(self) -> Optional[Timestamp]:
        """Creation timestamp of a concrete version or of a tombstoned one."""
        if isinstance(self.token, Timestamp):
            return self.token
        if isinstance(self.token, Tombstone):
            return self.token.of
        return None

    def base_identifier(self) -> "VersionId":
        """The unversioned identifier for this base."""
        return VersionId(self.base, None, self.scheme)

    def new_version(self, at: Optional[int] = None) -> "VersionId":
        """Next version under the same base.

        Args:
            at: Epoch milliseconds to use verbatim (legacy migration passes
                the object's last-modified time). Defaults to now.

        Returns:
            Concrete VersionId at the given time
        """
        millis = now_millis() if at is None else at
        return VersionId(self.base, Timestamp(millis), self.scheme)

    def current_reference(self) -> "VersionId":
        """The ``_v-current`` alias for this base."""
        return VersionId(self.base, CurrentReference(), self.scheme)

    def tombstone(self) -> "VersionId":
        """Deletion marker for this concrete version."""
        if not isinstance(self.token, Timestamp):
            raise ValueError(f"Only concrete versions can be tombstoned: {self}")
        return VersionId(self.base, Tombstone(self.token), self.scheme)

    def live_version(self) -> "VersionId":
        """The concrete version a tombstone refers to."""
        if not isinstance(self.token, Tombstone):
            raise ValueError(f"Not a deletion marker: {self}")
        return VersionId(self.base, self.token.of, self.scheme)

    def sort_key(self) -> Tuple[int, int]:
        """Chronological ordering key; a marker sorts just after its version.

        Matches lexicographic key order whenever timestamps share a width.

        Raises:
            ValueError: For unversioned ids and current references
        """
        stamp = self.timestamp
        if stamp is None:
            raise ValueError(f"Identifier has no position in version order: {self}")
        return (stamp.millis, 1 if self.is_tombstone() else 0)


def newest_first(ids) -> list:
    """Sort concrete and tombstone ids newest first."""
    return sorted(ids, key=lambda v: v.sort_key(), reverse=True)


class VersionClock:
    """Monotonic millisecond source for new version tokens.

    Never hands out the same value twice: when the wall clock has not moved
    past the last issued value (same millisecond, or clock stepped back), the
    next value is last + 1. ``after`` raises the floor further, so a new
    version always sorts after a migrated legacy version.

    The guarantee holds per clock instance only. Separate processes (or
    stores with their own clocks) writing the same base in the same
    millisecond produce the same key, and the later ``put`` overwrites
    the earlier one. Give each writer of a base a shared clock, or
    serialize writers outside this package.
    """

    def __init__(self, source: Optional[Callable[[], int]] = None):
        self._source = source or now_millis
        self._last = 0
        self._lock = threading.Lock()

    def next(self, after: Optional[int] = None) -> int:
        with self._lock:
            floor = self._last if after is None else max(self._last, after)
            candidate = self._source()
            if candidate <= floor:
                candidate = floor + 1
            self._last = candidate
            return candidate
