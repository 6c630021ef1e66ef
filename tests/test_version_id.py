"""Tests for version identifier parsing, formatting and ordering."""

import pytest

from versioned_blobstore.errors import InvalidVersionIdError
from versioned_blobstore.version_id import (
    CurrentReference,
    Timestamp,
    Tombstone,
    VersionClock,
    VersionId,
    newest_first,
)


class TestParse:
    """Test splitting identifiers into base and token."""

    def test_unversioned(self):
        """No delimiter means a bare base."""
        vid = VersionId.parse("r1/u1")
        assert vid.base == "r1/u1"
        assert vid.token is None
        assert not vid.is_versioned()

    def test_timestamp(self):
        vid = VersionId.parse("r1/u1_v-1694195675462")
        assert vid.base == "r1/u1"
        assert vid.token == Timestamp(1694195675462)
        assert vid.is_versioned()
        assert vid.is_concrete()

    def test_current_reference(self):
        vid = VersionId.parse("r1/u1_v-current")
        assert vid.token == CurrentReference()
        assert vid.is_current_reference()
        assert not vid.is_concrete()

    def test_tombstone(self):
        vid = VersionId.parse("r1/u1_v-1000-deletionmarker")
        assert vid.token == Tombstone(Timestamp(1000))
        assert vid.is_tombstone()
        assert vid.timestamp == Timestamp(1000)

    def test_splits_on_last_delimiter(self):
        """A base containing the delimiter keeps everything before the last one."""
        vid = VersionId.parse("r1/odd_v-name_v-2000")
        assert vid.base == "r1/odd_v-name"
        assert vid.token == Timestamp(2000)

    def test_delimiter_in_earlier_segment(self):
        """Only the final path segment carries the version token."""
        vid = VersionId.parse("shrine://res_v-1/abc", scheme="shrine://")
        assert vid.base == "res_v-1/abc"
        assert vid.token is None

        vid = VersionId.parse("res_v-1/abc_v-2000")
        assert vid.base == "res_v-1/abc"
        assert vid.token == Timestamp(2000)

    def test_strips_scheme(self):
        vid = VersionId.parse("shrine://r1/u1_v-1000", scheme="shrine://")
        assert vid.base == "r1/u1"
        assert vid.key == "r1/u1_v-1000"
        assert str(vid) == "shrine://r1/u1_v-1000"

    def test_strips_prefixed_scheme(self):
        vid = VersionId.parse("1234-shrine://r1/u1_v-1000", scheme="1234-shrine://")
        assert vid.key == "r1/u1_v-1000"

    def test_adds_scheme_to_plain_key(self):
        """Plain storage keys pick up the scheme for display."""
        vid = VersionId.parse("r1/u1_v-1000", scheme="shrine://")
        assert str(vid) == "shrine://r1/u1_v-1000"

    def test_invalid_token(self):
        with pytest.raises(InvalidVersionIdError, match="Invalid version token 'abc'"):
            VersionId.parse("r1/u1_v-abc")

    def test_invalid_token_is_value_error(self):
        with pytest.raises(ValueError):
            VersionId.parse("r1/u1_v-12-other")

    def test_empty_base(self):
        with pytest.raises(ValueError, match="Empty base"):
            VersionId.parse("_v-1000")


class TestFormatting:
    """Test deriving new identifiers."""

    def test_round_trips_through_str(self):
        for raw in ["r1/u1", "r1/u1_v-1000", "r1/u1_v-current", "r1/u1_v-1000-deletionmarker"]:
            assert str(VersionId.parse(raw)) == raw

    def test_new_version_from_base(self):
        vid = VersionId.parse("r1/u1").new_version(at=1000)
        assert vid.key == "r1/u1_v-1000"

    def test_new_version_from_version(self):
        """A new version replaces the token rather than stacking delimiters."""
        vid = VersionId.parse("r1/u1_v-1000").new_version(at=2000)
        assert vid.key == "r1/u1_v-2000"

    def test_new_version_defaults_to_now(self):
        vid = VersionId.parse("r1/u1").new_version()
        assert len(str(vid.token)) == 13

    def test_base_identifier(self):
        vid = VersionId.parse("shrine://r1/u1_v-1000", scheme="shrine://")
        assert str(vid.base_identifier()) == "shrine://r1/u1"

    def test_current_reference(self):
        assert VersionId.parse("r1/u1_v-1000").current_reference().key == "r1/u1_v-current"

    def test_tombstone_and_back(self):
        vid = VersionId.parse("r1/u1_v-1000")
        marker = vid.tombstone()
        assert marker.key == "r1/u1_v-1000-deletionmarker"
        assert marker.live_version() == vid

    def test_only_concrete_versions_tombstone(self):
        with pytest.raises(ValueError):
            VersionId.parse("r1/u1_v-current").tombstone()
        with pytest.raises(ValueError):
            VersionId.parse("r1/u1").tombstone()


class TestOrdering:
    """Test chronological ordering of identifiers."""

    def test_newest_first(self):
        ids = [VersionId.parse(f"r1/u1_v-{t}") for t in (1000, 3000, 2000)]
        assert [v.key for v in newest_first(ids)] == ["r1/u1_v-3000", "r1/u1_v-2000", "r1/u1_v-1000"]

    def test_matches_lexicographic_order_for_equal_width(self):
        keys = ["r1/u1_v-1694195675462", "r1/u1_v-1694195675999", "r1/u1_v-1700000000000"]
        ids = [VersionId.parse(k) for k in keys]
        assert [v.key for v in newest_first(ids)] == sorted(keys, reverse=True)

    def test_marker_sorts_after_its_version(self):
        ids = [VersionId.parse("r1/u1_v-1000"), VersionId.parse("r1/u1_v-1000-deletionmarker")]
        assert newest_first(ids)[0].is_tombstone()

    def test_reference_has_no_order(self):
        with pytest.raises(ValueError):
            VersionId.parse("r1/u1_v-current").sort_key()


class TestVersionClock:
    """Test the monotonic version clock."""

    def test_uses_source(self):
        clock = VersionClock(lambda: 1000)
        assert clock.next() == 1000

    def test_same_millisecond_bumps(self):
        """Two versions in one millisecond never share a token."""
        clock = VersionClock(lambda: 1000)
        assert [clock.next(), clock.next(), clock.next()] == [1000, 1001, 1002]

    def test_clock_step_back(self):
        times = iter([2000, 1500])
        clock = VersionClock(lambda: next(times))
        assert clock.next() == 2000
        assert clock.next() == 2001

    def test_after_raises_floor(self):
        clock = VersionClock(lambda: 1000)
        assert clock.next(after=5000) == 5001

    def test_after_below_clock_is_ignored(self):
        clock = VersionClock(lambda: 9000)
        assert clock.next(after=5000) == 9000
