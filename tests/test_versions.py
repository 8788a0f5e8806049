"""Tests for version parsing, ordering and ranges."""

from __future__ import annotations

import pytest

from distpatch.apply.versions import Version, VersionRange
from distpatch.errors import VersionParseError


class TestVersion:
    def test_full(self):
        assert Version.parse("1.2.3") == Version(1, 2, 3)

    def test_missing_parts_default_to_zero(self):
        assert Version.parse("1") == Version(1, 0, 0)
        assert Version.parse("1.2") == Version(1, 2, 0)

    def test_maven_qualifier(self):
        v = Version.parse("1.0.0-SNAPSHOT")
        assert (v.major, v.minor, v.micro, v.qualifier) == (1, 0, 0, "SNAPSHOT")

    def test_dotted_qualifier(self):
        assert Version.parse("2.4.0.redhat-621").qualifier == "redhat-621"

    def test_invalid_qualifier_chars_replaced(self):
        assert Version.parse("1.0.0.a+b").qualifier == "a_b"

    def test_non_numeric(self):
        assert Version.parse("latest") == Version(0, 0, 0, "latest")

    def test_numeric_ordering(self):
        assert Version.parse("1.10.0") > Version.parse("1.9.0")

    def test_qualifier_sorts_after_bare(self):
        assert Version.parse("1.0.0") < Version.parse("1.0.0.redhat-1")

    def test_str(self):
        assert str(Version.parse("1.2")) == "1.2.0"
        assert str(Version.parse("1.2.3-beta")) == "1.2.3.beta"


class TestVersionRangeParse:
    def test_closed_open(self):
        r = VersionRange.parse("[1.0,2.0)")
        assert r.floor == Version(1, 0, 0)
        assert r.ceiling == Version(2, 0, 0)
        assert r.floor_inclusive is True
        assert r.ceiling_inclusive is False

    def test_open_closed(self):
        r = VersionRange.parse("(1.0, 2.0]")
        assert r.floor_inclusive is False
        assert r.ceiling_inclusive is True

    def test_bare_version_is_unbounded(self):
        r = VersionRange.parse("1.5")
        assert r.ceiling is None
        assert r.contains(Version(99, 0, 0))
        assert not r.contains(Version(1, 4, 9))

    @pytest.mark.parametrize("spec", ["", "[1.0", "[1.0,2.0", "1.0,2.0", "[1.0,2.0,3.0)"])
    def test_malformed(self, spec):
        with pytest.raises(VersionParseError):
            VersionRange.parse(spec)

    def test_str(self):
        assert str(VersionRange.parse("[1.0,2.0)")) == "[1.0.0,2.0.0)"


class TestVersionRangeContains:
    @pytest.mark.parametrize(
        "spec, floor_in, ceiling_in",
        [
            ("[1.0,2.0]", True, True),
            ("[1.0,2.0)", True, False),
            ("(1.0,2.0]", False, True),
            ("(1.0,2.0)", False, False),
        ],
    )
    def test_boundaries_follow_inclusivity(self, spec, floor_in, ceiling_in):
        r = VersionRange.parse(spec)
        assert r.contains(r.floor) is floor_in
        assert r.contains(r.ceiling) is ceiling_in
        assert r.contains(Version(1, 5, 0))

    def test_default_range(self):
        r = VersionRange.default_for(Version.parse("1.2.3"))
        assert str(r) == "[1.2.0,1.3.0)"
        assert r.contains(Version.parse("1.2.9"))
        assert r.contains(Version.parse("1.2.0"))
        assert not r.contains(Version.parse("1.3.0"))
        assert not r.contains(Version.parse("1.1.9"))

    def test_qualified_version_below_ceiling(self):
        r = VersionRange.parse("[1.0,2.0)")
        assert r.contains(Version.parse("1.9.9.redhat-1"))
