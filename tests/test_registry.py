"""Tests for override and startup pin registry merging."""

from __future__ import annotations

import logging
import os
import stat

from distpatch.apply.coordinates import parse_coordinate_uri
from distpatch.apply.registry import (
    merge_override,
    merge_startup,
    normalize_overrides,
    read_registry,
    write_registry,
)
from distpatch.apply.versions import Version, VersionRange


def _candidate(uri: str):
    return parse_coordinate_uri(uri)


def _default_range(uri: str) -> VersionRange:
    return VersionRange.default_for(Version.parse(_candidate(uri).version))


class TestMergeOverride:
    def test_empty_registry_appends(self):
        uri = "mvn:com.foo/bar/1.0.0"
        outcome = merge_override([], _candidate(uri), _default_range(uri), uri)
        assert outcome.lines == [uri]
        assert outcome.matching is False
        assert outcome.added is False
        assert outcome.superseded == []

    def test_older_candidate_outside_range_is_appended(self):
        first = "mvn:com.foo/bar/1.0.0"
        second = "mvn:com.foo/bar/0.9.0"
        lines = merge_override([], _candidate(first), _default_range(first), first).lines
        outcome = merge_override(lines, _candidate(second), _default_range(second), second)
        assert outcome.matching is False
        assert normalize_overrides(outcome.lines) == [second, first]

    def test_replacement(self):
        line = "mvn:com.foo/bar/1.0.5;range=[1.0,2.0)"
        outcome = merge_override(
            ["mvn:com.foo/bar/1.0.0"],
            _candidate("mvn:com.foo/bar/1.0.5"),
            VersionRange.parse("[1.0,2.0)"),
            line,
        )
        assert outcome.lines == [line]
        assert outcome.matching is True
        assert outcome.added is True
        assert [str(a) for a in outcome.superseded] == ["com.foo:bar:1.0.0"]

    def test_newer_existing_entry_matches_without_replacement(self):
        outcome = merge_override(
            ["mvn:com.foo/bar/1.0.9"],
            _candidate("mvn:com.foo/bar/1.0.5"),
            VersionRange.parse("[1.0,2.0)"),
            "mvn:com.foo/bar/1.0.5",
        )
        assert outcome.lines == ["mvn:com.foo/bar/1.0.9"]
        assert outcome.matching is True
        assert outcome.added is False

    def test_different_module_untouched(self):
        uri = "mvn:com.foo/bar/1.0.5"
        outcome = merge_override(
            ["mvn:com.foo/baz/1.0.0", "mvn:com.foo/bar/1.0.0/jar/tests"],
            _candidate(uri), _default_range(uri), uri,
        )
        assert outcome.lines == [
            "mvn:com.foo/baz/1.0.0", "mvn:com.foo/bar/1.0.0/jar/tests", uri,
        ]

    def test_every_matching_line_replaced(self):
        uri = "mvn:com.foo/bar/1.0.5"
        outcome = merge_override(
            ["mvn:com.foo/bar/1.0.1", "mvn:com.foo/bar/1.0.2"],
            _candidate(uri), _default_range(uri), uri,
        )
        assert outcome.lines == [uri, uri]
        assert len(outcome.superseded) == 2

    def test_comments_and_blanks_pass_through(self):
        uri = "mvn:com.foo/bar/1.0.0"
        outcome = merge_override(
            ["# header", "", "  "], _candidate(uri), _default_range(uri), uri,
        )
        assert outcome.lines == ["# header", "", "  ", uri]

    def test_unparseable_line_kept_with_warning(self, caplog):
        uri = "mvn:com.foo/bar/1.0.0"
        with caplog.at_level(logging.WARNING):
            outcome = merge_override(
                ["garbage-line", "mvn:broken"], _candidate(uri), _default_range(uri), uri,
            )
        assert outcome.lines[:2] == ["garbage-line", "mvn:broken"]
        assert "Unable to convert to artifact: garbage-line" in caplog.text
        assert "mvn:broken" in caplog.text

    def test_idempotent(self):
        uri = "mvn:com.foo/bar/1.0.5"
        line = uri + ";range=[1.0,2.0)"
        version_range = VersionRange.parse("[1.0,2.0)")
        start = ["mvn:com.foo/bar/1.0.0", "mvn:org.other/thing/2.0.0"]
        once = merge_override(start, _candidate(uri), version_range, line)
        twice = merge_override(once.lines, _candidate(uri), version_range, line)
        assert set(twice.lines) == set(once.lines)
        assert twice.added is False
        assert twice.superseded == []

    def test_input_not_mutated(self):
        uri = "mvn:com.foo/bar/1.0.0"
        lines: list[str] = []
        merge_override(lines, _candidate(uri), _default_range(uri), uri)
        assert lines == []


class TestMergeStartup:
    def test_pin_rewritten_with_start_level(self):
        outcome = merge_startup(
            ["com/foo/bar/1.0.0/bar-1.0.0.jar=30"],
            _candidate("mvn:com.foo/bar/1.0.1"),
            VersionRange.parse("[1.0,2.0)"),
        )
        assert outcome.lines == ["com/foo/bar/1.0.1/bar-1.0.1.jar=30"]
        assert outcome.matching is True
        assert outcome.added is True

    def test_never_appends(self):
        outcome = merge_startup(
            ["org/other/thing/1.0/thing-1.0.jar=10"],
            _candidate("mvn:com.foo/bar/1.0.1"),
            VersionRange.parse("[1.0,2.0)"),
        )
        assert outcome.lines == ["org/other/thing/1.0/thing-1.0.jar=10"]
        assert outcome.matching is False

    def test_equal_version_matches_without_rewrite(self):
        outcome = merge_startup(
            ["com/foo/bar/1.0.1/bar-1.0.1.jar=30"],
            _candidate("mvn:com.foo/bar/1.0.1"),
            VersionRange.parse("[1.0,2.0)"),
        )
        assert outcome.matching is True
        assert outcome.added is False

    def test_unrecognized_paths_skipped_silently(self, caplog):
        lines = ["not-a-repo-path.jar=5", "no equals sign", "# comment", ""]
        with caplog.at_level(logging.DEBUG):
            outcome = merge_startup(
                lines, _candidate("mvn:com.foo/bar/1.0.1"), VersionRange.parse("[1.0,2.0)"),
            )
        assert outcome.lines == lines
        assert not [r for r in caplog.records if r.levelno >= logging.WARNING]

    def test_out_of_range_pin_untouched(self):
        outcome = merge_startup(
            ["com/foo/bar/0.9.0/bar-0.9.0.jar=30"],
            _candidate("mvn:com.foo/bar/1.0.1"),
            VersionRange.parse("[1.0,2.0)"),
        )
        assert outcome.lines == ["com/foo/bar/0.9.0/bar-0.9.0.jar=30"]
        assert outcome.matching is False

    def test_superseded_not_reported(self):
        outcome = merge_startup(
            ["com/foo/bar/1.0.0/bar-1.0.0.jar=30"],
            _candidate("mvn:com.foo/bar/1.0.1"),
            VersionRange.parse("[1.0,2.0)"),
        )
        assert outcome.superseded == []


class TestPersistence:
    def test_normalize_dedups_and_sorts(self):
        assert normalize_overrides(["b", "a", "b", "c"]) == ["a", "b", "c"]

    def test_read_missing_file(self, tmp_path):
        assert read_registry(tmp_path / "missing.properties") == []

    def test_write_then_read(self, tmp_path):
        path = tmp_path / "etc" / "overrides.properties"
        write_registry(path, ["mvn:a/b/1", "# c"])
        assert path.read_text() == "mvn:a/b/1\n# c\n"
        assert read_registry(path) == ["mvn:a/b/1", "# c"]

    def test_write_replaces_and_leaves_no_temp_files(self, tmp_path):
        path = tmp_path / "startup.properties"
        path.write_text("old\n")
        write_registry(path, ["new"])
        assert path.read_text() == "new\n"
        assert [p.name for p in tmp_path.iterdir()] == ["startup.properties"]

    def test_write_keeps_existing_mode(self, tmp_path):
        path = tmp_path / "overrides.properties"
        path.write_text("old\n")
        path.chmod(0o644)
        write_registry(path, ["new"])
        assert stat.S_IMODE(path.stat().st_mode) == 0o644

    def test_new_file_respects_umask(self, tmp_path):
        old = os.umask(0o022)
        try:
            path = tmp_path / "startup.properties"
            write_registry(path, ["a"])
        finally:
            os.umask(old)
        assert stat.S_IMODE(path.stat().st_mode) == 0o644

    def test_non_utf8_bytes_pass_through(self, tmp_path):
        path = tmp_path / "startup.properties"
        path.write_bytes(b"# Caf\xe9\ncom/foo/bar/1.0.0/bar-1.0.0.jar=5\n")
        lines = read_registry(path)
        assert lines[1] == "com/foo/bar/1.0.0/bar-1.0.0.jar=5"
        write_registry(path, lines)
        assert path.read_bytes() == b"# Caf\xe9\ncom/foo/bar/1.0.0/bar-1.0.0.jar=5\n"
