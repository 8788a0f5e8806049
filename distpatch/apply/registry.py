"""Merge logic for the override and startup pin registries.

Both registries are line-oriented text files. They are read once per
apply, passed through the merge functions below as plain line lists,
and written back once at the end. Blank lines and ``#`` comments are
never examined.

Override registry lines are ``mvn:`` URIs, optionally followed by
``;range=<spec>``. Startup registry lines are ``<path>=<startLevel>``.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from distpatch.apply.coordinates import path_to_coordinate, try_parse_coordinate_uri
from distpatch.apply.versions import Version, VersionRange
from distpatch.errors import CoordinateParseError
from distpatch.schemas.artifact import ArtifactCoordinate

logger = logging.getLogger(__name__)


@dataclass
class MergeOutcome:
    """Result of merging one candidate into a registry.

    ``matching`` is set when an existing entry for the same module falls
    inside the candidate's range. ``added`` is set when such an entry had
    a lower version and was rewritten to the candidate. ``superseded``
    lists the replaced override entries; startup rewrites never report
    any.
    """

    lines: list[str]
    matching: bool = False
    added: bool = False
    superseded: list[ArtifactCoordinate] = field(default_factory=list)


def _is_entry(line: str) -> bool:
    return bool(line) and not line.startswith("#")


def merge_override(
    lines: list[str],
    candidate: ArtifactCoordinate,
    version_range: VersionRange,
    override_line: str,
    log: logging.Logger | logging.LoggerAdapter = logger,
) -> MergeOutcome:
    """Merge a candidate artifact into the override registry.

    Every entry for the same module whose version lies in
    ``version_range`` counts as a match. Matches with a version lower
    than the candidate's are replaced by ``override_line`` and reported
    as superseded. When nothing matches, ``override_line`` is appended.

    Args:
        lines: Current registry lines. Not modified.
        candidate: The artifact shipped by the patch.
        version_range: Versions the candidate is allowed to replace.
        override_line: Registry line for the candidate.
        log: Logger receiving debug and warning messages.

    Returns:
        MergeOutcome holding the new line list.
    """
    outcome = MergeOutcome(lines=list(lines))
    candidate_version = Version.parse(candidate.version)

    for i, raw in enumerate(outcome.lines):
        line = raw.strip()
        if not _is_entry(line):
            continue

        # The ;range= suffix is not part of the coordinate
        uri = line.split(";", 1)[0]
        try:
            existing = try_parse_coordinate_uri(uri)
        except CoordinateParseError:
            existing = None
        if existing is None:
            log.warning("Unable to convert to artifact: %s", line)
            continue

        existing_version = Version.parse(existing.version)
        if not (
            candidate.is_same_but_version(existing)
            and version_range.contains(existing_version)
        ):
            continue

        outcome.matching = True
        if existing_version < candidate_version:
            outcome.lines[i] = override_line
            if not outcome.added:
                log.debug("Replacing with artifact: %s", override_line)
                outcome.added = True
            outcome.superseded.append(existing)

    if not outcome.matching:
        outcome.lines.append(override_line)
        log.debug("Adding artifact: %s", override_line)

    return outcome


def merge_startup(
    lines: list[str],
    candidate: ArtifactCoordinate,
    version_range: VersionRange,
    log: logging.Logger | logging.LoggerAdapter = logger,
) -> MergeOutcome:
    """Merge a candidate artifact into the startup pin registry.

    Pins for the same module whose version lies in ``version_range`` and
    is lower than the candidate's are rewritten to the candidate's path.
    The ``=startLevel`` suffix is kept as written. Unlike the override
    registry, nothing is ever appended.

    Lines whose left side is not a repository artifact path are left
    alone without complaint.
    """
    outcome = MergeOutcome(lines=list(lines))
    candidate_version = Version.parse(candidate.version)

    for i, raw in enumerate(outcome.lines):
        line = raw.strip()
        if not _is_entry(line):
            continue

        index = line.find("=")
        if index < 0:
            continue
        pinned = path_to_coordinate(line[:index].strip())
        if pinned is None:
            continue

        pinned_version = Version.parse(pinned.version)
        if not (
            candidate.is_same_but_version(pinned)
            and version_range.contains(pinned_version)
        ):
            continue

        outcome.matching = True
        if pinned_version < candidate_version:
            outcome.lines[i] = candidate.path + line[index:]
            log.debug("Overwriting startup pin with: %s", candidate)
            outcome.added = True

    return outcome


def normalize_overrides(lines: list[str]) -> list[str]:
    """Deduplicate and sort the override registry for persisting."""
    return sorted(set(lines))


def read_registry(path: Path) -> list[str]:
    """Read a registry file as a list of lines; a missing file is empty."""
    if not path.exists():
        return []
    return path.read_text(encoding="utf-8", errors="surrogateescape").splitlines()


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


def write_registry(path: Path, lines: list[str]) -> None:
    """Replace a registry file with the given lines.

    The content is written to a temporary file next to the target and
    renamed into place, so readers never observe a half-written file.
    An existing file keeps its permission bits; a new one gets the
    usual umask-filtered mode. Bytes that are not valid UTF-8 pass
    through unchanged. Concurrent writers are not coordinated: the last
    rename wins.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", errors="surrogateescape", newline="\n") as f:
            for line in lines:
                f.write(line + "\n")
        if path.exists():
            shutil.copymode(path, tmp_name)
        else:
            os.chmod(tmp_name, 0o666 & ~_current_umask())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
