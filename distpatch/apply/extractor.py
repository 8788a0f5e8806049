"""Artifact payload extraction and removal.

Copies artifact files from a patch's ``repository/`` tree into the
installed ``system/`` repository and deletes superseded ones. Both
directions skip problem items instead of aborting the batch.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from distpatch.apply.source import PatchSource
from distpatch.schemas.artifact import ArtifactCoordinate

logger = logging.getLogger(__name__)


@dataclass
class ExtractionReport:
    """What an extractor run did, as repository-relative paths."""

    extracted: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class ArtifactExtractor:
    """Moves artifact payloads between a patch and the install root."""

    def __init__(
        self,
        install_root: Path,
        system_dir: str = "system",
        repository_prefix: str = "repository/",
        log: logging.Logger | logging.LoggerAdapter = logger,
    ) -> None:
        self._system = Path(install_root) / system_dir
        self._prefix = repository_prefix
        self._log = log

    def installed_path(self, artifact: ArtifactCoordinate) -> Path:
        return self._system / artifact.path

    def extract(
        self,
        source: PatchSource,
        artifacts: list[ArtifactCoordinate],
        report: ExtractionReport | None = None,
    ) -> ExtractionReport:
        """Copy each artifact's payload unless a file already sits at its path.

        An artifact missing from the patch is reported as an error and
        skipped; the install is left untouched for it.
        """
        report = report or ExtractionReport()
        for artifact in artifacts:
            self._log.debug("Extracting artifact: %s", artifact)
            entry = self._prefix + artifact.path
            stream = source.open(entry)
            if stream is None:
                msg = f"Could not find artifact in patch: {artifact}"
                self._log.error(msg)
                report.errors.append(msg)
                continue
            with stream:
                target = self.installed_path(artifact)
                if target.is_file():
                    continue
                target.parent.mkdir(parents=True, exist_ok=True)
                with open(target, "wb") as out:
                    shutil.copyfileobj(stream, out)
            report.extracted.append(artifact.path)
        return report

    def delete(
        self,
        artifacts: list[ArtifactCoordinate],
        report: ExtractionReport | None = None,
    ) -> ExtractionReport:
        """Remove superseded artifacts; absent files produce a warning."""
        report = report or ExtractionReport()
        for artifact in artifacts:
            target = self.installed_path(artifact)
            if target.exists():
                self._log.debug("Removing old artifact %s", artifact)
                target.unlink()
                report.deleted.append(artifact.path)
            else:
                msg = f"Could not find: {target}"
                self._log.warning(msg)
                report.warnings.append(msg)
        return report
