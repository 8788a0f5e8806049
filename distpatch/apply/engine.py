"""Patch engine — applies and rolls back patches on a stopped install.

Coordinates the registry merges, artifact extraction, registry
persistence, plain-file patching with backups, and migrator staging.
This is a synchronous engine. It is not transactional: a failure
leaves earlier steps on disk, and the per-file backups written so far
are what makes a later rollback meaningful.

Only one engine may work on an install root at a time. Registries are
read whole and written whole, so concurrent writers lose updates.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import BinaryIO

from distpatch.apply.backup import BackupStore
from distpatch.apply.coordinates import try_parse_coordinate_uri
from distpatch.apply.descriptor import find_descriptors
from distpatch.apply.extractor import ArtifactExtractor, ExtractionReport
from distpatch.apply.registry import (
    merge_override,
    merge_startup,
    normalize_overrides,
    read_registry,
    write_registry,
)
from distpatch.apply.source import DirectoryPatchSource, PatchSource, ZipPatchSource
from distpatch.apply.versions import Version, VersionRange
from distpatch.errors import MissingBackupLocationError
from distpatch.schemas.artifact import ArtifactCoordinate
from distpatch.schemas.patch import (
    ApplyResult,
    ApplyState,
    PatchDescriptor,
    PatcherConfig,
    RollbackResult,
)

logger = logging.getLogger(__name__)


class PatchApplier:
    """Applies patches to, and rolls them back from, an install root.

    Args:
        install_root: Root directory of the installed distribution.
        config: Install layout. Defaults to PatcherConfig().
        log: Logger for progress and problems. The engine only calls
            debug, info, warning and error on it.
    """

    def __init__(
        self,
        install_root: Path | str,
        config: PatcherConfig | None = None,
        log: logging.Logger | logging.LoggerAdapter = logger,
    ) -> None:
        self._root = Path(install_root)
        self._config = config or PatcherConfig()
        self._log = log
        self._backups = BackupStore(self._root, self._config.backups_dir, log)
        self._extractor = ArtifactExtractor(
            self._root, self._config.system_dir, self._config.repository_prefix, log,
        )
        self.last_result: ApplyResult | None = None

    @property
    def backups(self) -> BackupStore:
        return self._backups

    # ── Archive entry points ─────────────────────────────────────

    def apply(self, archive: Path | str) -> list[ApplyResult]:
        """Apply every patch described in a patch archive, in order."""
        with ZipPatchSource(Path(archive)) as source:
            patches = find_descriptors(source, self._config.descriptor_suffix)
            if not patches:
                self._log.warning("No patch to apply")
                return []
            return [self.apply_patch(patch, source) for patch in patches]

    def rollback(self, archive: Path | str) -> list[RollbackResult]:
        """Roll back every patch described in a patch archive."""
        with ZipPatchSource(Path(archive)) as source:
            patches = find_descriptors(source, self._config.descriptor_suffix)
        if not patches:
            self._log.warning("No patch to roll back")
            return []
        return [self.rollback_patch(patch) for patch in patches]

    def apply_config_changes(self, patch: PatchDescriptor, storage: Path | str) -> ApplyResult:
        """Re-apply a patch from its storage directory instead of its archive.

        Artifacts are not extracted or deleted in this mode.
        """
        return self.apply_patch(patch, None, Path(storage))

    # ── Apply ────────────────────────────────────────────────────

    def apply_patch(
        self,
        patch: PatchDescriptor,
        source: PatchSource | None,
        storage: Path | None = None,
    ) -> ApplyResult:
        """Apply one patch.

        Flow:
        1. Merge every bundle into the in-memory registries
        2. Extract new artifacts / delete superseded ones (archive only)
        3. Persist both registries
        4. Overwrite plain files, backing up existing ones
        5. Stage the migrator artifact into the deploy directory

        Args:
            patch: The patch descriptor.
            source: Patch archive contents, or None.
            storage: Patch storage directory, used for plain files when
                there is no archive.

        Returns:
            ApplyResult audit record.

        Raises:
            MissingBackupLocationError: If neither source nor storage is
                given; registries are already persisted at that point.
            OSError: On I/O failure. Earlier steps stay applied.
        """
        self._log.debug("Applying patch: %s / %s", patch.id, patch.description)
        result = ApplyResult(patch_id=patch.id)
        self.last_result = result
        try:
            self._apply(patch, source, storage, result)
        except Exception:
            self._log.error(
                "Patch %s stopped after state '%s'", patch.id, result.state.value,
            )
            raise
        return result

    def _apply(
        self,
        patch: PatchDescriptor,
        source: PatchSource | None,
        storage: Path | None,
        result: ApplyResult,
    ) -> None:
        startup_file = self._root / self._config.startup_file
        overrides_file = self._root / self._config.overrides_file
        startup = read_registry(startup_file)
        overrides = read_registry(overrides_file)

        # ── 1. Registry merges ───────────────────────────────────
        to_extract: list[ArtifactCoordinate] = []
        to_delete: list[ArtifactCoordinate] = []

        for bundle in patch.bundles:
            artifact = try_parse_coordinate_uri(bundle)
            if artifact is None:
                continue

            version_range, override_line = self._range_for(patch, bundle, artifact)

            merged = merge_override(overrides, artifact, version_range, override_line, self._log)
            overrides = merged.lines
            for old in merged.superseded:
                to_delete.append(old)
                to_extract = [a for a in to_extract if a != old]

            pinned = merge_startup(startup, artifact, version_range, self._log)
            startup = pinned.lines

            matching = merged.matching or pinned.matching
            added = merged.added or pinned.added
            if not matching or added:
                to_extract.append(artifact)
        result.state = ApplyState.OVERRIDES_COMPUTED

        # ── 2. Artifacts ─────────────────────────────────────────
        if source is not None:
            report = ExtractionReport()
            self._extractor.extract(source, to_extract, report)
            self._extractor.delete(to_delete, report)
            result.extracted = report.extracted
            result.deleted = report.deleted
            result.errors.extend(report.errors)
            result.warnings.extend(report.warnings)
        result.state = ApplyState.ARTIFACTS_RECONCILED

        # ── 3. Persist registries ────────────────────────────────
        overrides = normalize_overrides(overrides)
        write_registry(overrides_file, overrides)
        write_registry(startup_file, startup)
        result.overrides = overrides
        result.startup = startup
        result.state = ApplyState.REGISTRIES_PERSISTED

        # ── 4. Plain files ───────────────────────────────────────
        if source is None:
            if storage is None:
                raise MissingBackupLocationError(
                    "Unable to update patch files: no access to patch ZIP file "
                    "or patch storage location"
                )
            source = DirectoryPatchSource(storage)
        self._patch_files(patch, source, result)
        result.state = ApplyState.FILES_PATCHED

        # ── 5. Migrator ──────────────────────────────────────────
        if patch.migrator_bundle:
            artifact = try_parse_coordinate_uri(patch.migrator_bundle)
            if artifact is not None:
                result.migrator_staged = str(self._stage_migrator(artifact))
        result.state = ApplyState.MIGRATOR_STAGED

        result.state = ApplyState.APPLIED
        self._log.info("Applied patch %s", patch.id)

    def _range_for(
        self, patch: PatchDescriptor, bundle: str, artifact: ArtifactCoordinate,
    ) -> tuple[VersionRange, str]:
        """Effective version range and override line for a bundle."""
        spec = patch.version_range(bundle)
        bundle = bundle.strip()
        if spec:
            return (
                VersionRange.parse(spec),
                bundle + self._config.override_range_separator + spec,
            )
        return VersionRange.default_for(Version.parse(artifact.version)), bundle

    def _patch_files(
        self, patch: PatchDescriptor, source: PatchSource, result: ApplyResult,
    ) -> None:
        for rel_path in patch.files:
            stream = source.open(rel_path)
            if stream is None:
                msg = f"Could not find file: {source.describe(rel_path)}"
                self._log.error(msg)
                result.errors.append(msg)
                continue
            if self.patch_file(patch, rel_path, stream):
                result.files_updated.append(rel_path)
            else:
                result.files_added.append(rel_path)

    def patch_file(self, patch: PatchDescriptor, rel_path: str, stream: BinaryIO) -> bool:
        """Replace one install file with new content, backing up the old one.

        The stream is closed when done.

        Returns:
            True if an existing file was replaced, False if it was added.
        """
        target = self._root / rel_path
        with stream:
            existed = target.exists()
            if existed:
                self._backups.backup(patch.id, rel_path)
                target.unlink()
                self._log.debug("Updating file: %s", rel_path)
            else:
                self._log.debug("Adding file: %s", rel_path)
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, "wb") as out:
                shutil.copyfileobj(stream, out)
        return existed

    def _stage_migrator(self, artifact: ArtifactCoordinate) -> Path:
        src = self._extractor.installed_path(artifact)
        target = self._root / self._config.deploy_dir / f"{artifact.artifact_id}.jar"
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(src, target)
        self._log.debug("Staged migrator %s to %s", artifact, target)
        return target

    # ── Rollback ─────────────────────────────────────────────────

    def rollback_patch(self, patch: PatchDescriptor) -> RollbackResult:
        """Restore every plain file the patch touched.

        Registry entries and artifacts changed by the apply are left
        as they are.
        """
        self._log.debug("Rolling back patch %s / %s", patch.id, patch.description)
        result = RollbackResult(patch_id=patch.id)
        for rel_path in patch.files:
            outcome = self._backups.restore(patch.id, rel_path)
            if outcome == "restored":
                result.restored.append(rel_path)
            elif outcome == "removed":
                result.removed.append(rel_path)
        return result
