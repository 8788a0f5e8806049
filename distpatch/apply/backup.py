"""Per-patch backups of plain files.

Before a patch overwrites a file, its current bytes are copied to
``<backups_dir>/<patchId>/<relativePath>``. A file the patch adds gets
no backup; the missing backup is what tells rollback to delete it.
"""

from __future__ import annotations

import contextlib
import logging
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)


class BackupStore:
    """Snapshot and restore plain files, scoped by patch id."""

    def __init__(
        self,
        install_root: Path,
        backups_dir: str = "data/patch/backups",
        log: logging.Logger | logging.LoggerAdapter = logger,
    ) -> None:
        self._root = Path(install_root)
        self._backups = self._root / backups_dir
        self._log = log

    def patch_dir(self, patch_id: str) -> Path:
        return self._backups / patch_id

    def backup_path(self, patch_id: str, rel_path: str) -> Path:
        return self.patch_dir(patch_id) / rel_path

    def has_backup(self, patch_id: str, rel_path: str) -> bool:
        return self.backup_path(patch_id, rel_path).is_file()

    def backup(self, patch_id: str, rel_path: str) -> Path | None:
        """Copy the installed file to the patch's backup area.

        Returns:
            The backup path, or None when there is no installed file.
        """
        source = self._root / rel_path
        if not source.is_file():
            return None
        target = self.backup_path(patch_id, rel_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, target)
        return target

    def restore(self, patch_id: str, rel_path: str) -> str | None:
        """Undo the patch's change to one file.

        With a backup, the backed-up bytes are copied over the installed
        file and the backup is consumed. Without one, the installed file
        was added by the patch and is deleted; empty parent directories
        are left in place.

        Afterwards the patch's backup directory is removed if, and only
        if, it is empty. Nested directories inside it keep it alive.

        Returns:
            ``"restored"``, ``"removed"``, or None when there was neither
            a backup nor an installed file.
        """
        backup = self.backup_path(patch_id, rel_path)
        original = self._root / rel_path
        try:
            if backup.is_file():
                self._log.debug("Restoring previous version of file: %s", rel_path)
                original.parent.mkdir(parents=True, exist_ok=True)
                shutil.copyfile(backup, original)
                backup.unlink()
                return "restored"
            if original.exists():
                self._log.debug("Removing file: %s", rel_path)
                original.unlink()
                return "removed"
            return None
        finally:
            with contextlib.suppress(OSError):
                self.patch_dir(patch_id).rmdir()
