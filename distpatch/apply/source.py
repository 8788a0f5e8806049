"""Read access to patch content.

A patch source resolves an entry name (``repository/<path>`` for
artifact payloads, an install-relative path for plain files) to a byte
stream. Patches are read either from their archive or, once installed,
from an unpacked storage directory.
"""

from __future__ import annotations

import zipfile
from pathlib import Path
from typing import BinaryIO, Protocol


class PatchSource(Protocol):
    """Byte-stream access to the entries of a patch."""

    def open(self, name: str) -> BinaryIO | None:
        """Open an entry for reading, or return None if it is absent."""
        ...

    def names(self) -> list[str]:
        """Names of all file entries."""
        ...

    def describe(self, name: str) -> str:
        """Human readable location of an entry, for log messages."""
        ...


class ZipPatchSource:
    """Patch entries read from a patch archive."""

    def __init__(self, archive: Path) -> None:
        self._archive = Path(archive)
        self._zip = zipfile.ZipFile(self._archive)

    def open(self, name: str) -> BinaryIO | None:
        try:
            info = self._zip.getinfo(name)
        except KeyError:
            return None
        if info.is_dir():
            return None
        return self._zip.open(info)

    def names(self) -> list[str]:
        return [info.filename for info in self._zip.infolist() if not info.is_dir()]

    def describe(self, name: str) -> str:
        return f"{name} in patch zip {self._archive.name}"

    def close(self) -> None:
        self._zip.close()

    def __enter__(self) -> ZipPatchSource:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class DirectoryPatchSource:
    """Patch entries read from a patch storage directory."""

    def __init__(self, root: Path) -> None:
        self._root = Path(root)

    def open(self, name: str) -> BinaryIO | None:
        path = self._root / name
        if not path.is_file():
            return None
        return path.open("rb")

    def names(self) -> list[str]:
        if not self._root.is_dir():
            return []
        return sorted(
            p.relative_to(self._root).as_posix()
            for p in self._root.rglob("*")
            if p.is_file()
        )

    def describe(self, name: str) -> str:
        return f"{self._root / name} in patch storage location"
