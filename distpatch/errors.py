"""Exception types raised by the patch engine.

Only conditions that abort an operation are raised. Recoverable problems
(missing artifact payloads, missing patch files, unparseable registry
lines) are logged and recorded on the result models instead.
"""

from __future__ import annotations


class PatchError(RuntimeError):
    """Base class for patch engine failures."""


class CoordinateParseError(PatchError, ValueError):
    """An artifact coordinate URI could not be parsed."""


class VersionParseError(PatchError, ValueError):
    """A version or version range specification could not be parsed."""


class DescriptorError(PatchError, ValueError):
    """A patch descriptor is malformed or incomplete."""


class MissingBackupLocationError(PatchError):
    """Neither a patch archive nor a patch storage directory is available.

    Raised when the plain-file step of an apply cannot read replacement
    content from anywhere. Registries written before this point stay on disk.
    """
